"""
Unit tests for the Ledger.
"""

import pytest

from guild_exchange.core.ledger import Ledger, SYSTEM_ID
from guild_exchange.utils.exceptions import (
    InsufficientFundsException,
    InsufficientHoldingsException,
)


class TestAccounts:
    """Test account opening and queries."""

    def test_open_account_grants_starting_balance(self):
        ledger = Ledger(starting_balance=1000)
        assert ledger.open_account("alice") is True
        assert ledger.get_balance("alice") == 1000

    def test_open_account_is_idempotent(self):
        ledger = Ledger(starting_balance=1000)
        ledger.open_account("alice")
        ledger.credit("alice", -400)
        assert ledger.open_account("alice") is False
        assert ledger.get_balance("alice") == 600

    def test_unknown_user_defaults(self):
        ledger = Ledger()
        assert ledger.get_balance("ghost") == 0
        assert ledger.get_holdings("ghost", "g") == 0
        assert ledger.has_account("ghost") is False

    def test_credit_cannot_go_negative(self):
        ledger = Ledger(starting_balance=10)
        ledger.open_account("alice")
        with pytest.raises(InsufficientFundsException):
            ledger.credit("alice", -11)
        assert ledger.get_balance("alice") == 10


class TestTransfer:
    """Test trade settlement."""

    def test_transfer_moves_coins_and_shares(self):
        ledger = Ledger(starting_balance=1000)
        ledger.open_account("buyer")
        ledger.open_account(SYSTEM_ID, 0)

        ledger.transfer("buyer", SYSTEM_ID, "g", 50, 3)

        assert ledger.get_balance("buyer") == 850
        assert ledger.get_holdings("buyer", "g") == 50
        assert ledger.get_balance(SYSTEM_ID) == 150
        assert ledger.get_holdings(SYSTEM_ID, "g") == -50
        assert ledger.shares_outstanding("g") == 50

    def test_conservation(self):
        ledger = Ledger(starting_balance=1000)
        for user in ("a", "b"):
            ledger.open_account(user)
        ledger.open_account(SYSTEM_ID, 0)
        coins = ledger.total_coins()

        ledger.transfer("a", SYSTEM_ID, "g", 10, 5)
        ledger.transfer("b", "a", "g", 4, 7)

        assert ledger.total_coins() == coins
        assert ledger.total_shares("g") == 0

    def test_zero_holdings_are_removed(self):
        ledger = Ledger(starting_balance=1000)
        ledger.open_account("a")
        ledger.open_account("b")
        ledger.transfer("a", SYSTEM_ID, "g", 5, 1)
        ledger.transfer("b", "a", "g", 5, 1)

        assert "g" not in ledger.portfolio("a")["holdings"]
        assert "a" not in ledger.holdings

    def test_buyer_without_coins_is_refused_untouched(self):
        ledger = Ledger(starting_balance=10)
        ledger.open_account("a")
        with pytest.raises(InsufficientFundsException):
            ledger.transfer("a", SYSTEM_ID, "g", 5, 3)
        assert ledger.get_balance("a") == 10
        assert ledger.get_holdings(SYSTEM_ID, "g") == 0

    def test_seller_without_shares_is_refused_untouched(self):
        ledger = Ledger(starting_balance=100)
        ledger.open_account("a")
        ledger.open_account("b")
        with pytest.raises(InsufficientHoldingsException):
            ledger.transfer("a", "b", "g", 1, 1)
        assert ledger.get_balance("a") == 100
        assert ledger.get_balance("b") == 100

    def test_self_transfer_is_noop(self):
        ledger = Ledger(starting_balance=100)
        ledger.open_account("a")
        ledger.transfer("a", "a", "g", 5, 10)
        assert ledger.get_balance("a") == 100
        assert ledger.get_holdings("a", "g") == 0


class TestSerialization:

    def test_round_trip(self):
        ledger = Ledger(starting_balance=500)
        ledger.open_account("a")
        ledger.transfer("a", SYSTEM_ID, "g", 3, 2)

        restored = Ledger.from_dict(ledger.to_dict())

        assert restored.starting_balance == 500
        assert restored.get_balance("a") == 494
        assert restored.get_holdings("a", "g") == 3
        assert restored.get_holdings(SYSTEM_ID, "g") == -3

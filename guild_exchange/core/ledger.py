"""
Coin balances and share holdings

The ledger is a plain data store. It settles trades it is told about and
refuses only transfers that would drive a regular user negative; deciding
whether an order may trade at all is the matching engine's job.
"""

from typing import Dict, Any, Optional

from ..utils.exceptions import (
    InsufficientFundsException,
    InsufficientHoldingsException,
)
from ..utils.validators import SYSTEM_ID


class Ledger:
    """
    Per-user coin balance and per-security share holdings.

    The system account has no floor. It is the counterparty of every
    initial offering, so its coin balance grows with sales and its holdings
    of a security go negative by the number of shares issued. Summed over
    every account including the system, coins are constant and holdings of
    each security are zero.

    Attributes:
        balances: Coins by user id
        holdings: Share counts by user id, then security id
        starting_balance: Coins granted when an account is opened
    """

    def __init__(self, starting_balance: int = 0):
        self.balances: Dict[str, int] = {}
        self.holdings: Dict[str, Dict[str, int]] = {}
        self.starting_balance: int = starting_balance

    def open_account(self, user_id: str, coins: Optional[int] = None) -> bool:
        """
        Create an account if the user has none yet.

        Returns:
            True if a new account was created
        """
        if user_id in self.balances:
            return False
        self.balances[user_id] = self.starting_balance if coins is None else coins
        return True

    def has_account(self, user_id: str) -> bool:
        return user_id in self.balances

    def get_balance(self, user_id: str) -> int:
        return self.balances.get(user_id, 0)

    def get_holdings(self, user_id: str, security_id: str) -> int:
        return self.holdings.get(user_id, {}).get(security_id, 0)

    def portfolio(self, user_id: str) -> Dict[str, Any]:
        return {
            "user_id": user_id,
            "balance": self.get_balance(user_id),
            "holdings": dict(self.holdings.get(user_id, {})),
        }

    def credit(self, user_id: str, coins: int) -> int:
        """Add coins to a balance (negative to debit); returns the new balance."""
        balance = self.get_balance(user_id) + coins
        if balance < 0 and user_id != SYSTEM_ID:
            raise InsufficientFundsException(
                f"{user_id} cannot cover {-coins} coins",
                details={"user_id": user_id, "balance": self.get_balance(user_id)}
            )
        self.balances[user_id] = balance
        return balance

    def transfer(
        self,
        buyer: str,
        seller: str,
        security_id: str,
        volume: int,
        unit_price: int,
    ) -> None:
        """
        Settle a trade: coins flow buyer -> seller, shares flow seller -> buyer.

        Both sides are checked before either is touched, so a refused
        transfer leaves the ledger unchanged.

        Raises:
            InsufficientFundsException: If a non-system buyer cannot pay
            InsufficientHoldingsException: If a non-system seller lacks shares
        """
        cost = volume * unit_price

        # Crossing one's own order moves nothing
        if buyer == seller:
            return

        if buyer != SYSTEM_ID and self.get_balance(buyer) < cost:
            raise InsufficientFundsException(
                f"{buyer} cannot pay {cost} coins",
                details={"user_id": buyer, "balance": self.get_balance(buyer), "cost": cost}
            )
        if seller != SYSTEM_ID and self.get_holdings(seller, security_id) < volume:
            raise InsufficientHoldingsException(
                f"{seller} cannot deliver {volume} shares of {security_id}",
                details={
                    "user_id": seller,
                    "security_id": security_id,
                    "holdings": self.get_holdings(seller, security_id),
                }
            )

        self.balances[buyer] = self.get_balance(buyer) - cost
        self.balances[seller] = self.get_balance(seller) + cost
        self._adjust_holdings(seller, security_id, -volume)
        self._adjust_holdings(buyer, security_id, volume)

    def total_coins(self) -> int:
        """Coins across every account, system included."""
        return sum(self.balances.values())

    def total_shares(self, security_id: str) -> int:
        """Shares of a security across every account, system included."""
        return sum(held.get(security_id, 0) for held in self.holdings.values())

    def shares_outstanding(self, security_id: str) -> int:
        """Shares issued by the system and now held by users."""
        return -self.get_holdings(SYSTEM_ID, security_id)

    def _adjust_holdings(self, user_id: str, security_id: str, delta: int) -> None:
        held = self.holdings.setdefault(user_id, {})
        volume = held.get(security_id, 0) + delta
        if volume == 0:
            held.pop(security_id, None)
        else:
            held[security_id] = volume
        if not held:
            del self.holdings[user_id]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "starting_balance": self.starting_balance,
            "balances": dict(self.balances),
            "holdings": {user: dict(held) for user, held in self.holdings.items()},
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Ledger":
        ledger = cls(starting_balance=int(data.get("starting_balance", 0)))
        ledger.balances = {user: int(coins) for user, coins in data.get("balances", {}).items()}
        ledger.holdings = {
            user: {security: int(volume) for security, volume in held.items() if int(volume) != 0}
            for user, held in data.get("holdings", {}).items()
        }
        ledger.holdings = {user: held for user, held in ledger.holdings.items() if held}
        return ledger

"""
Tests for input validation and configuration.
"""

import pytest

from guild_exchange.config import Settings
from guild_exchange.utils.exceptions import ErrorKind, InvalidOrderException, UnauthorizedException
from guild_exchange.utils.validators import (
    normalize_ticker,
    sanitize_int,
    validate_order_parameters,
    validate_user_id,
)


class TestOrderParameters:

    def test_limit_order(self):
        assert validate_order_parameters("g", "limit", "buy", "5", "12") == ("LIMIT", "BUY", 5, 12)

    def test_market_order_drops_price(self):
        assert validate_order_parameters("g", "market", "sell", 3, 99) == ("MARKET", "SELL", 3, None)

    def test_limit_requires_price(self):
        with pytest.raises(InvalidOrderException):
            validate_order_parameters("g", "limit", "buy", 1)

    @pytest.mark.parametrize("order_type,side,volume,price", [
        ("stop", "buy", 1, 5),
        ("limit", "hold", 1, 5),
        ("limit", "buy", 0, 5),
        ("limit", "buy", -2, 5),
        ("limit", "buy", 1, 0),
        ("limit", "buy", "1.5", 5),
        ("limit", "buy", 1, 10_000_001),
    ])
    def test_invalid_parameters(self, order_type, side, volume, price):
        with pytest.raises(InvalidOrderException) as exc_info:
            validate_order_parameters("g", order_type, side, volume, price)
        assert exc_info.value.kind == ErrorKind.INVALID_ORDER

    def test_volume_limit_is_configurable(self):
        with pytest.raises(InvalidOrderException):
            validate_order_parameters("g", "market", "buy", 11, max_volume=10)


class TestScalars:

    def test_sanitize_int_rejects_bool(self):
        with pytest.raises(InvalidOrderException):
            sanitize_int(True)

    def test_ticker_is_upper_cased_and_stripped(self):
        assert normalize_ticker("  abc1 ") == "ABC1"

    def test_user_id(self):
        assert validate_user_id(" 42 ") == "42"
        with pytest.raises(InvalidOrderException):
            validate_user_id("   ")

    def test_exchange_account_id_is_reserved(self):
        for user_id in ("system", " system "):
            with pytest.raises(UnauthorizedException):
                validate_user_id(user_id)


class TestSettings:

    def test_defaults(self):
        settings = Settings(_env_file=None)
        assert settings.starting_balance == 1000
        assert settings.true_price_window == 24
        assert settings.activity_interval_seconds == 60
        assert settings.ticker_max_length == 8

    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("STARTING_BALANCE", "250")
        monkeypatch.setenv("ADMIN_IDS", '["root"]')

        settings = Settings(_env_file=None)

        assert settings.starting_balance == 250
        assert settings.admin_ids == ["root"]

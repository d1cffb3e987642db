"""
Tests for price history, the true-price window and the ticker registry.
"""

import math

import pytest

from guild_exchange.core.price_history import PriceHistory, PriceSource
from guild_exchange.core.security import Security, true_price_sample
from guild_exchange.core.ticker_registry import TickerRegistry
from guild_exchange.utils.exceptions import (
    TickerConflictException,
    TickerInvalidException,
    UnknownSecurityException,
)


class TestPriceHistory:

    def test_series_is_append_only_and_ordered(self):
        history = PriceHistory()
        for price in (10, 12, 11):
            history.append("g", price)

        assert [p.price for p in history.series("g")] == [10, 12, 11]
        assert history.latest("g").price == 11
        assert len(history) == 3

    def test_series_limit_keeps_most_recent(self):
        history = PriceHistory()
        for price in range(1, 6):
            history.append("g", price)

        assert [p.price for p in history.series("g", limit=2)] == [4, 5]

    def test_unknown_security_has_no_points(self):
        history = PriceHistory()
        assert history.latest("g") is None
        assert history.series("g") == []

    def test_price_must_be_positive(self):
        with pytest.raises(ValueError):
            PriceHistory().append("g", 0)

    def test_round_trip(self):
        history = PriceHistory()
        history.append("g", 10, PriceSource.LISTING)
        history.append("g", 14, PriceSource.DRIFT)

        restored = PriceHistory.from_dict(history.to_dict())

        assert restored.series("g") == history.series("g")


class TestTruePrice:

    def test_sample_formula(self):
        assert true_price_sample(50, 30, 10) == pytest.approx(math.log(50) * 3)

    def test_quiet_interval_scores_zero(self):
        assert true_price_sample(50, 0, 0) == 0.0
        assert true_price_sample(0, 10, 2) == 0.0

    def test_window_drops_oldest(self):
        security = Security("g", listing_price=10, window=3)
        assert security.true_price is None

        for sample in (9.0, 1.0, 2.0, 3.0):
            security.add_sample(sample)

        assert list(security.samples) == [1.0, 2.0, 3.0]
        assert security.true_price == 2.0

    def test_default_window_is_a_day_of_hourly_samples(self):
        assert Security("g", listing_price=10).window == 24

    def test_round_trip(self):
        security = Security("g", listing_price=10, window=4)
        security.add_sample(1.5)

        restored = Security.from_dict(security.to_dict())

        assert restored.window == 4
        assert restored.true_price == 1.5


class TestTickerRegistry:
    """Test the ticker to security mapping."""

    def test_set_and_resolve(self):
        registry = TickerRegistry()
        assert registry.set_ticker("guild-1", "gamers") == "GAMERS"

        assert registry.resolve("GAMERS") == "guild-1"
        assert registry.resolve("Gamers") == "guild-1"
        assert registry.ticker_for("guild-1") == "GAMERS"

    def test_resolve_accepts_known_security_id(self):
        registry = TickerRegistry()
        assert registry.resolve("guild-1", known_ids={"guild-1"}) == "guild-1"

    def test_resolve_unknown(self):
        with pytest.raises(UnknownSecurityException):
            TickerRegistry().resolve("NOPE")

    def test_renaming_releases_old_ticker(self):
        registry = TickerRegistry()
        registry.set_ticker("guild-1", "OLD")
        registry.set_ticker("guild-1", "NEW")

        assert registry.lookup("OLD") is None
        assert registry.lookup("NEW") == "guild-1"
        assert len(registry) == 1

        registry.set_ticker("guild-2", "OLD")
        assert registry.lookup("OLD") == "guild-2"

    def test_conflict_is_case_insensitive(self):
        registry = TickerRegistry()
        registry.set_ticker("guild-1", "ABC")

        with pytest.raises(TickerConflictException):
            registry.set_ticker("guild-2", "abc")
        assert registry.ticker_for("guild-2") is None

    def test_setting_same_ticker_again_is_noop(self):
        registry = TickerRegistry()
        registry.set_ticker("guild-1", "ABC")
        assert registry.set_ticker("guild-1", "abc") == "ABC"
        assert registry.ticker_for("guild-1") == "ABC"

    @pytest.mark.parametrize("ticker", ["", "TOOLONGXX", "AB-C", "A B", "ÉCOLE"])
    def test_invalid_tickers(self, ticker):
        registry = TickerRegistry()
        with pytest.raises(TickerInvalidException):
            registry.set_ticker("guild-1", ticker)

    def test_remove(self):
        registry = TickerRegistry()
        registry.set_ticker("guild-1", "ABC")

        assert registry.remove("guild-1") == "ABC"
        assert registry.lookup("ABC") is None

    def test_round_trip(self):
        registry = TickerRegistry()
        registry.set_ticker("guild-1", "ABC")
        registry.set_ticker("guild-2", "XYZ")

        restored = TickerRegistry.from_dict(registry.to_dict())

        assert restored.by_ticker == registry.by_ticker

"""
Tests for the service layer: order dispatch, listings, market data and the
activity pricing job.
"""

import asyncio

import pytest

from guild_exchange.core.ledger import SYSTEM_ID
from guild_exchange.core.matching_engine import MatchingEngine
from guild_exchange.core.order import OrderStatus
from guild_exchange.core.price_history import PriceSource
from guild_exchange.core.ticker_registry import TickerRegistry
from guild_exchange.services.activity_service import ActivityService
from guild_exchange.services.market_data_service import MarketDataService
from guild_exchange.services.order_service import OrderService
from guild_exchange.services.persistence import StateStore
from guild_exchange.services.security_service import SecurityService
from guild_exchange.utils.exceptions import (
    ErrorKind,
    InvalidOrderException,
    InvalidOrderIdException,
    TickerConflictException,
    TickerInvalidException,
    UnauthorizedException,
    UnknownSecurityException,
)


@pytest.fixture
def exchange(tmp_path):
    """Engine, registry and services sharing one state file."""
    engine = MatchingEngine(starting_balance=1000, admin_ids=["admin"])
    registry = TickerRegistry()
    store = StateStore(tmp_path / "state.json")
    securities = SecurityService(engine, registry, store, listing_price=10, ipo_volume=100)
    securities.list_security("admin", "guild-1", ticker="gamers")
    return {
        "engine": engine,
        "registry": registry,
        "store": store,
        "orders": OrderService(engine, registry, store),
        "market": MarketDataService(engine, registry),
        "securities": securities,
    }


class TestOrderService:
    """Test order dispatch through the service layer."""

    def test_buy_by_ticker_defaults_to_one_share(self, exchange):
        result = exchange["orders"].submit_order("alice", "GAMERS", "buy", "market")

        assert result.status == OrderStatus.FILLED
        assert result.order.original_volume == 1
        assert exchange["engine"].get_holdings("alice", "guild-1") == 1

    def test_security_id_accepted_in_place_of_ticker(self, exchange):
        result = exchange["orders"].submit_order("alice", "guild-1", "buy", "limit", 2, 10)
        assert len(result.trades) == 1

    def test_business_rejection_is_returned(self, exchange):
        engine = exchange["engine"]
        before = engine.to_dict()["books"]

        result = exchange["orders"].submit_order("alice", "GAMERS", "buy", "limit", 500, 10)

        assert result.status == OrderStatus.REJECTED
        assert result.error == ErrorKind.INSUFFICIENT_FUNDS
        assert not result.is_successful()
        assert engine.to_dict()["books"] == before

    def test_halted_rejection_is_returned(self, exchange):
        exchange["securities"].halt("admin")

        result = exchange["orders"].submit_order("alice", "GAMERS", "buy", "market")

        assert result.error == ErrorKind.TRADING_HALTED

    def test_exchange_account_cannot_submit(self, exchange):
        engine = exchange["engine"]
        before = engine.to_dict()

        with pytest.raises(UnauthorizedException):
            exchange["orders"].submit_order(SYSTEM_ID, "GAMERS", "buy", "limit", 100, 10)

        assert engine.to_dict()["ledger"] == before["ledger"]
        assert engine.to_dict()["books"] == before["books"]

    def test_malformed_order_raises(self, exchange):
        with pytest.raises(InvalidOrderException):
            exchange["orders"].submit_order("alice", "GAMERS", "buy", "limit", 1)
        with pytest.raises(UnknownSecurityException):
            exchange["orders"].submit_order("alice", "NOPE", "buy", "market")

    def test_state_saved_after_submit(self, exchange):
        exchange["orders"].submit_order("alice", "GAMERS", "buy", "limit", 3, 10)

        restored, _ = exchange["store"].restore()

        assert restored.get_holdings("alice", "guild-1") == 3

    def test_cancel_and_list_pending(self, exchange):
        orders = exchange["orders"]
        resting = orders.submit_order("alice", "GAMERS", "buy", "limit", 2, 5).resting

        assert [o.order_id for o in orders.list_pending("alice", "gamers")] == [resting.order_id]
        orders.cancel_order("alice", resting.order_id)
        assert orders.list_pending("alice") == []

        with pytest.raises(InvalidOrderIdException):
            orders.cancel_order("alice", resting.order_id)

    def test_portfolio_opens_account(self, exchange):
        portfolio = exchange["orders"].get_portfolio("newcomer")

        assert portfolio["balance"] == 1000
        assert portfolio["holdings"] == {}
        assert portfolio["pending_orders"] == []

    def test_portfolio_reports_reservations_and_tickers(self, exchange):
        orders = exchange["orders"]
        orders.submit_order("alice", "GAMERS", "buy", "limit", 10, 10)
        orders.submit_order("alice", "GAMERS", "sell", "limit", 4, 30)
        orders.submit_order("alice", "GAMERS", "buy", "limit", 5, 2)

        portfolio = orders.get_portfolio("alice")

        assert portfolio["balance"] == 900
        assert portfolio["reserved_coins"] == 10
        assert portfolio["reserved_shares"] == {"guild-1": 4}
        assert portfolio["tickers"] == {"guild-1": "GAMERS"}
        assert len(portfolio["pending_orders"]) == 2


class TestSecurityService:
    """Test listings and ticker management."""

    def test_listing_seeds_offering(self, exchange):
        listing = exchange["securities"].describe("GAMERS")

        assert listing["price"] == 10
        assert listing["shares_outstanding"] == 0
        assert exchange["engine"].list_pending(SYSTEM_ID)[0].volume == 100

    def test_invalid_ticker_leaves_exchange_unchanged(self, exchange):
        with pytest.raises(TickerInvalidException):
            exchange["securities"].list_security("admin", "guild-2", ticker="not valid!")

        assert not exchange["engine"].is_listed("guild-2")

    def test_duplicate_ticker(self, exchange):
        with pytest.raises(TickerConflictException):
            exchange["securities"].list_security("admin", "guild-2", ticker="Gamers")
        assert not exchange["engine"].is_listed("guild-2")

    def test_set_ticker(self, exchange):
        securities = exchange["securities"]

        assert securities.set_ticker("GAMERS", "play") == "PLAY"
        assert securities.describe("PLAY")["security_id"] == "guild-1"
        with pytest.raises(UnknownSecurityException):
            securities.describe("GAMERS")

    def test_set_ticker_for_unlisted_guild(self, exchange):
        with pytest.raises(UnknownSecurityException):
            exchange["securities"].set_ticker("guild-9", "NINE")

    def test_halt_requires_admin(self, exchange):
        with pytest.raises(UnauthorizedException):
            exchange["securities"].halt("alice")

        exchange["securities"].halt("admin")
        assert exchange["engine"].admin.is_halted
        exchange["securities"].resume("admin")
        assert not exchange["engine"].admin.is_halted

    def test_exchange_account_cannot_halt(self, exchange):
        with pytest.raises(UnauthorizedException):
            exchange["securities"].halt(SYSTEM_ID)
        assert exchange["engine"].admin.trading_enabled

    def test_listing_requires_admin(self, exchange):
        securities = exchange["securities"]

        for actor in ("alice", SYSTEM_ID):
            with pytest.raises(UnauthorizedException):
                securities.list_security(actor, "guild-2", listing_price=1, ipo_volume=10**6)

        assert not exchange["engine"].is_listed("guild-2")


class TestMarketDataService:

    def test_price_after_trade(self, exchange):
        exchange["orders"].submit_order("alice", "GAMERS", "buy", "limit", 5, 10)
        exchange["orders"].submit_order("bob", "GAMERS", "buy", "limit", 5, 8)

        price = exchange["market"].get_price("gamers")

        assert price["ticker"] == "GAMERS"
        assert price["price"] == 10
        assert price["best_bid"] == 8
        assert price["best_ask"] == 10
        assert price["true_price"] is None

    def test_history_for_graph(self, exchange):
        exchange["orders"].submit_order("alice", "GAMERS", "buy", "limit", 5, 10)

        history = exchange["market"].get_history("GAMERS")

        assert [p["source"] for p in history["points"]] == [
            PriceSource.LISTING.value,
            PriceSource.TRADE.value,
        ]

    def test_order_book_snapshot(self, exchange):
        snapshot = exchange["market"].get_order_book_snapshot("GAMERS", levels=5)

        assert snapshot["asks"] == [[10, 100, 1]]
        assert snapshot["bids"] == []
        assert snapshot["ticker"] == "GAMERS"

    def test_list_prices(self, exchange):
        exchange["securities"].list_security("admin", "guild-2", ticker="CHESS", listing_price=4)

        prices = exchange["market"].list_prices()

        assert [(p["ticker"], p["price"]) for p in prices] == [("GAMERS", 10), ("CHESS", 4)]


class TestActivityService:
    """Test the periodic activity-to-price job."""

    def test_run_once_applies_and_resets(self, exchange):
        engine = exchange["engine"]
        activity = ActivityService(engine, exchange["registry"], exchange["store"])
        activity.set_member_count("guild-1", 100)
        for author in ("a", "b", "a", "c"):
            activity.record_message("guild-1", author)

        prices = activity.run_once()

        assert engine.securities["guild-1"].samples[-1] == pytest.approx(4.6051701 * 4 / 3)
        assert prices["guild-1"] == engine.reference_price("guild-1")
        assert activity.counters == {}

        # Second run sees no messages and samples zero
        activity.run_once()
        assert engine.securities["guild-1"].samples[-1] == 0.0

    def test_unlisted_guild_activity_is_ignored(self, exchange):
        activity = ActivityService(exchange["engine"], exchange["registry"])
        activity.record_message("guild-404", "a")

        assert "guild-404" not in activity.run_once()

    def test_run_once_saves_state(self, exchange):
        activity = ActivityService(exchange["engine"], exchange["registry"], exchange["store"])
        activity.set_member_count("guild-1", 50)
        activity.record_message("guild-1", "a")
        activity.run_once()

        restored, _ = exchange["store"].restore()

        assert restored.get_price_history("guild-1")[-1].source == PriceSource.DRIFT

    def test_negative_member_count_rejected(self, exchange):
        activity = ActivityService(exchange["engine"])
        with pytest.raises(ValueError):
            activity.set_member_count("guild-1", -1)

    def test_background_task_runs(self, exchange):
        engine = exchange["engine"]
        activity = ActivityService(engine, interval_seconds=0.01)

        async def run():
            await activity.start()
            await asyncio.sleep(0.2)
            await activity.stop()

        asyncio.run(run())

        drift = [p for p in engine.get_price_history("guild-1") if p.source == PriceSource.DRIFT]
        assert len(drift) >= 1
        assert activity._task.done()

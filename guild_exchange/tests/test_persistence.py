"""
Tests for saving and restoring the complete exchange state.
"""

import json

import pytest

from guild_exchange.core.ledger import SYSTEM_ID
from guild_exchange.core.matching_engine import MatchingEngine
from guild_exchange.core.ticker_registry import TickerRegistry
from guild_exchange.services.persistence import StateStore
from guild_exchange.tests.helpers import GUILD, limit, market
from guild_exchange.utils.exceptions import CorruptStateException


@pytest.fixture
def populated():
    engine = MatchingEngine(starting_balance=1000, admin_ids=["admin"])
    engine.list_security(GUILD, listing_price=10, ipo_volume=100)
    registry = TickerRegistry()
    registry.set_ticker(GUILD, "GAMERS")

    engine.submit(limit("alice", "buy", 30, 10))
    engine.submit(limit("bob", "buy", 5, 8))
    engine.submit(limit("carol", "buy", 5, 8))
    engine.submit(market("alice", "sell", 2))
    engine.apply_activity(GUILD, 40, 12, 3)
    return engine, registry


class TestStateStore:

    def test_missing_file_starts_empty(self, tmp_path):
        store = StateStore(tmp_path / "state.json")

        engine, registry = store.restore(starting_balance=77)

        assert not store.exists()
        assert engine.securities == {}
        assert len(registry) == 0
        assert engine.ledger.starting_balance == 77

    def test_round_trip(self, tmp_path, populated):
        engine, registry = populated
        store = StateStore(tmp_path / "nested" / "state.json")
        store.save(engine, registry)

        restored, restored_registry = store.restore()

        assert restored.ledger.balances == engine.ledger.balances
        assert restored.ledger.holdings == engine.ledger.holdings
        assert restored_registry.resolve("gamers") == GUILD
        assert restored.get_price_history(GUILD) == engine.get_price_history(GUILD)
        assert restored.get_true_price(GUILD) == engine.get_true_price(GUILD)
        assert restored.get_statistics() == engine.get_statistics()

        book = engine.get_order_book(GUILD)
        restored_book = restored.get_order_book(GUILD)
        assert list(restored_book.bids[8]) == list(book.bids[8])
        assert restored_book.get_depth() == book.get_depth()

    def test_restored_orders_keep_ids_and_owners(self, tmp_path, populated):
        engine, registry = populated
        store = StateStore(tmp_path / "state.json")
        store.save(engine, registry)
        restored, _ = store.restore()

        bob_order = engine.list_pending("bob")[0]
        assert restored.list_pending("bob")[0].order_id == bob_order.order_id

        # Cancel through the restored owner index
        restored.cancel("bob", bob_order.order_id)
        book = restored.get_order_book(GUILD)
        assert [restored.get_order(i).owner for i in book.bids[8]] == ["carol"]

    def test_restored_engine_keeps_matching_in_order(self, tmp_path, populated):
        engine, registry = populated
        store = StateStore(tmp_path / "state.json")
        store.save(engine, registry)
        restored, _ = store.restore()

        restored.submit(limit("dave", "buy", 3, 10))
        result = restored.submit(limit("dave", "sell", 3, 8))

        assert [t.buyer for t in result.trades] == ["bob"]

    def test_new_ids_continue_after_restore(self, tmp_path, populated):
        engine, registry = populated
        store = StateStore(tmp_path / "state.json")
        store.save(engine, registry)
        restored, _ = store.restore()

        order_id = restored.submit(limit("erin", "buy", 1, 2)).resting.order_id

        assert order_id > engine.arena.last_id

    def test_halt_survives_restart(self, tmp_path, populated):
        engine, registry = populated
        engine.halt_trading("admin")
        store = StateStore(tmp_path / "state.json")
        store.save(engine, registry)

        restored, _ = store.restore()

        assert restored.admin.is_halted

    def test_save_is_atomic(self, tmp_path, populated):
        engine, registry = populated
        store = StateStore(tmp_path / "state.json")
        store.save(engine, registry)
        store.save(engine, registry)

        assert [p.name for p in tmp_path.iterdir()] == ["state.json"]
        document = json.loads((tmp_path / "state.json").read_text())
        assert document["version"] == 1
        assert document["tickers"]["tickers"] == {GUILD: "GAMERS"}

    def test_conservation_across_restart(self, tmp_path, populated):
        engine, registry = populated
        store = StateStore(tmp_path / "state.json")
        store.save(engine, registry)
        restored, _ = store.restore()

        assert restored.ledger.total_coins() == engine.ledger.total_coins()
        assert restored.ledger.total_shares(GUILD) == 0
        assert restored.ledger.get_holdings(SYSTEM_ID, GUILD) < 0


class TestCorruptState:

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "state.json"
        path.write_text("{not json")

        with pytest.raises(CorruptStateException):
            StateStore(path).restore()

    def test_missing_engine_section(self, tmp_path):
        path = tmp_path / "state.json"
        path.write_text(json.dumps({"version": 1}))

        with pytest.raises(CorruptStateException):
            StateStore(path).restore()

    def test_queue_referencing_missing_order(self, tmp_path, populated):
        engine, registry = populated
        path = tmp_path / "state.json"
        StateStore(path).save(engine, registry)

        document = json.loads(path.read_text())
        document["engine"]["orders"] = document["engine"]["orders"][1:]
        path.write_text(json.dumps(document))

        with pytest.raises(CorruptStateException):
            StateStore(path).restore()

    def test_unsupported_version(self, tmp_path, populated):
        engine, registry = populated
        path = tmp_path / "state.json"
        StateStore(path).save(engine, registry)

        document = json.loads(path.read_text())
        document["engine"]["version"] = 99
        path.write_text(json.dumps(document))

        with pytest.raises(CorruptStateException):
            StateStore(path).restore()

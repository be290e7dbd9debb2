"""Tests for event delivery and the JSON audit log."""

import json

import pytest

from compounder.core.errors import ExternalCallError
from compounder.engine.events import (
    ChargedFees,
    Deposit,
    EventBus,
    JsonAuditLog,
    StratHarvest,
)

from tests.fixtures import KEEPER, REWARD


class TestEventBus:
    """Delivery after commit, history and subscribers."""

    def test_emit_outside_transaction_delivers_now(self, chain):
        bus = EventBus(chain)
        seen = []
        bus.subscribe(seen.append)

        bus.emit(Deposit(strategy="s", timestamp=1, tvl=10))

        assert [e.tvl for e in seen] == [10]

    def test_delivery_waits_for_commit(self, chain):
        bus = EventBus(chain)
        seen = []
        bus.subscribe(seen.append)

        with chain.transaction():
            bus.emit(Deposit(strategy="s", timestamp=1))
            assert seen == []

        assert len(seen) == 1

    def test_rollback_drops_events(self, chain):
        bus = EventBus(chain)

        with pytest.raises(ExternalCallError):
            with chain.transaction():
                bus.emit(Deposit(strategy="s", timestamp=1))
                raise ExternalCallError("swap failed")

        assert bus.history == []

    def test_failing_subscriber_does_not_block_others(self, chain):
        bus = EventBus(chain)
        seen = []

        def broken(event):
            raise RuntimeError("monitoring down")

        bus.subscribe(broken)
        bus.subscribe(seen.append)
        bus.emit(Deposit(strategy="s", timestamp=1))

        assert len(seen) == 1

    def test_history_is_bounded(self, chain):
        bus = EventBus(chain, max_history=3)
        for i in range(5):
            bus.emit(Deposit(strategy="s", timestamp=i))

        assert [e.timestamp for e in bus.history] == [2, 3, 4]
        assert bus.last().timestamp == 4
        assert bus.last(StratHarvest) is None

    def test_unsubscribe(self, chain):
        bus = EventBus(chain)
        seen = []
        bus.subscribe(seen.append)
        bus.unsubscribe(seen.append)

        bus.emit(Deposit(strategy="s", timestamp=1))

        assert seen == []

    def test_to_dict_names_event(self):
        event = ChargedFees(strategy="s", timestamp=1, call_fee=5, call_fee_recipient=KEEPER)
        data = event.to_dict()

        assert data["event"] == "ChargedFees"
        assert data["call_fee"] == 5


class TestJsonAuditLog:
    """Persisted event records."""

    def test_records_harvest_events(self, tmp_path, strategy, stake, ledger):
        path = tmp_path / "audit" / "events.json"
        strategy.events.subscribe(JsonAuditLog(path))
        stake(strategy, 1000)
        ledger.mint(REWARD, strategy.address, 1000)

        strategy.harvest(KEEPER)

        with open(path) as f:
            names = [record["event"] for record in json.load(f)["events"]]
        assert names == ["Deposit", "ChargedFees", "StratHarvest"]

    def test_reload_and_trim(self, tmp_path):
        path = tmp_path / "events.json"
        log = JsonAuditLog(path, max_records=2)
        for i in range(3):
            log(Deposit(strategy="s", timestamp=i))

        reloaded = JsonAuditLog(path, max_records=2)

        assert [r["timestamp"] for r in reloaded.records] == [1, 2]

    def test_corrupt_file_starts_fresh(self, tmp_path):
        path = tmp_path / "events.json"
        path.write_text("{not json")

        assert JsonAuditLog(path).records == []

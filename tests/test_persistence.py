"""
Tests for slice persistence

Hydration and write-back run against the in-memory key-value store.
"""

import json
from datetime import datetime, timezone

import pytest

from expense_tracker.audit import AuditLogger
from expense_tracker.models import (
    DEFAULT_ACCOUNT_ID,
    DEFAULT_CATEGORIES,
    DEFAULT_CATEGORY_ID,
    AddBudget,
    AddTransaction,
    Budget,
    AuditEventType,
    SetThemePreference,
    ThemePreference,
)
from expense_tracker.persistence import (
    SLICES,
    PersistenceCoordinator,
    SliceName,
    dumps_canonical,
    serialize_slice,
)
from expense_tracker.services.storage import InMemoryKeyValueStore, StorageError
from expense_tracker.state import Store, build_initial_state


NOW = datetime(2024, 3, 15, tzinfo=timezone.utc)


class FailingWritesStore(InMemoryKeyValueStore):
    async def set(self, key, value):
        raise StorageError("disk full")


class FailingReadsStore(InMemoryKeyValueStore):
    def __init__(self, broken_key, initial=None):
        super().__init__(initial)
        self.broken_key = broken_key

    async def get(self, key):
        if key == self.broken_key:
            raise StorageError("unreadable")
        return await super().get(key)


def _key(name):
    return SLICES[name].key


def _new_store():
    return Store(build_initial_state(now=NOW))


class TestSlices:
    """Tests for slice selection and serialization."""

    def test_every_slice_has_a_distinct_key(self):
        """Test the storage keys."""
        keys = [entry.key for entry in SLICES.values()]
        assert len(keys) == 8
        assert len(set(keys)) == 8
        assert _key(SliceName.TRANSACTIONS) == "EXPENSE_TRACKER_TRANSACTIONS_V1"

    def test_canonical_serialization(self):
        """Test key order does not change the stored bytes."""
        assert dumps_canonical({"b": 1, "a": [1, 2]}) == '{"a":[1,2],"b":1}'

    def test_theme_is_a_plain_string(self, initial_state):
        """Test single-value slices serialize to their JSON value."""
        assert serialize_slice(initial_state, SliceName.THEME_PREFERENCE) == '"system"'

    def test_records_use_camel_case(self, initial_state):
        """Test slices hold persisted records."""
        accounts = json.loads(serialize_slice(initial_state, SliceName.ACCOUNTS))
        assert accounts[0]["id"] == DEFAULT_ACCOUNT_ID
        assert "includeInBalance" in accounts[0]


class TestHydration:
    """Tests for loading slices at startup."""

    @pytest.mark.asyncio
    async def test_fresh_install_writes_defaults(self):
        """Test an empty store is seeded with every slice."""
        kv_store = InMemoryKeyValueStore()
        store = _new_store()
        coordinator = PersistenceCoordinator(store, kv_store)

        state = await coordinator.hydrate()
        await coordinator.flush()

        assert coordinator.is_ready is True
        assert coordinator.hydrated_slices == frozenset(SLICES)
        assert state.categories == DEFAULT_CATEGORIES
        assert set(kv_store.snapshot()) == {entry.key for entry in SLICES.values()}

    @pytest.mark.asyncio
    async def test_loads_stored_slices(self):
        """Test stored values replace the defaults."""
        kv_store = InMemoryKeyValueStore({
            _key(SliceName.THEME_PREFERENCE): '"dark"',
            _key(SliceName.BUDGETS): json.dumps([
                {"id": "b1", "categoryId": "food", "amount": 100, "month": "2024-03"},
            ]),
            _key(SliceName.CURRENCY): json.dumps({"code": "EUR", "symbol": "€", "name": "Euro"}),
        })
        store = _new_store()
        coordinator = PersistenceCoordinator(store, kv_store)

        state = await coordinator.hydrate()

        assert state.theme_preference == ThemePreference.DARK
        assert [b.id for b in state.budgets] == ["b1"]
        assert state.currency.code == "EUR"

    @pytest.mark.asyncio
    async def test_legacy_transactions_are_normalized(self):
        """Test legacy records are repaired on load."""
        kv_store = InMemoryKeyValueStore({
            _key(SliceName.TRANSACTIONS): json.dumps([
                {"id": "t1", "title": "Lunch", "amount": 12, "type": "expense",
                 "date": "2024-03-02T12:00:00.000Z", "category": "Food"},
            ]),
        })
        store = _new_store()
        await PersistenceCoordinator(store, kv_store).hydrate()

        transaction = store.state.transactions[0]
        assert transaction.amount == -12
        assert transaction.category_id == "food"
        assert transaction.account_id == DEFAULT_ACCOUNT_ID

    @pytest.mark.asyncio
    async def test_references_checked_after_all_slices(self):
        """Test transactions keep references to accounts and categories loaded alongside them."""
        kv_store = InMemoryKeyValueStore({
            _key(SliceName.TRANSACTIONS): json.dumps([
                {"id": "t1", "amount": -5, "date": "2024-03-02T12:00:00.000Z",
                 "categoryId": "rent", "accountId": "bank"},
                {"id": "t2", "amount": -5, "date": "2024-03-02T12:00:00.000Z",
                 "categoryId": "gone", "accountId": "gone"},
            ]),
            _key(SliceName.ACCOUNTS): json.dumps([
                {"id": "bank", "name": "Bank", "type": "bank"},
            ]),
            _key(SliceName.CATEGORIES): json.dumps([
                {"id": "rent", "name": "Rent", "icon": "home"},
            ]),
        })
        store = _new_store()
        await PersistenceCoordinator(store, kv_store).hydrate()

        by_id = {t.id: t for t in store.state.transactions}
        assert by_id["t1"].account_id == "bank"
        assert by_id["t1"].category_id == "rent"
        assert by_id["t2"].account_id == "bank"
        assert by_id["t2"].category_id == DEFAULT_CATEGORY_ID

    @pytest.mark.asyncio
    async def test_malformed_slice_keeps_defaults(self):
        """Test one unreadable slice does not stop the others."""
        kv_store = InMemoryKeyValueStore({
            _key(SliceName.BUDGETS): "{not json",
            _key(SliceName.THEME_PREFERENCE): '"light"',
        })
        store = _new_store()
        coordinator = PersistenceCoordinator(store, kv_store)

        state = await coordinator.hydrate()

        assert coordinator.is_ready is True
        assert state.budgets == ()
        assert state.theme_preference == ThemePreference.LIGHT

    @pytest.mark.asyncio
    async def test_hydration_is_audited(self):
        """Test every slice load and the ready state are recorded."""
        audit_logger = AuditLogger()
        kv_store = InMemoryKeyValueStore({_key(SliceName.BUDGETS): "{not json"})
        coordinator = PersistenceCoordinator(_new_store(), kv_store, audit_logger)

        await coordinator.hydrate()

        event_types = [event.event_type for event in audit_logger.recent_events]
        assert event_types.count(AuditEventType.SLICE_HYDRATION_FAILED) == 1
        assert event_types.count(AuditEventType.SLICE_HYDRATED) == len(SLICES) - 1
        assert event_types[-1] == AuditEventType.STATE_READY

    @pytest.mark.asyncio
    async def test_failing_read_keeps_defaults(self):
        """Test a storage error on read is absorbed."""
        kv_store = FailingReadsStore(_key(SliceName.CATEGORIES))
        store = _new_store()
        coordinator = PersistenceCoordinator(store, kv_store)

        state = await coordinator.hydrate()

        assert coordinator.is_hydrated(SliceName.CATEGORIES)
        assert state.categories == DEFAULT_CATEGORIES


class TestWriteBack:
    """Tests for writing changed slices."""

    @pytest.mark.asyncio
    async def test_not_written_before_hydration(self, make_transaction):
        """Test changes before hydration never reach storage."""
        kv_store = InMemoryKeyValueStore()
        store = _new_store()
        coordinator = PersistenceCoordinator(store, kv_store)

        store.dispatch(AddTransaction(transaction=make_transaction("t1", -1)))
        assert await coordinator.persist_slice(SliceName.TRANSACTIONS) is False
        await coordinator.flush()
        assert kv_store.writes == []

    @pytest.mark.asyncio
    async def test_only_changed_slices_written(self, make_transaction):
        """Test a transaction change rewrites only the transactions slice."""
        kv_store = InMemoryKeyValueStore()
        store = _new_store()
        coordinator = PersistenceCoordinator(store, kv_store)
        await coordinator.hydrate()
        await coordinator.flush()
        kv_store.writes.clear()

        store.dispatch(AddTransaction(transaction=make_transaction("t1", -1)))
        await coordinator.flush()

        assert [key for key, _ in kv_store.writes] == [_key(SliceName.TRANSACTIONS)]
        stored = json.loads(kv_store.snapshot()[_key(SliceName.TRANSACTIONS)])
        assert stored[0]["id"] == "t1"
        assert stored[0]["type"] == "expense"

    @pytest.mark.asyncio
    async def test_untouched_slices_not_serialized(self, make_transaction, monkeypatch):
        """Test a transaction change serializes only the transactions slice."""
        store = _new_store()
        coordinator = PersistenceCoordinator(store, InMemoryKeyValueStore())
        await coordinator.hydrate()
        await coordinator.flush()

        serialized = []

        def recording_serialize(state, name):
            serialized.append(name)
            return serialize_slice(state, name)

        monkeypatch.setattr(
            "expense_tracker.persistence.coordinator.serialize_slice", recording_serialize,
        )
        store.dispatch(AddTransaction(transaction=make_transaction("t1", -1)))
        await coordinator.flush()

        assert set(serialized) == {SliceName.TRANSACTIONS}

    @pytest.mark.asyncio
    async def test_latest_value_wins(self):
        """Test several quick changes end with the latest value stored."""
        kv_store = InMemoryKeyValueStore()
        store = _new_store()
        coordinator = PersistenceCoordinator(store, kv_store)
        await coordinator.hydrate()

        store.dispatch(SetThemePreference(theme_preference=ThemePreference.DARK))
        store.dispatch(SetThemePreference(theme_preference=ThemePreference.LIGHT))
        await coordinator.flush()

        assert kv_store.snapshot()[_key(SliceName.THEME_PREFERENCE)] == '"light"'

    @pytest.mark.asyncio
    async def test_failed_write_is_absorbed(self):
        """Test a failing store never raises into the app."""
        store = _new_store()
        coordinator = PersistenceCoordinator(store, FailingWritesStore())
        await coordinator.hydrate()

        assert coordinator.is_ready is True
        assert await coordinator.persist_slice(SliceName.THEME_PREFERENCE) is False

    @pytest.mark.asyncio
    async def test_close_stops_following(self):
        """Test a closed coordinator ignores further changes."""
        kv_store = InMemoryKeyValueStore()
        store = _new_store()
        coordinator = PersistenceCoordinator(store, kv_store)
        await coordinator.hydrate()
        await coordinator.flush()
        coordinator.close()
        kv_store.writes.clear()

        store.dispatch(SetThemePreference(theme_preference=ThemePreference.DARK))
        await coordinator.flush()
        assert kv_store.writes == []


class TestRoundTrip:
    """Tests for saving and loading the same state."""

    @pytest.mark.asyncio
    async def test_state_survives_restart(self, make_transaction):
        """Test a restarted app reads back the state it wrote."""
        kv_store = InMemoryKeyValueStore()
        store = _new_store()
        coordinator = PersistenceCoordinator(store, kv_store)
        await coordinator.hydrate()

        store.dispatch(AddTransaction(transaction=make_transaction("t1", -4.5, receipt_uri="file://r.jpg")))
        store.dispatch(AddBudget(budget=Budget(id="b1", category_id="food", amount=100, month="2024-03")))
        store.dispatch(SetThemePreference(theme_preference=ThemePreference.DARK))
        await coordinator.flush()
        before = store.state
        written = kv_store.snapshot()

        restarted = Store(build_initial_state(now=datetime(2025, 1, 1, tzinfo=timezone.utc)))
        second = PersistenceCoordinator(restarted, kv_store)
        await second.hydrate()
        await second.flush()

        assert restarted.state == before
        assert kv_store.snapshot() == written

"""
Persistence Coordinator

Loads every state slice at startup and writes slices back whenever
they change.

DESIGN DECISION: Each slice is independent.
- On hydrate, every slice is read, normalized and applied as its own task
  (no ordering between slices). Whatever happens, the slice is then
  marked hydrated and written once, so a fresh install stores its
  initial state.
- A slice is never written before it is hydrated. This keeps the initial
  in-memory defaults from overwriting stored data while loading.
- Writes of one slice are serialized by a per-slice lock and always
  store the slice's value at the time of writing, so the latest state wins.
- Failures (unreadable storage, malformed JSON, failed writes) are logged
  and never raised. The previously stored value stays authoritative.

Once every slice is in, dangling transaction references are repaired
with a single `ReconcileReferences` action.
"""

import asyncio
import json
from typing import Any, Iterable, Optional

import structlog

from expense_tracker.audit import AuditLogger
from expense_tracker.models.actions import ReconcileReferences
from expense_tracker.models.audit import AuditEventBuilder
from expense_tracker.models.ledger import AppState
from expense_tracker.persistence.slices import SLICES, Slice, SliceName, serialize_slice
from expense_tracker.services.storage import KeyValueStore
from expense_tracker.state import Store


logger = structlog.get_logger(__name__)


class PersistenceCoordinator:
    """
    Keeps a Store and a KeyValueStore in step.

    Usage:
        coordinator = PersistenceCoordinator(store, kv_store)
        await coordinator.hydrate()
        store.dispatch(...)          # changed slices are written in the background
        await coordinator.flush()    # wait for pending writes
    """

    def __init__(
        self,
        store: Store,
        kv_store: KeyValueStore,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._store = store
        self._kv_store = kv_store
        self._audit = audit_logger or AuditLogger()

        self._hydrated: set[SliceName] = set()
        self._ready = False
        self._locks = {name: asyncio.Lock() for name in SLICES}
        self._dirty: set[SliceName] = set()
        self._pending: set[asyncio.Task] = set()

        self._unsubscribe = store.subscribe(self._on_state_change)

    # -------------------------------------------------------------------------
    # Status
    # -------------------------------------------------------------------------

    @property
    def is_ready(self) -> bool:
        """True once every slice has been hydrated."""
        return self._ready

    @property
    def hydrated_slices(self) -> frozenset[SliceName]:
        return frozenset(self._hydrated)

    def is_hydrated(self, name: SliceName) -> bool:
        return SliceName(name) in self._hydrated

    # -------------------------------------------------------------------------
    # Hydration
    # -------------------------------------------------------------------------

    async def hydrate(self) -> AppState:
        """
        Load every slice into the store.

        Returns the state after hydration. Never raises for storage or
        data problems; affected slices keep their defaults.
        """
        await asyncio.gather(*(self._hydrate_slice(entry) for entry in SLICES.values()))

        self._store.dispatch(ReconcileReferences())
        self._ready = True
        await self._audit.log(AuditEventBuilder.state_ready([name.value for name in SLICES]))
        return self._store.state

    async def _hydrate_slice(self, entry: Slice) -> None:
        try:
            stored = await self._kv_store.get(entry.key)
            if stored:
                action = entry.load(json.loads(stored))
                if action is not None:
                    self._store.dispatch(action)
            await self._audit.log(
                AuditEventBuilder.slice_hydrated(entry.name.value, entry.key, found=bool(stored))
            )
        except Exception as e:
            await self._audit.log(
                AuditEventBuilder.slice_hydration_failed(entry.name.value, entry.key, str(e))
            )
        finally:
            self._hydrated.add(entry.name)

        await self.persist_slice(entry.name)

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------

    def _on_state_change(self, previous: AppState, current: AppState, action: Any) -> None:
        for name in self._changed_slices(previous, current):
            self._dirty.add(name)
            self._schedule(name)

    def _changed_slices(self, previous: AppState, current: AppState) -> Iterable[SliceName]:
        for name, entry in SLICES.items():
            if name not in self._hydrated:
                continue
            # The reducer keeps untouched fields identical
            if getattr(previous, entry.field) is getattr(current, entry.field):
                continue
            if serialize_slice(previous, name) != serialize_slice(current, name):
                yield name

    def _schedule(self, name: SliceName) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No loop: the slice stays dirty until flush()
            logger.debug("persist_deferred", slice=name.value)
            return
        task = loop.create_task(self.persist_slice(name))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def persist_slice(self, name: SliceName) -> bool:
        """
        Write one slice with its current value.

        Returns False if the slice is not hydrated yet or the write failed.
        """
        name = SliceName(name)
        entry = SLICES[name]
        if name not in self._hydrated:
            logger.debug("persist_skipped_not_hydrated", slice=name.value)
            return False

        async with self._locks[name]:
            self._dirty.discard(name)
            value = serialize_slice(self._store.state, name)
            try:
                saved = await self._kv_store.set(entry.key, value)
            except Exception as e:
                await self._audit.log(
                    AuditEventBuilder.slice_persist_failed(name.value, entry.key, str(e))
                )
                return False

            if not saved:
                await self._audit.log(
                    AuditEventBuilder.slice_persist_failed(name.value, entry.key, "store rejected write")
                )
                return False

            await self._audit.log(AuditEventBuilder.slice_persisted(name.value, entry.key, len(value)))
            return True

    async def flush(self) -> None:
        """Wait until every scheduled or deferred write has been attempted."""
        while self._pending or (self._dirty & self._hydrated):
            if self._pending:
                await asyncio.gather(*list(self._pending), return_exceptions=True)
            for name in list(self._dirty & self._hydrated):
                await self.persist_slice(name)

    def close(self) -> None:
        """Stop following the store. Pending writes are not cancelled."""
        self._unsubscribe()

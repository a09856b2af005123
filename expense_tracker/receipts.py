"""
Receipt Lifecycle

Receipt images are owned by an external file store. A transaction only
holds the receipt's URI. When no transaction refers to a URI any more
(the transaction was deleted, or its receipt replaced or cleared), the
receipt store is told to release it.

The core never reads receipt bytes.
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Any, Optional

import structlog

from expense_tracker.audit import AuditLogger
from expense_tracker.models.audit import AuditEventBuilder
from expense_tracker.models.ledger import AppState
from expense_tracker.state import Store


logger = structlog.get_logger(__name__)


class ReceiptStore(ABC):
    """Owner of the receipt files."""

    @abstractmethod
    async def release(self, uri: str) -> None:
        """Forget (typically delete) the receipt at `uri`."""
        pass


def referenced_receipts(state: AppState) -> set[str]:
    return {t.receipt_uri for t in state.transactions if t.receipt_uri}


def released_receipts(previous: AppState, current: AppState) -> list[str]:
    """Receipt URIs referenced before the change and by nothing after it."""
    if previous.transactions is current.transactions:
        return []
    return sorted(referenced_receipts(previous) - referenced_receipts(current))


class ReceiptJanitor:
    """
    Store subscriber that releases receipts as soon as they are orphaned.

    Release failures are logged, never raised.
    """

    def __init__(
        self,
        store: Store,
        receipt_store: ReceiptStore,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._receipt_store = receipt_store
        self._audit = audit_logger or AuditLogger()
        self._pending: set[asyncio.Task] = set()
        self._unsubscribe = store.subscribe(self._on_state_change)

    def _on_state_change(self, previous: AppState, current: AppState, action: Any) -> None:
        uris = released_receipts(previous, current)
        if not uris:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("receipt_release_skipped_no_loop", uris=uris)
            return
        for uri in uris:
            task = loop.create_task(self.release(uri))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)

    async def release(self, uri: str) -> bool:
        try:
            await self._receipt_store.release(uri)
        except Exception as e:
            await self._audit.log(AuditEventBuilder.receipt_release_failed(uri, str(e)))
            return False
        await self._audit.log(AuditEventBuilder.receipt_released(uri))
        return True

    async def flush(self) -> None:
        """Wait for releases that are still running."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def close(self) -> None:
        self._unsubscribe()

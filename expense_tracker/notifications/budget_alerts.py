"""
Budget Alerts

When an expense pushes a category past the alert threshold of its
monthly budget, the user is notified once per (category, month).

DESIGN DECISION: The "already sent" flags live in the key-value store,
one key per (category, month), so they survive restarts. Checking the
flag, firing and setting the flag is not atomic, so evaluations are
serialized with a lock; two concurrent expenses cannot both fire.
"""

import asyncio
import math
from typing import Optional

from expense_tracker.analytics import (
    DEFAULT_ALERT_THRESHOLD,
    budget_progress,
    month_key,
    should_send_budget_alert,
)
from expense_tracker.audit import AuditLogger
from expense_tracker.models.audit import AuditEventBuilder
from expense_tracker.models.ledger import AppState, Transaction
from expense_tracker.notifications.dispatcher import NotificationDispatcher
from expense_tracker.services.storage import KeyValueStore


BUDGET_ALERT_PREFIX = "notifications_budget_alert_sent_"


class BudgetAlertLedger:
    """Persistent record of which budget alerts have already fired."""

    def __init__(self, kv_store: KeyValueStore):
        self._kv_store = kv_store
        self._fired: set[str] = set()

    @staticmethod
    def build_key(category_id: str, month: str) -> str:
        return f"{BUDGET_ALERT_PREFIX}{category_id}_{month}"

    async def has_fired(self, key: str) -> bool:
        if key in self._fired:
            return True
        return await self._kv_store.get(key) == "true"

    async def mark_fired(self, key: str) -> bool:
        """
        Record the alert as sent. Returns False when the store rejected the flag.

        The flag is also held in memory for the lifetime of the ledger.
        """
        self._fired.add(key)
        return await self._kv_store.set(key, "true")


class BudgetAlertService:
    """
    Evaluates a saved transaction against its category's budget.

    Usage:
        store.dispatch(AddTransaction(transaction=expense))
        await alerts.evaluate(expense, store.state)
    """

    def __init__(
        self,
        ledger: BudgetAlertLedger,
        dispatcher: NotificationDispatcher,
        threshold: float = DEFAULT_ALERT_THRESHOLD,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._ledger = ledger
        self._dispatcher = dispatcher
        self._threshold = threshold
        self._audit = audit_logger or AuditLogger()
        self._lock = asyncio.Lock()

    async def evaluate(self, transaction: Transaction, state: AppState) -> bool:
        """
        Fire the budget alert for the transaction's category if due.

        `state` must already contain the transaction. Returns True only
        when a notification was sent.
        """
        if not transaction.is_expense or not transaction.category_id:
            return False

        month = month_key(transaction.date)
        budget = next(
            (
                b for b in state.budgets
                if b.category_id == transaction.category_id and b.month == month and b.amount > 0
            ),
            None,
        )
        if budget is None:
            return False

        category = state.find_category(budget.category_id)
        progress = budget_progress(budget, state.transactions, category)
        if not should_send_budget_alert(progress, self._threshold):
            return False

        key = self._ledger.build_key(budget.category_id, budget.month)
        category_name = category.name if category else "this category"
        percent_used = math.floor(progress.spent * 100 / budget.amount + 0.5)

        async with self._lock:
            try:
                if await self._ledger.has_fired(key):
                    await self._audit.log(
                        AuditEventBuilder.budget_alert_skipped(key, "already sent this month")
                    )
                    return False

                await self._dispatcher.fire_once(
                    "Budget Alert",
                    f"You have used {percent_used}% of your budget "
                    f"for {category_name} this month.",
                )
                marked = await self._ledger.mark_fired(key)
            except Exception as e:
                await self._audit.log(AuditEventBuilder.budget_alert_failed(key, str(e)))
                return False

        if not marked:
            await self._audit.log(AuditEventBuilder.budget_alert_failed(key, "sent flag was not stored"))

        await self._audit.log(AuditEventBuilder.budget_alert_sent(key, category_name, progress.progress))
        return True

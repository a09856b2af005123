"""
Main Orchestrator for Expense Tracker

This module ties the components together and defines the end-to-end
flows around the state core:
1. Start-up (load every slice → ready)
2. Save a transaction (validate → dispatch → budget alert)
3. Shut-down (wait for pending writes)

DESIGN DECISION: The orchestrator enforces the boundaries:
- Only validated forms become actions
- The reducer never performs I/O; alerts and storage happen around it
- Every side effect is audited

Presentation code talks to `ExpenseTrackerApp`, never to storage directly.
"""

from datetime import datetime
from typing import Optional, Union

import structlog

from expense_tracker.analytics import monthly_expense_trend
from expense_tracker.audit import AuditLogger
from expense_tracker.config import AppSettings, get_settings
from expense_tracker.models.actions import AddTransaction
from expense_tracker.models.currency import find_currency_by_code
from expense_tracker.models.ledger import AppState, Transaction
from expense_tracker.models.views import MonthlyTotal
from expense_tracker.notifications import (
    BudgetAlertLedger,
    BudgetAlertService,
    LoggingNotificationDispatcher,
    NotificationDispatcher,
    ReminderService,
)
from expense_tracker.persistence import PersistenceCoordinator
from expense_tracker.receipts import ReceiptJanitor, ReceiptStore
from expense_tracker.services.storage import (
    GoogleSheetsKeyValueStore,
    InMemoryKeyValueStore,
    JsonFileKeyValueStore,
    KeyValueStore,
)
from expense_tracker.state import Store, build_initial_state
from expense_tracker.validation import build_transaction_actions


logger = structlog.get_logger(__name__)


class ExpenseTrackerApp:
    """
    The assembled application core.

    Flow for saving a transaction:
    1. Validate → the form is checked against the current state
    2. Dispatch → category (if new) and transaction actions
    3. Persist → changed slices are written in the background
    4. Alert → the category's budget is checked for the saved expense
    """

    def __init__(
        self,
        store: Store,
        coordinator: PersistenceCoordinator,
        budget_alerts: BudgetAlertService,
        reminders: ReminderService,
        receipt_janitor: Optional[ReceiptJanitor] = None,
        trend_months: int = 6,
    ):
        self.store = store
        self.coordinator = coordinator
        self.budget_alerts = budget_alerts
        self.reminders = reminders
        self.receipt_janitor = receipt_janitor
        self.trend_months = trend_months

    @property
    def state(self) -> AppState:
        return self.store.state

    @property
    def is_ready(self) -> bool:
        return self.coordinator.is_ready

    async def start(self) -> AppState:
        """Load every stored slice. The app is ready when this returns."""
        return await self.coordinator.hydrate()

    async def save_transaction(
        self,
        title: Optional[str],
        amount: Union[str, int, float, None],
        category_name: Optional[str],
        account_id: Optional[str],
        date: Union[datetime, str, None] = None,
        receipt_uri: Optional[str] = None,
        transaction_id: Optional[str] = None,
    ) -> tuple[Transaction, bool]:
        """
        Validate and save a transaction form.

        Returns:
            (saved_transaction, budget_alert_sent)

        Raises:
            FormValidationError: if the form is invalid. Nothing is dispatched.
        """
        actions = build_transaction_actions(
            self.store.state,
            title=title,
            amount=amount,
            category_name=category_name,
            account_id=account_id,
            date=date,
            receipt_uri=receipt_uri,
            transaction_id=transaction_id,
        )
        for action in actions:
            self.store.dispatch(action)

        final = actions[-1]
        saved_id = final.transaction.id if isinstance(final, AddTransaction) else final.patch.id
        saved = next(t for t in self.store.state.transactions if t.id == saved_id)

        alert_sent = await self.budget_alerts.evaluate(saved, self.store.state)
        return saved, alert_sent

    def spending_trend(self, reference: Optional[datetime] = None) -> list[MonthlyTotal]:
        """Expense totals for the configured number of trailing months."""
        return monthly_expense_trend(self.store.state.transactions, self.trend_months, reference)

    async def shutdown(self) -> None:
        """Wait for pending writes and receipt releases, then detach from the store."""
        await self.coordinator.flush()
        if self.receipt_janitor is not None:
            await self.receipt_janitor.flush()
            self.receipt_janitor.close()
        self.coordinator.close()


def create_key_value_store(app_settings: Optional[AppSettings] = None) -> KeyValueStore:
    """Build the key-value store selected in the settings."""
    app_settings = app_settings or get_settings().app

    if app_settings.storage_backend == "memory":
        return InMemoryKeyValueStore()
    if app_settings.storage_backend == "google_sheets":
        return GoogleSheetsKeyValueStore()
    return JsonFileKeyValueStore(app_settings.json_store_path)


def create_app_components(
    kv_store: Optional[KeyValueStore] = None,
    dispatcher: Optional[NotificationDispatcher] = None,
    receipt_store: Optional[ReceiptStore] = None,
    app_settings: Optional[AppSettings] = None,
    now: Optional[datetime] = None,
) -> ExpenseTrackerApp:
    """
    Factory function to create all application components.

    Args:
        kv_store: Storage to use. Defaults to the configured backend;
                  falls back to in-memory storage if that cannot be built.
        dispatcher: Notification dispatcher. Defaults to a logging one.
        receipt_store: Owner of receipt files. Without one, orphaned
                       receipts are not released.
        app_settings: Settings to use instead of the environment.
        now: Reference time for the initial date filter.

    Returns:
        The assembled ExpenseTrackerApp (not yet started)
    """
    app_settings = app_settings or get_settings().app
    audit_logger = AuditLogger()

    if kv_store is None:
        try:
            kv_store = create_key_value_store(app_settings)
        except Exception as e:
            # Storage not configured - continue in memory
            logger.warning("storage_not_configured", error=str(e))
            kv_store = InMemoryKeyValueStore()

    dispatcher = dispatcher or LoggingNotificationDispatcher()

    initial_state = build_initial_state(
        now=now,
        currency=find_currency_by_code(app_settings.default_currency_code),
    )
    store = Store(initial_state)

    coordinator = PersistenceCoordinator(store, kv_store, audit_logger)
    budget_alerts = BudgetAlertService(
        BudgetAlertLedger(kv_store),
        dispatcher,
        threshold=app_settings.budget_alert_threshold,
        audit_logger=audit_logger,
    )
    reminders = ReminderService(store, kv_store, dispatcher, audit_logger)
    janitor = ReceiptJanitor(store, receipt_store, audit_logger) if receipt_store is not None else None

    return ExpenseTrackerApp(
        store=store,
        coordinator=coordinator,
        budget_alerts=budget_alerts,
        reminders=reminders,
        receipt_janitor=janitor,
        trend_months=app_settings.trend_months,
    )

"""
Tests for budget alerts and the daily reminder

The notification dispatcher is the logging fake; the "already sent"
flags and reminder record live in the in-memory key-value store.
"""

import json

import pytest

from expense_tracker.audit import AuditLogger
from expense_tracker.models import (
    AddBudget,
    AddTransaction,
    Budget,
    NotificationPreferences,
    SetNotificationPreferences,
)
from expense_tracker.models.audit import AuditEventType
from expense_tracker.notifications import (
    BUDGET_ALERT_PREFIX,
    DAILY_REMINDER_PREFS_KEY,
    DEFAULT_REMINDER_PREFERENCES,
    BudgetAlertLedger,
    BudgetAlertService,
    DailyReminderPreferences,
    LoggingNotificationDispatcher,
    ReminderService,
    load_reminder_preferences,
    store_reminder_preferences,
)
from expense_tracker.services.storage import InMemoryKeyValueStore


class BrokenDispatcher(LoggingNotificationDispatcher):
    async def fire_once(self, title, body):
        raise RuntimeError("no notification channel")

    async def schedule_recurring(self, hour, minute):
        raise RuntimeError("scheduler unavailable")


class FlagRejectingStore(InMemoryKeyValueStore):
    async def set(self, key, value):
        if key.startswith(BUDGET_ALERT_PREFIX):
            return False
        return await super().set(key, value)


def _budget_state(store):
    store.dispatch(AddBudget(budget=Budget(id="b1", category_id="food", amount=100, month="2024-03")))
    return store


def _expense(store, make_transaction, id, amount, **kwargs):
    transaction = make_transaction(id, amount, **kwargs)
    store.dispatch(AddTransaction(transaction=transaction))
    return transaction


class TestBudgetAlertLedger:
    """Tests for the persisted "already sent" flags."""

    def test_key_format(self):
        """Test one key per category and month."""
        assert BudgetAlertLedger.build_key("food", "2024-03") == f"{BUDGET_ALERT_PREFIX}food_2024-03"

    @pytest.mark.asyncio
    async def test_mark_and_check(self, kv_store):
        """Test flags survive in the key-value store."""
        ledger = BudgetAlertLedger(kv_store)
        key = ledger.build_key("food", "2024-03")
        assert await ledger.has_fired(key) is False
        assert await ledger.mark_fired(key) is True
        assert await ledger.has_fired(key) is True
        assert kv_store.snapshot()[key] == "true"


class TestBudgetAlertService:
    """Tests for evaluating budget alerts."""

    @pytest.mark.asyncio
    async def test_alert_fires_once_per_month(self, store, kv_store, make_transaction):
        """Test crossing 90% alerts once, and not again the same month."""
        dispatcher = LoggingNotificationDispatcher()
        service = BudgetAlertService(BudgetAlertLedger(kv_store), dispatcher, threshold=0.9)
        _budget_state(store)

        first = _expense(store, make_transaction, "t1", -50)
        assert await service.evaluate(first, store.state) is False

        second = _expense(store, make_transaction, "t2", -45)
        assert await service.evaluate(second, store.state) is True
        assert dispatcher.fired == [
            ("Budget Alert", "You have used 95% of your budget for Food this month."),
        ]

        third = _expense(store, make_transaction, "t3", -10)
        assert await service.evaluate(third, store.state) is False
        assert len(dispatcher.fired) == 1

    @pytest.mark.asyncio
    async def test_flag_survives_new_service(self, store, kv_store, make_transaction):
        """Test a restarted service does not alert again."""
        _budget_state(store)
        expense = _expense(store, make_transaction, "t1", -95)

        first = BudgetAlertService(BudgetAlertLedger(kv_store), LoggingNotificationDispatcher())
        assert await first.evaluate(expense, store.state) is True

        dispatcher = LoggingNotificationDispatcher()
        second = BudgetAlertService(BudgetAlertLedger(kv_store), dispatcher)
        assert await second.evaluate(expense, store.state) is False
        assert dispatcher.fired == []

    @pytest.mark.asyncio
    async def test_income_and_unbudgeted_never_alert(self, store, kv_store, make_transaction):
        """Test only budgeted expenses are evaluated."""
        dispatcher = LoggingNotificationDispatcher()
        service = BudgetAlertService(BudgetAlertLedger(kv_store), dispatcher)
        _budget_state(store)

        income = _expense(store, make_transaction, "t1", 500)
        other_category = _expense(store, make_transaction, "t2", -500, category_id="bills")
        other_month = _expense(store, make_transaction, "t3", -500, date="2024-04-02T00:00:00.000Z")

        for transaction in (income, other_category, other_month):
            assert await service.evaluate(transaction, store.state) is False
        assert dispatcher.fired == []

    @pytest.mark.asyncio
    async def test_rejected_flag_does_not_alert_twice(self, store, make_transaction):
        """Test a flag the store refused is still honoured and reported."""
        audit_logger = AuditLogger()
        dispatcher = LoggingNotificationDispatcher()
        service = BudgetAlertService(
            BudgetAlertLedger(FlagRejectingStore()), dispatcher, audit_logger=audit_logger,
        )
        _budget_state(store)

        first = _expense(store, make_transaction, "t1", -95)
        assert await service.evaluate(first, store.state) is True
        second = _expense(store, make_transaction, "t2", -1)
        assert await service.evaluate(second, store.state) is False

        assert len(dispatcher.fired) == 1
        event_types = [event.event_type for event in audit_logger.recent_events]
        assert AuditEventType.BUDGET_ALERT_FAILED in event_types

    @pytest.mark.asyncio
    async def test_percentage_rounds_half_up(self, store, kv_store, make_transaction):
        """Test 92.5% is reported as 93%."""
        store.dispatch(AddBudget(budget=Budget(id="b1", category_id="food", amount=200, month="2024-03")))
        dispatcher = LoggingNotificationDispatcher()
        service = BudgetAlertService(BudgetAlertLedger(kv_store), dispatcher, threshold=0.9)

        expense = _expense(store, make_transaction, "t1", -185)
        assert await service.evaluate(expense, store.state) is True
        assert dispatcher.fired == [
            ("Budget Alert", "You have used 93% of your budget for Food this month."),
        ]

    @pytest.mark.asyncio
    async def test_dispatch_failure_is_not_marked(self, store, kv_store, make_transaction):
        """Test a failed notification is retried next time."""
        _budget_state(store)
        expense = _expense(store, make_transaction, "t1", -99)

        broken = BudgetAlertService(BudgetAlertLedger(kv_store), BrokenDispatcher())
        assert await broken.evaluate(expense, store.state) is False

        dispatcher = LoggingNotificationDispatcher()
        working = BudgetAlertService(BudgetAlertLedger(kv_store), dispatcher)
        assert await working.evaluate(expense, store.state) is True


class TestReminderPreferences:
    """Tests for the stored reminder record."""

    @pytest.mark.asyncio
    async def test_defaults_when_missing_or_broken(self, kv_store):
        """Test unreadable records give the defaults."""
        assert await load_reminder_preferences(kv_store) == DEFAULT_REMINDER_PREFERENCES
        await kv_store.set(DAILY_REMINDER_PREFS_KEY, "{oops")
        assert await load_reminder_preferences(kv_store) == DEFAULT_REMINDER_PREFERENCES

    @pytest.mark.asyncio
    async def test_partial_record_merged(self, kv_store):
        """Test stored fields are merged over the defaults."""
        await kv_store.set(DAILY_REMINDER_PREFS_KEY, json.dumps({"enabled": True}))
        preferences = await load_reminder_preferences(kv_store)
        assert preferences.enabled is True
        assert preferences.hour == 20

    @pytest.mark.asyncio
    async def test_store_then_load(self, kv_store):
        """Test a stored record is read back."""
        await store_reminder_preferences(kv_store, DailyReminderPreferences(enabled=True, hour=7, minute=30))
        preferences = await load_reminder_preferences(kv_store)
        assert (preferences.enabled, preferences.hour, preferences.minute) == (True, 7, 30)


class TestReminderService:
    """Tests for turning the daily reminder on and off."""

    @pytest.mark.asyncio
    async def test_enable(self, store, kv_store):
        """Test enabling schedules the reminder and updates the state."""
        dispatcher = LoggingNotificationDispatcher()
        service = ReminderService(store, kv_store, dispatcher)

        assert await service.update(True, hour=7, minute=30) is True
        assert dispatcher.scheduled == (7, 30)
        assert store.state.notification_preferences.daily_reminder_enabled is True
        assert store.state.notification_preferences.daily_reminder_hour == 7

        stored = await load_reminder_preferences(kv_store)
        assert (stored.enabled, stored.hour, stored.minute) == (True, 7, 30)

    @pytest.mark.asyncio
    async def test_permission_denied_changes_nothing(self, store, kv_store):
        """Test a denied permission leaves state and storage alone."""
        before = store.state
        service = ReminderService(store, kv_store, LoggingNotificationDispatcher(permission_granted=False))

        assert await service.update(True) is False
        assert store.state is before
        assert kv_store.writes == []

    @pytest.mark.asyncio
    async def test_scheduler_failure_changes_nothing(self, store, kv_store):
        """Test a dispatcher error is reported as failure."""
        before = store.state
        service = ReminderService(store, kv_store, BrokenDispatcher())

        assert await service.update(True, hour=9) is False
        assert store.state is before

    @pytest.mark.asyncio
    async def test_disable_cancels(self, store, kv_store):
        """Test disabling an enabled reminder cancels it and keeps the time."""
        store.dispatch(SetNotificationPreferences(preferences=NotificationPreferences(
            daily_reminder_enabled=True, daily_reminder_hour=6, daily_reminder_minute=15,
        )))
        dispatcher = LoggingNotificationDispatcher()
        dispatcher.scheduled = (6, 15)
        service = ReminderService(store, kv_store, dispatcher)

        assert await service.update(False) is True
        assert dispatcher.scheduled is None
        preferences = store.state.notification_preferences
        assert preferences.daily_reminder_enabled is False
        assert (preferences.daily_reminder_hour, preferences.daily_reminder_minute) == (6, 15)

    @pytest.mark.asyncio
    async def test_invalid_time_rejected(self, store, kv_store):
        """Test out-of-range times are refused."""
        dispatcher = LoggingNotificationDispatcher()
        service = ReminderService(store, kv_store, dispatcher)

        assert await service.update(True, hour=25) is False
        assert dispatcher.scheduled is None

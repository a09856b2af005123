"""Budget alerts, the daily reminder and the dispatcher interface they use."""

from expense_tracker.notifications.budget_alerts import (
    BUDGET_ALERT_PREFIX,
    BudgetAlertLedger,
    BudgetAlertService,
)
from expense_tracker.notifications.dispatcher import (
    LoggingNotificationDispatcher,
    NotificationDispatcher,
)
from expense_tracker.notifications.reminders import (
    DAILY_REMINDER_PREFS_KEY,
    DEFAULT_REMINDER_PREFERENCES,
    DailyReminderPreferences,
    ReminderService,
    load_reminder_preferences,
    store_reminder_preferences,
)

__all__ = [
    "BUDGET_ALERT_PREFIX",
    "BudgetAlertLedger",
    "BudgetAlertService",
    "DAILY_REMINDER_PREFS_KEY",
    "DEFAULT_REMINDER_PREFERENCES",
    "DailyReminderPreferences",
    "LoggingNotificationDispatcher",
    "NotificationDispatcher",
    "ReminderService",
    "load_reminder_preferences",
    "store_reminder_preferences",
]

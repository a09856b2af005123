"""
Daily Reminder

The daily "log your expenses" reminder. Its settings are kept twice:
in the state (notificationPreferences slice) and as a small record of
its own that the platform side reads when rescheduling.
"""

import json
from typing import Optional

import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from expense_tracker.audit import AuditLogger
from expense_tracker.models.actions import SetNotificationPreferences
from expense_tracker.models.audit import AuditEventBuilder
from expense_tracker.models.ledger import NotificationPreferences
from expense_tracker.notifications.dispatcher import NotificationDispatcher
from expense_tracker.services.storage import KeyValueStore
from expense_tracker.state import Store


logger = structlog.get_logger(__name__)

DAILY_REMINDER_PREFS_KEY = "notifications_daily_reminder_preferences_v1"


class DailyReminderPreferences(BaseModel):
    model_config = ConfigDict(frozen=True)

    enabled: bool = False
    hour: int = Field(default=20, ge=0, le=23)
    minute: int = Field(default=0, ge=0, le=59)


DEFAULT_REMINDER_PREFERENCES = DailyReminderPreferences()


async def load_reminder_preferences(kv_store: KeyValueStore) -> DailyReminderPreferences:
    """Stored fields merged over the defaults. Any failure gives the defaults."""
    try:
        stored = await kv_store.get(DAILY_REMINDER_PREFS_KEY)
        if not stored:
            return DEFAULT_REMINDER_PREFERENCES
        return DailyReminderPreferences.model_validate({
            **DEFAULT_REMINDER_PREFERENCES.model_dump(),
            **json.loads(stored),
        })
    except Exception as e:
        logger.warning("reminder_preferences_load_failed", error=str(e))
        return DEFAULT_REMINDER_PREFERENCES


async def store_reminder_preferences(
    kv_store: KeyValueStore,
    preferences: DailyReminderPreferences,
) -> bool:
    return await kv_store.set(DAILY_REMINDER_PREFS_KEY, preferences.model_dump_json())


class ReminderService:
    """
    Turns the daily reminder on, off, or moves it.

    External side effects go first. If permission is denied or the
    dispatcher fails, nothing in the state changes.
    """

    def __init__(
        self,
        store: Store,
        kv_store: KeyValueStore,
        dispatcher: NotificationDispatcher,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._store = store
        self._kv_store = kv_store
        self._dispatcher = dispatcher
        self._audit = audit_logger or AuditLogger()

    async def update(
        self,
        enabled: bool,
        hour: Optional[int] = None,
        minute: Optional[int] = None,
    ) -> bool:
        """
        Apply new reminder settings. Omitted hour/minute keep their current values.

        Returns False if the reminder could not be updated.
        """
        current = self._store.state.notification_preferences
        hour = current.daily_reminder_hour if hour is None else hour
        minute = current.daily_reminder_minute if minute is None else minute

        try:
            updated = NotificationPreferences(
                daily_reminder_enabled=enabled,
                daily_reminder_hour=hour,
                daily_reminder_minute=minute,
            )
        except ValidationError as e:
            await self._audit.log(AuditEventBuilder.reminder_update_failed(str(e)))
            return False

        try:
            if enabled:
                if not await self._dispatcher.request_permission():
                    raise PermissionError("Notification permission not granted")
                await self._dispatcher.schedule_recurring(hour, minute)
            elif current.daily_reminder_enabled:
                await self._dispatcher.cancel_recurring()
        except Exception as e:
            await self._audit.log(AuditEventBuilder.reminder_update_failed(str(e)))
            return False

        self._store.dispatch(SetNotificationPreferences(preferences=updated))

        try:
            await store_reminder_preferences(
                self._kv_store,
                DailyReminderPreferences(enabled=enabled, hour=hour, minute=minute),
            )
        except Exception as e:
            # The reminder is already (un)scheduled; only the copy is stale
            await self._audit.log(AuditEventBuilder.reminder_update_failed(str(e)))
            return False

        await self._audit.log(AuditEventBuilder.reminder_updated(enabled, hour, minute))
        return True

"""
Notification Dispatcher

Delivering notifications is platform work that lives outside the core.
The core only talks to this interface, and only from outside the reducer.
"""

from abc import ABC, abstractmethod
from typing import Optional

import structlog


logger = structlog.get_logger(__name__)


class NotificationDispatcher(ABC):
    """Interface to whatever actually shows notifications to the user."""

    @abstractmethod
    async def request_permission(self) -> bool:
        """Ask for permission to notify. Returns True if granted."""
        pass

    @abstractmethod
    async def schedule_recurring(self, hour: int, minute: int) -> None:
        """Schedule the daily reminder, replacing any existing one."""
        pass

    @abstractmethod
    async def cancel_recurring(self) -> None:
        pass

    @abstractmethod
    async def fire_once(self, title: str, body: str) -> None:
        """Show a notification immediately."""
        pass


class LoggingNotificationDispatcher(NotificationDispatcher):
    """
    Dispatcher that only logs and remembers what it was asked to do.

    Used for headless runs and in tests.
    """

    def __init__(self, permission_granted: bool = True):
        self.permission_granted = permission_granted
        self.scheduled: Optional[tuple[int, int]] = None
        self.fired: list[tuple[str, str]] = []

    async def request_permission(self) -> bool:
        logger.info("notification_permission_requested", granted=self.permission_granted)
        return self.permission_granted

    async def schedule_recurring(self, hour: int, minute: int) -> None:
        self.scheduled = (hour, minute)
        logger.info("daily_reminder_scheduled", hour=hour, minute=minute)

    async def cancel_recurring(self) -> None:
        self.scheduled = None
        logger.info("daily_reminder_cancelled")

    async def fire_once(self, title: str, body: str) -> None:
        self.fired.append((title, body))
        logger.info("notification_fired", title=title, body=body)

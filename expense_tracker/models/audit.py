"""
Audit Models for Expense Tracker

Every significant side effect around the pure core is logged for audit
purposes: loading and saving state slices, firing budget alerts,
scheduling reminders, releasing receipts. This provides:
1. Traceability of what was read from and written to storage
2. Debugging information when a slice fails to load or save
3. A record of which alerts were sent to the user

DESIGN DECISION: The reducer itself is never audited. It is pure and
cannot fail; only the I/O around it is.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Hydration / persistence
    SLICE_HYDRATED = "slice_hydrated"
    SLICE_HYDRATION_FAILED = "slice_hydration_failed"
    SLICE_PERSISTED = "slice_persisted"
    SLICE_PERSIST_FAILED = "slice_persist_failed"
    STATE_READY = "state_ready"

    # Budget alerts
    BUDGET_ALERT_SENT = "budget_alert_sent"
    BUDGET_ALERT_SKIPPED = "budget_alert_skipped"
    BUDGET_ALERT_FAILED = "budget_alert_failed"

    # Reminders
    REMINDER_UPDATED = "reminder_updated"
    REMINDER_UPDATE_FAILED = "reminder_update_failed"

    # Receipts
    RECEIPT_RELEASED = "receipt_released"
    RECEIPT_RELEASE_FAILED = "receipt_release_failed"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'slice', 'budget', 'receipt')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="Storage key, alert key or id the event relates to"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )

    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_code: Optional[str] = None
    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "description": self.description,
            "details": self.details,
            "error_code": self.error_code,
            "error_message": self.error_message,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.slice_hydrated("transactions", key, found=True)
        event = AuditEventBuilder.budget_alert_sent(alert_key, "Food", 0.95)
    """

    @staticmethod
    def slice_hydrated(slice_name: str, key: str, found: bool) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SLICE_HYDRATED,
            severity=AuditSeverity.DEBUG,
            entity_type="slice",
            entity_id=key,
            description=f"Slice hydrated: {slice_name}",
            details={"slice": slice_name, "found": found},
        )

    @staticmethod
    def slice_hydration_failed(slice_name: str, key: str, error: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SLICE_HYDRATION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="slice",
            entity_id=key,
            description=f"Failed to load slice {slice_name}, using defaults",
            details={"slice": slice_name},
            error_code="HYDRATION_FAILED",
            error_message=error,
        )

    @staticmethod
    def slice_persisted(slice_name: str, key: str, size: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SLICE_PERSISTED,
            severity=AuditSeverity.DEBUG,
            entity_type="slice",
            entity_id=key,
            description=f"Slice persisted: {slice_name}",
            details={"slice": slice_name, "size": size},
        )

    @staticmethod
    def slice_persist_failed(slice_name: str, key: str, error: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SLICE_PERSIST_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="slice",
            entity_id=key,
            description=f"Failed to save slice {slice_name}",
            details={"slice": slice_name},
            error_code="PERSIST_FAILED",
            error_message=error,
        )

    @staticmethod
    def state_ready(slices: list[str]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STATE_READY,
            description="All slices hydrated",
            details={"slices": slices},
        )

    @staticmethod
    def budget_alert_sent(alert_key: str, category_name: str, progress: float) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BUDGET_ALERT_SENT,
            entity_type="budget_alert",
            entity_id=alert_key,
            description=f"Budget alert sent for {category_name}",
            details={"category": category_name, "progress": round(progress, 4)},
        )

    @staticmethod
    def budget_alert_skipped(alert_key: str, reason: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BUDGET_ALERT_SKIPPED,
            severity=AuditSeverity.DEBUG,
            entity_type="budget_alert",
            entity_id=alert_key,
            description=f"Budget alert skipped: {reason}",
            details={"reason": reason},
        )

    @staticmethod
    def budget_alert_failed(alert_key: str, error: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BUDGET_ALERT_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="budget_alert",
            entity_id=alert_key,
            description="Budget alert could not be evaluated",
            error_code="BUDGET_ALERT_FAILED",
            error_message=error,
        )

    @staticmethod
    def reminder_updated(enabled: bool, hour: int, minute: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REMINDER_UPDATED,
            entity_type="reminder",
            description=(
                f"Daily reminder set for {hour:02d}:{minute:02d}"
                if enabled else "Daily reminder disabled"
            ),
            details={"enabled": enabled, "hour": hour, "minute": minute},
        )

    @staticmethod
    def reminder_update_failed(error: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REMINDER_UPDATE_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="reminder",
            description="Unable to update reminder settings",
            error_code="REMINDER_UPDATE_FAILED",
            error_message=error,
        )

    @staticmethod
    def receipt_released(uri: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECEIPT_RELEASED,
            severity=AuditSeverity.DEBUG,
            entity_type="receipt",
            entity_id=uri,
            description="Receipt no longer referenced, released",
        )

    @staticmethod
    def receipt_release_failed(uri: str, error: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECEIPT_RELEASE_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="receipt",
            entity_id=uri,
            description="Failed to release receipt",
            error_code="RECEIPT_RELEASE_FAILED",
            error_message=error,
        )

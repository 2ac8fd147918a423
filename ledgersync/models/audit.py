"""
Audit Models for Ledger Sync

Every write against a user's namespace, and every place where the core
had to leave something out of a computed figure, is recorded as an
audit event. This provides:
1. Traceability of who changed what and when
2. Debugging information when the store misbehaves
3. A visible record of amounts excluded for lack of a rate

DESIGN DECISION: Audit events are append-only. We never delete or modify them.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Entity lifecycle
    ENTITY_CREATED = "entity_created"
    ENTITY_UPDATED = "entity_updated"
    ENTITY_DELETED = "entity_deleted"
    COLLECTION_FETCHED = "collection_fetched"
    RECORD_SKIPPED = "record_skipped"

    # Preferences
    PREFERENCES_SAVED = "preferences_saved"

    # Consistency layer
    CHANGE_PUBLISHED = "change_published"
    REFRESH_COMPLETED = "refresh_completed"
    REFRESH_FAILED = "refresh_failed"
    STALE_RESPONSE_DISCARDED = "stale_response_discarded"

    # Valuation
    CONVERSION_UNAVAILABLE = "conversion_unavailable"

    # System events
    STORE_ERROR = "store_error"
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


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
        default_factory=_utcnow,
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

    # Context - whose data, which record?
    user_id: Optional[str] = Field(
        default=None,
        description="Owner of the namespace the event concerns"
    )
    entity_type: Optional[str] = Field(
        default=None,
        description="Collection name (e.g., 'accounts', 'swaps')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="Store key of the record this event relates to"
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
            "user_id": self.user_id,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.entity_created(user_id, "accounts", key)
        event = AuditEventBuilder.refresh_failed(user_id, "userAccounts", err)
    """

    @staticmethod
    def entity_created(
        user_id: str,
        entity_type: str,
        entity_id: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENTITY_CREATED,
            user_id=user_id,
            entity_type=entity_type,
            entity_id=entity_id,
            description=f"Created {entity_type} record {entity_id}",
        )

    @staticmethod
    def entity_updated(
        user_id: str,
        entity_type: str,
        entity_id: str,
        fields: list[str],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENTITY_UPDATED,
            user_id=user_id,
            entity_type=entity_type,
            entity_id=entity_id,
            description=f"Updated {entity_type} record {entity_id}",
            details={"fields": fields},
        )

    @staticmethod
    def entity_deleted(
        user_id: str,
        entity_type: str,
        entity_id: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENTITY_DELETED,
            user_id=user_id,
            entity_type=entity_type,
            entity_id=entity_id,
            description=f"Deleted {entity_type} record {entity_id}",
        )

    @staticmethod
    def collection_fetched(
        user_id: str,
        entity_type: str,
        count: int,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.COLLECTION_FETCHED,
            severity=AuditSeverity.DEBUG,
            user_id=user_id,
            entity_type=entity_type,
            description=f"Fetched {count} {entity_type} records",
            details={"count": count},
        )

    @staticmethod
    def record_skipped(
        user_id: str,
        entity_type: str,
        entity_id: str,
        error_message: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECORD_SKIPPED,
            severity=AuditSeverity.WARNING,
            user_id=user_id,
            entity_type=entity_type,
            entity_id=entity_id,
            description=f"Skipped malformed {entity_type} record {entity_id}",
            error_message=error_message,
        )

    @staticmethod
    def preferences_saved(
        user_id: str,
        preferred_currency: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PREFERENCES_SAVED,
            user_id=user_id,
            entity_type="preferences",
            description=f"Preferred currency set to {preferred_currency}",
            details={"preferred_currency": preferred_currency},
        )

    @staticmethod
    def refresh_completed(
        user_id: str,
        key: str,
        count: int,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REFRESH_COMPLETED,
            severity=AuditSeverity.DEBUG,
            user_id=user_id,
            description=f"Refreshed view for {key}",
            details={"key": key, "count": count},
        )

    @staticmethod
    def refresh_failed(
        user_id: str,
        key: str,
        error_message: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REFRESH_FAILED,
            severity=AuditSeverity.WARNING,
            user_id=user_id,
            description=f"Refresh for {key} failed; keeping previous view",
            details={"key": key},
            error_message=error_message,
        )

    @staticmethod
    def stale_response_discarded(
        user_id: str,
        key: str,
        generation: int,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STALE_RESPONSE_DISCARDED,
            severity=AuditSeverity.DEBUG,
            user_id=user_id,
            description=f"Discarded out-of-date refresh for {key}",
            details={"key": key, "generation": generation},
        )

    @staticmethod
    def conversion_unavailable(
        entity_type: str,
        entity_id: str,
        from_currency: str,
        to_currency: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CONVERSION_UNAVAILABLE,
            severity=AuditSeverity.WARNING,
            entity_type=entity_type,
            entity_id=entity_id,
            description=f"No rate for {from_currency} → {to_currency}; amount excluded",
            details={
                "from_currency": from_currency,
                "to_currency": to_currency,
            },
        )

    @staticmethod
    def store_error(
        operation: str,
        path: str,
        error_message: str,
        user_id: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORE_ERROR,
            severity=AuditSeverity.ERROR,
            user_id=user_id,
            description=f"Store {operation} failed at {path}",
            details={"operation": operation, "path": path},
            error_message=error_message,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
        )

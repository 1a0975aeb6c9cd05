"""
Audit Models for Pocket Ledger

Every ledger write is logged for audit purposes.
This provides:
1. Complete traceability of how a session became transactions
2. Debugging information when a batch commit fails
3. Ability to reconstruct history

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """
    Types of events we audit.

    Every step in the bill session lifecycle has its own event type.
    """
    # Bill sessions
    SESSION_CREATED = "session_created"
    ITEM_ADDED = "item_added"
    ITEM_DELETED = "item_deleted"
    SUMMARY_SAVED = "summary_saved"
    SESSION_CLOSED = "session_closed"

    # Conversion
    CONVERSION_COMPLETED = "conversion_completed"
    CONVERSION_SKIPPED = "conversion_skipped"
    CONVERSION_CONFLICT = "conversion_conflict"

    # Other ledger writes
    TRANSACTION_CREATED = "transaction_created"
    TRANSACTION_UPDATED = "transaction_updated"
    TRANSACTION_DELETED = "transaction_deleted"
    BUDGET_SAVED = "budget_saved"
    GOAL_CREATED = "goal_created"
    GOAL_UPDATED = "goal_updated"
    GOAL_DELETED = "goal_deleted"
    GOAL_DEPOSIT = "goal_deposit"
    PROFILE_CREATED = "profile_created"
    CATEGORY_ADDED = "category_added"

    # Failures
    VALIDATION_FAILED = "validation_failed"
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
    Every ledger write creates one of these.
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

    # Context - whose data and which document?
    owner_id: Optional[str] = Field(
        default=None,
        description="User namespace the event belongs to"
    )
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'bill_session', 'transaction')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="Store id of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., one conversion)"
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

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "owner_id": self.owner_id,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_code": self.error_code,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row suitable for Google Sheets storage.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, owner_id, entity_type,
         entity_id, correlation_id, description, details_json, error_message,
         is_user_action]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.owner_id or "",
            self.entity_type or "",
            self.entity_id or "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details, default=str) if self.details else "",
            self.error_message or "",
            str(self.is_user_action),
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.session_created(owner_id, session_id, month_key)
        event = AuditEventBuilder.conversion_completed(owner_id, session_id, 3)
    """

    @staticmethod
    def session_created(
        owner_id: str,
        session_id: str,
        title: str,
        month_key: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SESSION_CREATED,
            owner_id=owner_id,
            entity_type="bill_session",
            entity_id=session_id,
            correlation_id=correlation_id,
            description=f"Bill session created: {title}",
            details={"title": title, "month_key": month_key},
            is_user_action=True,
        )

    @staticmethod
    def item_added(
        owner_id: str,
        session_id: str,
        item_id: str,
        merchant: str,
        amount: float,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ITEM_ADDED,
            owner_id=owner_id,
            entity_type="bill_item",
            entity_id=item_id,
            correlation_id=correlation_id,
            description=f"Bill added: {merchant} - {amount:.2f}",
            details={"session_id": session_id, "merchant": merchant, "amount": amount},
            is_user_action=True,
        )

    @staticmethod
    def item_deleted(
        owner_id: str,
        session_id: str,
        item_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ITEM_DELETED,
            owner_id=owner_id,
            entity_type="bill_item",
            entity_id=item_id,
            correlation_id=correlation_id,
            description="Bill removed from session",
            details={"session_id": session_id},
            is_user_action=True,
        )

    @staticmethod
    def summary_saved(
        owner_id: str,
        session_id: str,
        total: float,
        count: int,
        closed: bool,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=(
                AuditEventType.SESSION_CLOSED if closed else AuditEventType.SUMMARY_SAVED
            ),
            owner_id=owner_id,
            entity_type="bill_session",
            entity_id=session_id,
            correlation_id=correlation_id,
            description=f"Session summary saved: {count} bills, total {total:.2f}",
            details={"total": total, "count": count, "closed": closed},
        )

    @staticmethod
    def conversion_completed(
        owner_id: str,
        session_id: str,
        transaction_ids: list[str],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CONVERSION_COMPLETED,
            owner_id=owner_id,
            entity_type="bill_session",
            entity_id=session_id,
            correlation_id=correlation_id,
            description=f"Session converted into {len(transaction_ids)} transactions",
            details={"transaction_ids": transaction_ids},
            is_user_action=True,
        )

    @staticmethod
    def conversion_skipped(
        owner_id: str,
        session_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CONVERSION_SKIPPED,
            owner_id=owner_id,
            entity_type="bill_session",
            entity_id=session_id,
            correlation_id=correlation_id,
            description="Session already converted; nothing to do",
        )

    @staticmethod
    def conversion_conflict(
        owner_id: str,
        session_id: str,
        attempt: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CONVERSION_CONFLICT,
            severity=AuditSeverity.WARNING,
            owner_id=owner_id,
            entity_type="bill_session",
            entity_id=session_id,
            correlation_id=correlation_id,
            description=f"Session changed while converting (attempt {attempt})",
            details={"attempt": attempt},
        )

    @staticmethod
    def record_written(
        event_type: AuditEventType,
        owner_id: str,
        entity_type: str,
        entity_id: str,
        description: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=event_type,
            owner_id=owner_id,
            entity_type=entity_type,
            entity_id=entity_id,
            correlation_id=correlation_id,
            description=description,
            details=details or {},
            is_user_action=True,
        )

    @staticmethod
    def validation_failed(
        owner_id: str,
        entity_type: str,
        message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            owner_id=owner_id,
            entity_type=entity_type,
            correlation_id=correlation_id,
            description=f"Rejected {entity_type}: {message}",
            error_message=message,
        )

    @staticmethod
    def store_error(
        operation: str,
        error_message: str,
        owner_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORE_ERROR,
            severity=AuditSeverity.ERROR,
            owner_id=owner_id,
            description=f"Store error during {operation}",
            error_message=error_message,
            details={"operation": operation},
            correlation_id=correlation_id,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )

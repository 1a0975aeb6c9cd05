"""
Audit Logger

DESIGN DECISION: Every ledger write is logged.
This provides:
1. Complete traceability (which session produced which transactions)
2. Debugging capability when a batch is rejected
3. A history the account owner can read

The audit logger:
- Is async so it sits naturally in the ledger's async calls
- Gracefully handles failures (doesn't crash the ledger if logging fails)
- Supports correlation IDs to trace related events
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from pocketledger.models.audit import AuditEvent, AuditEventBuilder, AuditEventType
from pocketledger.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. An audit store such as Google Sheets (for persistence)
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("pocketledger.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_session_created(
        self,
        owner_id: str,
        session_id: str,
        title: str,
        month_key: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log bill session creation."""
        await self.log(AuditEventBuilder.session_created(
            owner_id=owner_id,
            session_id=session_id,
            title=title,
            month_key=month_key,
            correlation_id=correlation_id,
        ))

    async def log_item_added(
        self,
        owner_id: str,
        session_id: str,
        item_id: str,
        merchant: str,
        amount: float,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.item_added(
            owner_id=owner_id,
            session_id=session_id,
            item_id=item_id,
            merchant=merchant,
            amount=amount,
            correlation_id=correlation_id,
        ))

    async def log_item_deleted(
        self,
        owner_id: str,
        session_id: str,
        item_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.item_deleted(
            owner_id=owner_id,
            session_id=session_id,
            item_id=item_id,
            correlation_id=correlation_id,
        ))

    async def log_summary_saved(
        self,
        owner_id: str,
        session_id: str,
        total: float,
        count: int,
        closed: bool,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a summary recompute (and close, when it set closedAt)."""
        await self.log(AuditEventBuilder.summary_saved(
            owner_id=owner_id,
            session_id=session_id,
            total=total,
            count=count,
            closed=closed,
            correlation_id=correlation_id,
        ))

    async def log_conversion_completed(
        self,
        owner_id: str,
        session_id: str,
        transaction_ids: list[str],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.conversion_completed(
            owner_id=owner_id,
            session_id=session_id,
            transaction_ids=transaction_ids,
            correlation_id=correlation_id,
        ))

    async def log_conversion_skipped(
        self,
        owner_id: str,
        session_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.conversion_skipped(
            owner_id=owner_id,
            session_id=session_id,
            correlation_id=correlation_id,
        ))

    async def log_conversion_conflict(
        self,
        owner_id: str,
        session_id: str,
        attempt: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.conversion_conflict(
            owner_id=owner_id,
            session_id=session_id,
            attempt=attempt,
            correlation_id=correlation_id,
        ))

    async def log_record_written(
        self,
        event_type: AuditEventType,
        owner_id: str,
        entity_type: str,
        entity_id: str,
        description: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a plain ledger write (transaction, budget, goal, profile)."""
        await self.log(AuditEventBuilder.record_written(
            event_type=event_type,
            owner_id=owner_id,
            entity_type=entity_type,
            entity_id=entity_id,
            description=description,
            details=details,
            correlation_id=correlation_id,
        ))

    async def log_validation_failed(
        self,
        owner_id: str,
        entity_type: str,
        message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.validation_failed(
            owner_id=owner_id,
            entity_type=entity_type,
            message=message,
            correlation_id=correlation_id,
        ))

    async def log_store_error(
        self,
        operation: str,
        error_message: str,
        owner_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a failed store call before it propagates."""
        await self.log(AuditEventBuilder.store_error(
            operation=operation,
            error_message=error_message,
            owner_id=owner_id,
            correlation_id=correlation_id,
        ))

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a user action (e.g., converting a session).
    Pass it through all subsequent operations.
    """
    return uuid4()

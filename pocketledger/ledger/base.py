"""
Shared plumbing for the ledger services.

Each service gets the same collaborators injected:
- a DocumentStore (where documents live)
- an AuditLogger (local-only when none is given)
- AppSettings (defaults, limits, rules)
- a clock, so tests can pin "now"
"""

from datetime import datetime
from typing import Callable, Optional
from uuid import UUID

from pocketledger.audit import AuditLogger
from pocketledger.config import AppSettings, get_settings
from pocketledger.services.storage import (
    DocumentStore,
    NotFoundError,
    PreconditionFailedError,
    StorageError,
    WriteBatch,
)
from pocketledger.validation import LedgerValidationError


def local_now() -> datetime:
    """Current time in the machine's local timezone (tz-aware)."""
    return datetime.now().astimezone()


class LedgerService:
    """Base class wiring store, audit logger, settings and clock."""

    # Entity name used in audit events
    entity_type = "record"

    def __init__(
        self,
        store: DocumentStore,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[AppSettings] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._store = store
        self._audit = audit_logger or AuditLogger()
        self._settings = settings or get_settings().app
        self._clock = clock or local_now

    async def _log_rejection(
        self,
        owner_id: str,
        error: LedgerValidationError,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Audit a validation failure; the caller re-raises it."""
        await self._audit.log_validation_failed(
            owner_id=owner_id,
            entity_type=self.entity_type,
            message=error.message,
            correlation_id=correlation_id,
        )

    async def _commit(
        self,
        batch: WriteBatch,
        operation: str,
        owner_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """
        Commit a batch, auditing backend failures.

        NotFoundError and PreconditionFailedError are outcomes the callers
        interpret, so only other StorageErrors are logged here.
        """
        try:
            await batch.commit()
        except (NotFoundError, PreconditionFailedError):
            raise
        except StorageError as e:
            await self._audit.log_store_error(
                operation=operation,
                error_message=str(e),
                owner_id=owner_id,
                correlation_id=correlation_id,
            )
            raise

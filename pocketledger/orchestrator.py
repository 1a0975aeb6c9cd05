"""
Application wiring for Pocket Ledger

Builds the document store, the audit logger and every ledger service from
settings, so callers (a web backend, a script, a test) get one consistent
set of components sharing the same store and audit trail.

DESIGN DECISION: The document store is required; a misconfigured Firestore
backend fails loudly at startup. The Google Sheets audit trail is optional:
if it can't be reached the app keeps running with local-only audit logging.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

import structlog

from pocketledger.audit import AuditLogger
from pocketledger.config import get_settings
from pocketledger.ledger import (
    BillSessionLedger,
    BudgetLedger,
    GoalLedger,
    ProfileStore,
    TransactionLedger,
)
from pocketledger.services.storage import (
    AuditStorageInterface,
    DocumentStore,
    InMemoryDocumentStore,
)


logger = structlog.get_logger(__name__)


@dataclass
class AppComponents:
    """Everything a request handler needs, sharing one store."""

    store: DocumentStore
    audit_logger: AuditLogger
    profiles: ProfileStore
    bill_sessions: BillSessionLedger
    transactions: TransactionLedger
    budgets: BudgetLedger
    goals: GoalLedger
    audit_storage: Optional[AuditStorageInterface] = None


def _create_store(backend: str) -> DocumentStore:
    if backend == "memory":
        return InMemoryDocumentStore()
    if backend == "firestore":
        from pocketledger.services.storage.firestore import FirestoreDocumentStore

        store = FirestoreDocumentStore()
        store.connect()
        return store
    raise ValueError(f"Unknown storage backend: {backend}")


def _create_audit_storage() -> Optional[AuditStorageInterface]:
    try:
        from pocketledger.services.storage.google_sheets import (
            GoogleSheetsAuditStorage,
            GoogleSheetsClient,
        )

        client = GoogleSheetsClient()
        client.get_audit_sheet()
        return GoogleSheetsAuditStorage(client)
    except Exception as e:
        # Audit sheet not configured - continue with local logging only
        logger.warning("audit_sheets_unavailable", error=str(e))
        return None


def create_app_components(
    store: Optional[DocumentStore] = None,
    audit_storage: Optional[AuditStorageInterface] = None,
    use_audit_sheets: Optional[bool] = None,
    clock: Optional[Callable[[], datetime]] = None,
) -> AppComponents:
    """
    Factory function to create all application components.

    Args:
        store: Document store to use. Built from STORAGE_BACKEND if omitted.
        audit_storage: Audit sink. Overrides use_audit_sheets when given.
        use_audit_sheets: Persist audit events to Google Sheets.
                          Defaults to AUDIT_TO_SHEETS.
        clock: "now" for default reference dates (tests pin this)

    Returns:
        AppComponents with every ledger wired to the same store
    """
    settings = get_settings()
    app_settings = settings.app

    if store is None:
        store = _create_store(app_settings.storage_backend)

    if audit_storage is None:
        if use_audit_sheets is None:
            use_audit_sheets = app_settings.audit_to_sheets
        if use_audit_sheets:
            audit_storage = _create_audit_storage()
    audit_logger = AuditLogger(audit_storage)

    profiles = ProfileStore(store, audit_logger, settings=app_settings, clock=clock)
    components = AppComponents(
        store=store,
        audit_logger=audit_logger,
        profiles=profiles,
        bill_sessions=BillSessionLedger(
            store, audit_logger, profiles=profiles, settings=app_settings, clock=clock
        ),
        transactions=TransactionLedger(store, audit_logger, settings=app_settings, clock=clock),
        budgets=BudgetLedger(store, audit_logger, settings=app_settings, clock=clock),
        goals=GoalLedger(store, audit_logger, settings=app_settings, clock=clock),
        audit_storage=audit_storage,
    )
    logger.info(
        "app_components_created",
        storage_backend=type(store).__name__,
        audit_storage=type(audit_storage).__name__ if audit_storage else None,
        environment=app_settings.app_environment,
    )
    return components

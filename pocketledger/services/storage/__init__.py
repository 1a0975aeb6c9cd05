"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
Ledger documents live in a document store (Firestore, or in-memory for
tests); the audit trail can additionally be kept in Google Sheets.

The Firestore and Google Sheets backends import their client libraries
on first use; import them from their modules directly.
"""

from pocketledger.services.storage.interface import (
    SERVER_TIMESTAMP,
    AuditStorageInterface,
    ConnectionError,
    DocumentStore,
    Increment,
    NotFoundError,
    PreconditionFailedError,
    StorageError,
    StoredDocument,
    WriteBatch,
)
from pocketledger.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryDocumentStore,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "DocumentStore",
    "StoredDocument",
    "WriteBatch",
    # Sentinels
    "SERVER_TIMESTAMP",
    "Increment",
    # Exceptions
    "ConnectionError",
    "NotFoundError",
    "PreconditionFailedError",
    "StorageError",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryDocumentStore",
]

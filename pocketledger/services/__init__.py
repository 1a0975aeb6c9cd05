"""Services package."""

from pocketledger.services.storage import (
    AuditStorageInterface,
    ConnectionError,
    DocumentStore,
    InMemoryAuditStorage,
    InMemoryDocumentStore,
    NotFoundError,
    PreconditionFailedError,
    StorageError,
)

__all__ = [
    "AuditStorageInterface",
    "ConnectionError",
    "DocumentStore",
    "InMemoryAuditStorage",
    "InMemoryDocumentStore",
    "NotFoundError",
    "PreconditionFailedError",
    "StorageError",
]

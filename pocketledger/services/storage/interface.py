"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Run against a hosted document database (Firestore) in production
2. Use in-memory storage for testing
3. Keep ledger logic decoupled from the storage implementation

The interface is intentionally small - we're not building an ORM.
Documents are addressed by slash-separated paths
(users/{uid}/billSessions/{sessionId}) and hold plain dicts.

The one primitive the ledger leans on is the WriteBatch: several writes
plus preconditions, committed all-or-nothing.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Optional
from uuid import UUID, uuid4

from pocketledger.models.audit import AuditEvent


class _ServerTimestamp:
    """Sentinel resolved to the store's commit time."""

    def __repr__(self) -> str:
        return "SERVER_TIMESTAMP"


SERVER_TIMESTAMP = _ServerTimestamp()


@dataclass(frozen=True)
class Increment:
    """Atomic numeric increment of a single field."""

    amount: float


@dataclass
class StoredDocument:
    """A document snapshot returned by a store read."""

    id: str
    path: str
    data: dict[str, Any]


@dataclass
class Write:
    """One pending write in a batch."""

    kind: str  # "set" | "update" | "delete"
    path: str
    data: dict[str, Any] = field(default_factory=dict)
    merge: bool = False


_ANY = object()


@dataclass
class Precondition:
    """
    A check evaluated atomically with the batch.

    When field is None only existence is checked.
    """

    path: str
    field: Optional[str] = None
    expected: Any = _ANY


class WriteBatch:
    """
    An all-or-nothing group of writes.

    Either every write is applied and every precondition held at commit
    time, or the store is left untouched.
    """

    def __init__(self, store: "DocumentStore"):
        self._store = store
        self.writes: list[Write] = []
        self.preconditions: list[Precondition] = []

    def create(self, collection_path: str, data: dict[str, Any]) -> str:
        """Queue creation of a new document; returns its generated id."""
        doc_id = self._store.new_id()
        self.writes.append(Write("set", f"{collection_path}/{doc_id}", dict(data)))
        return doc_id

    def set(self, path: str, data: dict[str, Any], merge: bool = False) -> None:
        self.writes.append(Write("set", path, dict(data), merge=merge))

    def update(self, path: str, fields: dict[str, Any]) -> None:
        """Queue an update; the document must exist at commit time."""
        self.writes.append(Write("update", path, dict(fields)))

    def delete(self, path: str) -> None:
        """Queue a delete; the document must exist at commit time."""
        self.writes.append(Write("delete", path))

    def require_exists(self, path: str) -> None:
        self.preconditions.append(Precondition(path))

    def require_field(self, path: str, field_name: str, expected: Any) -> None:
        """Only commit if the stored field still equals expected."""
        self.preconditions.append(Precondition(path, field_name, expected))

    async def commit(self) -> None:
        await self._store.commit(self)

    def __len__(self) -> int:
        return len(self.writes)


class DocumentStore(ABC):
    """
    Abstract interface for a multi-tenant document store.

    Any storage implementation (Firestore, in-memory, etc.)
    must implement these methods.
    """

    def new_id(self) -> str:
        """Generate an opaque document id."""
        return uuid4().hex[:20]

    def batch(self) -> WriteBatch:
        return WriteBatch(self)

    @abstractmethod
    async def get(self, path: str) -> Optional[StoredDocument]:
        """
        Read a single document.

        Returns:
            The document if it exists, None otherwise
        """
        pass

    @abstractmethod
    async def add(self, collection_path: str, data: dict[str, Any]) -> str:
        """
        Create a document with a generated id.

        Returns:
            The new document's id

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def set(self, path: str, data: dict[str, Any], merge: bool = False) -> None:
        """
        Create or overwrite a document (merge=True keeps unspecified fields).

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def update(self, path: str, fields: dict[str, Any]) -> None:
        """
        Update fields on an existing document.

        Field values may be SERVER_TIMESTAMP or Increment sentinels.

        Raises:
            NotFoundError: If the document doesn't exist
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def delete(self, path: str) -> None:
        """
        Delete an existing document.

        Raises:
            NotFoundError: If the document doesn't exist
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def query(
        self,
        collection_path: str,
        filters: Optional[list[tuple[str, str, Any]]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> list[StoredDocument]:
        """
        List the documents directly under a collection.

        Args:
            collection_path: Path of the collection
            filters: (field, op, value) triples; op is one of == < <= > >=
            order_by: Field to sort on (documents missing it are skipped)
            descending: Sort direction
            limit: Maximum number of results

        Returns:
            Matching documents as a full snapshot
        """
        pass

    @abstractmethod
    async def commit(self, batch: WriteBatch) -> None:
        """
        Apply a batch atomically.

        Raises:
            NotFoundError: A required/updated/deleted document is missing
            PreconditionFailedError: A field precondition no longer holds
            StorageError: The commit failed; nothing was written
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a correlation ID (e.g., one conversion).

        Returns:
            List of related events in chronological order
        """
        pass

    @abstractmethod
    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        """
        Get all events for a specific entity.

        Args:
            entity_type: Type of entity (e.g., 'bill_session')
            entity_id: The entity's store id

        Returns:
            List of events in chronological order
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events (newest first).
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class PreconditionFailedError(StorageError):
    """A batch precondition did not hold at commit time."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass

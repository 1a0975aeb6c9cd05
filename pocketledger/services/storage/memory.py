"""
In-Memory Storage Implementation

Used for tests and local development. It follows the same contract as the
Firestore store, including the parts the ledger depends on:
- batches are all-or-nothing and serialised with a lock
- SERVER_TIMESTAMP resolves to the store clock at commit time
- Increment is applied atomically to a single field

Ordering ties (two documents with the same order_by value) fall back to
insertion order, so "newest first" listings stay deterministic even when
the clock is frozen.
"""

import asyncio
import copy
import operator
from datetime import datetime, timezone
from typing import Any, Callable, Optional
from uuid import UUID

from pocketledger.models.audit import AuditEvent
from pocketledger.services.storage.interface import (
    _ANY,
    SERVER_TIMESTAMP,
    AuditStorageInterface,
    DocumentStore,
    Increment,
    NotFoundError,
    PreconditionFailedError,
    StorageError,
    StoredDocument,
    WriteBatch,
)


_OPERATORS = {
    "==": operator.eq,
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parent(path: str) -> str:
    return path.rsplit("/", 1)[0]


_MISSING = object()


def _field_value(data: dict[str, Any], field_path: str) -> Any:
    """Look up a possibly dotted field path (e.g. "source.sessionId")."""
    value: Any = data
    for part in field_path.split("."):
        if not isinstance(value, dict) or part not in value:
            return _MISSING
        value = value[part]
    return value


class InMemoryDocumentStore(DocumentStore):
    """
    Dict-backed document store.

    Args:
        clock: Source of commit timestamps (defaults to UTC now)
    """

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        self._clock = clock or _utcnow
        self._docs: dict[str, dict[str, Any]] = {}
        self._seq: dict[str, int] = {}
        self._counter = 0
        self._lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Value resolution
    # ------------------------------------------------------------------

    def _resolve(self, value: Any, now: datetime, current: Any = None) -> Any:
        if value is SERVER_TIMESTAMP:
            return now
        if isinstance(value, Increment):
            return (current or 0) + value.amount
        if isinstance(value, dict):
            return {k: self._resolve(v, now) for k, v in value.items()}
        if isinstance(value, list):
            return [self._resolve(v, now) for v in value]
        return copy.deepcopy(value)

    def _apply_set(
        self,
        docs: dict[str, dict[str, Any]],
        path: str,
        data: dict[str, Any],
        merge: bool,
        now: datetime,
    ) -> None:
        resolved = {k: self._resolve(v, now, (docs.get(path) or {}).get(k)) for k, v in data.items()}
        if merge and path in docs:
            docs[path].update(resolved)
        else:
            docs[path] = resolved
        if path not in self._seq:
            self._counter += 1
            self._seq[path] = self._counter

    def _apply_update(
        self,
        docs: dict[str, dict[str, Any]],
        path: str,
        fields: dict[str, Any],
        now: datetime,
    ) -> None:
        if path not in docs:
            raise NotFoundError(f"Document not found: {path}")
        current = docs[path]
        for key, value in fields.items():
            current[key] = self._resolve(value, now, current.get(key))

    def _apply_delete(self, docs: dict[str, dict[str, Any]], path: str) -> None:
        if path not in docs:
            raise NotFoundError(f"Document not found: {path}")
        del docs[path]

    def _snapshot(self, path: str) -> StoredDocument:
        return StoredDocument(
            id=path.rsplit("/", 1)[-1],
            path=path,
            data=copy.deepcopy(self._docs[path]),
        )

    # ------------------------------------------------------------------
    # DocumentStore
    # ------------------------------------------------------------------

    async def get(self, path: str) -> Optional[StoredDocument]:
        if path not in self._docs:
            return None
        return self._snapshot(path)

    async def add(self, collection_path: str, data: dict[str, Any]) -> str:
        doc_id = self.new_id()
        async with self._lock:
            self._apply_set(self._docs, f"{collection_path}/{doc_id}", data, False, self._clock())
        return doc_id

    async def set(self, path: str, data: dict[str, Any], merge: bool = False) -> None:
        async with self._lock:
            self._apply_set(self._docs, path, data, merge, self._clock())

    async def update(self, path: str, fields: dict[str, Any]) -> None:
        async with self._lock:
            self._apply_update(self._docs, path, fields, self._clock())

    async def delete(self, path: str) -> None:
        async with self._lock:
            self._apply_delete(self._docs, path)
            self._seq.pop(path, None)

    async def query(
        self,
        collection_path: str,
        filters: Optional[list[tuple[str, str, Any]]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> list[StoredDocument]:
        paths = [p for p in self._docs if _parent(p) == collection_path]

        for field_name, op, value in filters or []:
            if op not in _OPERATORS:
                raise StorageError(f"Unsupported filter operator: {op}")
            compare = _OPERATORS[op]
            paths = [
                p for p in paths
                if _field_value(self._docs[p], field_name) is not _MISSING
                and compare(_field_value(self._docs[p], field_name), value)
            ]

        if order_by:
            paths = [p for p in paths if self._docs[p].get(order_by) is not None]
            paths.sort(
                key=lambda p: (self._docs[p][order_by], self._seq.get(p, 0)),
                reverse=descending,
            )
        else:
            paths.sort(key=lambda p: self._seq.get(p, 0))

        if limit is not None:
            paths = paths[:limit]
        return [self._snapshot(p) for p in paths]

    async def commit(self, batch: WriteBatch) -> None:
        async with self._lock:
            for pre in batch.preconditions:
                current = self._docs.get(pre.path)
                if current is None:
                    raise NotFoundError(f"Document not found: {pre.path}")
                if pre.field is not None and pre.expected is not _ANY:
                    if current.get(pre.field) != pre.expected:
                        raise PreconditionFailedError(
                            f"{pre.path}: {pre.field} is {current.get(pre.field)!r}, "
                            f"expected {pre.expected!r}"
                        )

            # Apply to a working copy so a failing write leaves nothing behind
            now = self._clock()
            working = copy.deepcopy(self._docs)
            seq_before = dict(self._seq)
            counter_before = self._counter
            try:
                for write in batch.writes:
                    if write.kind == "set":
                        self._apply_set(working, write.path, write.data, write.merge, now)
                    elif write.kind == "update":
                        self._apply_update(working, write.path, write.data, now)
                    elif write.kind == "delete":
                        self._apply_delete(working, write.path)
                    else:
                        raise StorageError(f"Unknown write kind: {write.kind}")
            except Exception:
                self._seq = seq_before
                self._counter = counter_before
                raise

            for write in batch.writes:
                if write.kind == "delete":
                    self._seq.pop(write.path, None)
            self._docs = working

    def __len__(self) -> int:
        return len(self._docs)


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only audit log held in a list."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    @property
    def events(self) -> list[AuditEvent]:
        return list(self._events)

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        events = [e for e in self._events if e.correlation_id == correlation_id]
        return sorted(events, key=lambda e: e.timestamp)

    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        events = [
            e for e in self._events
            if e.entity_type == entity_type and e.entity_id == entity_id
        ]
        return sorted(events, key=lambda e: e.timestamp)

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        events = sorted(self._events, key=lambda e: e.timestamp, reverse=True)
        return events[:limit]

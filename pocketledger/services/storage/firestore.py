"""
Firestore Storage Implementation

DESIGN DECISION: Firestore is the production backend because the web
front-end already keeps its data there, under users/{uid}/...

TRADEOFFS:
- Queries are limited to what Firestore indexes (we only need equality
  filters plus one order_by)
- Batches with preconditions run as Firestore transactions so the
  precondition reads and the writes commit together

The implementation follows the abstract interface, so ledger logic never
imports google.cloud directly.
"""

from typing import Any, Optional

from google.api_core import exceptions as google_exceptions
from google.cloud import firestore
from google.cloud.firestore_v1.base_query import FieldFilter
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from pocketledger.config import get_settings
from pocketledger.services.storage.interface import (
    _ANY,
    SERVER_TIMESTAMP,
    ConnectionError,
    DocumentStore,
    Increment,
    NotFoundError,
    PreconditionFailedError,
    StorageError,
    StoredDocument,
    WriteBatch,
)


SCOPES = ["https://www.googleapis.com/auth/datastore"]


def _to_firestore(value: Any) -> Any:
    """Translate our sentinels into Firestore transforms."""
    if value is SERVER_TIMESTAMP:
        return firestore.SERVER_TIMESTAMP
    if isinstance(value, Increment):
        return firestore.Increment(value.amount)
    if isinstance(value, dict):
        return {k: _to_firestore(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_to_firestore(v) for v in value]
    return value


class FirestoreDocumentStore(DocumentStore):
    """
    Firestore implementation of the document store.

    Paths are passed straight through to the Firestore client, so
    "users/u1/billSessions/s1" is the document at that path.
    """

    def __init__(self, client: Optional[firestore.AsyncClient] = None):
        self._client = client
        self._settings = get_settings().firestore if client is None else None

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> firestore.AsyncClient:
        """
        Create the Firestore client.

        Uses service account credentials when a path is configured,
        application default credentials otherwise.
        """
        if self._client is None:
            try:
                credentials = None
                if self._settings.credentials_path:
                    credentials = Credentials.from_service_account_file(
                        self._settings.credentials_path,
                        scopes=SCOPES,
                    )
                self._client = firestore.AsyncClient(
                    project=self._settings.project_id,
                    credentials=credentials,
                    database=self._settings.database,
                )
            except FileNotFoundError:
                raise ConnectionError(
                    f"Firestore credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Firestore: {e}")

        return self._client

    @staticmethod
    def _snapshot(snap) -> StoredDocument:
        return StoredDocument(
            id=snap.id,
            path=snap.reference.path,
            data=snap.to_dict() or {},
        )

    async def get(self, path: str) -> Optional[StoredDocument]:
        try:
            snap = await self.connect().document(path).get()
        except google_exceptions.GoogleAPICallError as e:
            raise StorageError(f"Failed to read {path}: {e}")
        if not snap.exists:
            return None
        return self._snapshot(snap)

    async def add(self, collection_path: str, data: dict[str, Any]) -> str:
        try:
            _, ref = await self.connect().collection(collection_path).add(_to_firestore(data))
        except google_exceptions.GoogleAPICallError as e:
            raise StorageError(f"Failed to add to {collection_path}: {e}")
        return ref.id

    async def set(self, path: str, data: dict[str, Any], merge: bool = False) -> None:
        try:
            await self.connect().document(path).set(_to_firestore(data), merge=merge)
        except google_exceptions.GoogleAPICallError as e:
            raise StorageError(f"Failed to write {path}: {e}")

    async def update(self, path: str, fields: dict[str, Any]) -> None:
        try:
            await self.connect().document(path).update(_to_firestore(fields))
        except google_exceptions.NotFound:
            raise NotFoundError(f"Document not found: {path}")
        except google_exceptions.GoogleAPICallError as e:
            raise StorageError(f"Failed to update {path}: {e}")

    async def delete(self, path: str) -> None:
        client = self.connect()
        try:
            await client.document(path).delete(option=client.write_option(exists=True))
        except google_exceptions.NotFound:
            raise NotFoundError(f"Document not found: {path}")
        except google_exceptions.GoogleAPICallError as e:
            raise StorageError(f"Failed to delete {path}: {e}")

    async def query(
        self,
        collection_path: str,
        filters: Optional[list[tuple[str, str, Any]]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> list[StoredDocument]:
        query = self.connect().collection(collection_path)
        for field_name, op, value in filters or []:
            query = query.where(filter=FieldFilter(field_name, op, value))
        if order_by:
            direction = (
                firestore.Query.DESCENDING if descending else firestore.Query.ASCENDING
            )
            query = query.order_by(order_by, direction=direction)
        if limit is not None:
            query = query.limit(limit)

        try:
            return [self._snapshot(snap) async for snap in query.stream()]
        except google_exceptions.GoogleAPICallError as e:
            raise StorageError(f"Failed to query {collection_path}: {e}")

    async def commit(self, batch: WriteBatch) -> None:
        client = self.connect()

        @firestore.async_transactional
        async def apply(transaction):
            # Firestore requires every read before the first write
            for pre in batch.preconditions:
                snap = await client.document(pre.path).get(transaction=transaction)
                if not snap.exists:
                    raise NotFoundError(f"Document not found: {pre.path}")
                if pre.field is not None and pre.expected is not _ANY:
                    actual = (snap.to_dict() or {}).get(pre.field)
                    if actual != pre.expected:
                        raise PreconditionFailedError(
                            f"{pre.path}: {pre.field} is {actual!r}, expected {pre.expected!r}"
                        )

            for write in batch.writes:
                ref = client.document(write.path)
                if write.kind == "set":
                    transaction.set(ref, _to_firestore(write.data), merge=write.merge)
                elif write.kind == "update":
                    transaction.update(ref, _to_firestore(write.data))
                elif write.kind == "delete":
                    transaction.delete(ref, option=client.write_option(exists=True))
                else:
                    raise StorageError(f"Unknown write kind: {write.kind}")

        try:
            await apply(client.transaction())
        except StorageError:
            raise
        except google_exceptions.NotFound as e:
            raise NotFoundError(f"Batch target missing: {e}")
        except google_exceptions.GoogleAPICallError as e:
            raise StorageError(f"Batch commit failed: {e}")

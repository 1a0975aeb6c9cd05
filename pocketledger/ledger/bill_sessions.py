"""
Bill Session Ledger

A bill session is a batch of paper receipts entered together for one
month. It moves through:

    created (empty) -> open (items added/deleted)
                    -> closed (closedAt set once, summary snapshotted)
                    -> converted (terminal: items became transactions)

CRITICAL BOUNDARIES:
1. itemCount is a cache. Item writes adjust it in the same atomic batch,
   and compute_and_save_summary rebuilds it from a real item scan.
2. closedAt is set once. Re-closing never moves it.
3. Conversion happens at most once. The "mark converted" write is
   conditional on the session still being unconverted and is committed
   in the same batch as the new transactions, so two racing conversions
   cannot both succeed.
"""

from datetime import date, datetime
from typing import Callable, Iterable, Optional, Union
from uuid import UUID

from pocketledger.audit import AuditLogger, create_correlation_id
from pocketledger.config import AppSettings
from pocketledger.models.ledger import (
    BiggestItem,
    BillItem,
    BillSession,
    BillSessionSummary,
    CategoryTotal,
    ConversionResult,
    ConversionStatus,
    Transaction,
    as_ledger_datetime,
    month_key_from_date,
)
from pocketledger.ledger.base import LedgerService
from pocketledger.ledger.paths import (
    bill_item_path,
    bill_items_path,
    bill_session_path,
    bill_sessions_path,
    transactions_path,
)
from pocketledger.ledger.profiles import ProfileStore
from pocketledger.services.storage import (
    SERVER_TIMESTAMP,
    DocumentStore,
    Increment,
    NotFoundError,
    PreconditionFailedError,
    StorageError,
)
from pocketledger.validation import LedgerError, LedgerValidationError, validate_bill_item


class SessionConvertedError(LedgerError):
    """Items of a converted session are historical and can't change."""
    pass


def compute_summary(items: Iterable[BillItem]) -> BillSessionSummary:
    """
    Aggregate a session's items.

    Items are expected newest first (the order list_items returns).
    Only a strictly greater amount replaces the current biggest item, so
    among equal maxima the most recently created one wins.
    """
    total = 0.0
    count = 0
    biggest: Optional[BiggestItem] = None
    by_category: dict[str, float] = {}

    for item in items:
        total += item.amount
        count += 1
        if biggest is None or item.amount > biggest.amount:
            biggest = BiggestItem(merchant=item.merchant, amount=item.amount)
        by_category[item.category_id] = by_category.get(item.category_id, 0.0) + item.amount

    ranked = sorted(by_category.items(), key=lambda kv: kv[1], reverse=True)
    return BillSessionSummary(
        total=total,
        count=count,
        biggest=biggest,
        by_category=[CategoryTotal(category_id=c, total=t) for c, t in ranked],
    )


class BillSessionLedger(LedgerService):
    """
    Owns bill sessions, their items, and conversion into transactions.

    Args:
        store: Document store holding users/{uid}/billSessions
        audit_logger: Audit sink (local-only by default)
        profiles: Used for the optional category check on add_item
        settings: App settings (defaults to get_settings().app)
        clock: Supplies "now" for default reference dates
    """

    entity_type = "bill_session"

    def __init__(
        self,
        store: DocumentStore,
        audit_logger: Optional[AuditLogger] = None,
        profiles: Optional[ProfileStore] = None,
        settings: Optional[AppSettings] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        super().__init__(store, audit_logger=audit_logger, settings=settings, clock=clock)
        self._profiles = profiles

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    async def create_session(
        self,
        owner_id: str,
        currency: Optional[str] = None,
        title: Optional[str] = None,
        reference_date: Optional[Union[date, datetime]] = None,
        correlation_id: Optional[UUID] = None,
    ) -> str:
        """
        Create an empty bill session.

        The month key comes from reference_date (default: now); a blank
        title becomes "Bills – YYYY-MM".

        Returns:
            The new session id
        """
        month_key = month_key_from_date(reference_date or self._clock())
        clean_title = (title or "").strip() or f"{self._settings.session_title_prefix} – {month_key}"
        clean_currency = (currency or "").strip() or self._settings.default_currency

        session_id = self._store.new_id()
        session = BillSession(
            id=session_id,
            owner_id=owner_id,
            title=clean_title,
            month_key=month_key,
            currency=clean_currency,
        )
        await self._store.set(
            bill_session_path(owner_id, session_id),
            {**session.to_document(exclude={"created_at"}), "createdAt": SERVER_TIMESTAMP},
        )

        await self._audit.log_session_created(
            owner_id=owner_id,
            session_id=session_id,
            title=clean_title,
            month_key=month_key,
            correlation_id=correlation_id,
        )
        return session_id

    async def get_session(self, owner_id: str, session_id: str) -> BillSession:
        """
        Load a session.

        Raises:
            NotFoundError: If the session doesn't exist
        """
        doc = await self._store.get(bill_session_path(owner_id, session_id))
        if doc is None:
            raise NotFoundError(f"Session not found: {session_id}")
        return BillSession.from_document(doc.id, doc.data, owner_id=owner_id)

    async def list_sessions(self, owner_id: str, limit: Optional[int] = None) -> list[BillSession]:
        """Most recently created sessions first."""
        docs = await self._store.query(
            bill_sessions_path(owner_id),
            order_by="createdAt",
            descending=True,
            limit=limit or self._settings.session_list_limit,
        )
        return [BillSession.from_document(d.id, d.data, owner_id=owner_id) for d in docs]

    async def _require_open(self, owner_id: str, session_id: str) -> BillSession:
        session = await self.get_session(owner_id, session_id)
        if session.converted_to_transactions:
            raise SessionConvertedError(
                f"Session {session_id} was converted to transactions; its items are read-only"
            )
        return session

    # ------------------------------------------------------------------
    # Items
    # ------------------------------------------------------------------

    async def add_item(
        self,
        owner_id: str,
        session_id: str,
        merchant: str,
        amount: float,
        category_id: str,
        date: Union[date, datetime],
        note: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> str:
        """
        Add a receipt to a session.

        The item and the itemCount increment commit together. The summary
        is NOT recomputed; call compute_and_save_summary for that.

        Returns:
            The new item id

        Raises:
            LedgerValidationError: Blank merchant/category or amount <= 0
            NotFoundError: If the session doesn't exist
            SessionConvertedError: If the session was already converted
        """
        try:
            clean_merchant, clean_amount, clean_category = validate_bill_item(
                merchant, amount, category_id
            )
            if self._settings.enforce_category_integrity and self._profiles is not None:
                if clean_category not in await self._profiles.category_ids(owner_id):
                    raise LedgerValidationError("unknown category", field="category_id")
        except LedgerValidationError as e:
            await self._log_rejection(owner_id, e, correlation_id)
            raise

        await self._require_open(owner_id, session_id)

        item_id = self._store.new_id()
        item = BillItem(
            id=item_id,
            merchant=clean_merchant,
            amount=clean_amount,
            category_id=clean_category,
            note=(note or "").strip(),
            date=as_ledger_datetime(date),
        )
        session_path = bill_session_path(owner_id, session_id)

        batch = self._store.batch()
        batch.require_field(session_path, "convertedToTransactions", False)
        batch.set(
            bill_item_path(owner_id, session_id, item_id),
            {**item.to_document(exclude={"created_at"}), "createdAt": SERVER_TIMESTAMP},
        )
        batch.update(session_path, {"itemCount": Increment(1)})
        try:
            await self._commit(batch, "add_item", owner_id, correlation_id)
        except PreconditionFailedError:
            raise SessionConvertedError(
                f"Session {session_id} was converted while adding an item"
            )

        await self._audit.log_item_added(
            owner_id=owner_id,
            session_id=session_id,
            item_id=item_id,
            merchant=clean_merchant,
            amount=clean_amount,
            correlation_id=correlation_id,
        )
        return item_id

    async def delete_item(
        self,
        owner_id: str,
        session_id: str,
        item_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """
        Remove a receipt and decrement itemCount in one batch.

        Raises:
            NotFoundError: If the session or item doesn't exist
            SessionConvertedError: If the session was already converted
        """
        await self._require_open(owner_id, session_id)

        item_path = bill_item_path(owner_id, session_id, item_id)
        if await self._store.get(item_path) is None:
            raise NotFoundError(f"Bill item not found: {item_id}")

        session_path = bill_session_path(owner_id, session_id)
        batch = self._store.batch()
        batch.require_field(session_path, "convertedToTransactions", False)
        batch.delete(item_path)
        batch.update(session_path, {"itemCount": Increment(-1)})
        try:
            await self._commit(batch, "delete_item", owner_id, correlation_id)
        except PreconditionFailedError:
            raise SessionConvertedError(
                f"Session {session_id} was converted while deleting an item"
            )

        await self._audit.log_item_deleted(
            owner_id=owner_id,
            session_id=session_id,
            item_id=item_id,
            correlation_id=correlation_id,
        )

    async def list_items(self, owner_id: str, session_id: str) -> list[BillItem]:
        """All items of a session, most recently added first."""
        docs = await self._store.query(
            bill_items_path(owner_id, session_id),
            order_by="createdAt",
            descending=True,
        )
        return [BillItem.from_document(d.id, d.data) for d in docs]

    # ------------------------------------------------------------------
    # Summary
    # ------------------------------------------------------------------

    async def compute_and_save_summary(
        self,
        owner_id: str,
        session_id: str,
        close: bool = False,
        correlation_id: Optional[UUID] = None,
    ) -> BillSessionSummary:
        """
        Recompute the summary from a fresh item scan and persist it.

        Also resets itemCount to the real item count. With close=True,
        closedAt is set only if it is still unset.

        Raises:
            NotFoundError: If the session doesn't exist
        """
        session = await self.get_session(owner_id, session_id)
        items = await self.list_items(owner_id, session_id)
        summary = compute_summary(items)

        path = bill_session_path(owner_id, session_id)
        fields = {"itemCount": summary.count, "summary": summary.to_document()}
        closing = close and session.closed_at is None

        batch = self._store.batch()
        if closing:
            batch.require_field(path, "closedAt", None)
            batch.update(path, {**fields, "closedAt": SERVER_TIMESTAMP})
        else:
            batch.require_exists(path)
            batch.update(path, fields)

        try:
            await self._commit(batch, "save_summary", owner_id, correlation_id)
        except PreconditionFailedError:
            # Closed by someone else in the meantime; keep their closedAt
            closing = False
            retry = self._store.batch()
            retry.require_exists(path)
            retry.update(path, fields)
            await self._commit(retry, "save_summary", owner_id, correlation_id)

        await self._audit.log_summary_saved(
            owner_id=owner_id,
            session_id=session_id,
            total=summary.total,
            count=summary.count,
            closed=closing,
            correlation_id=correlation_id,
        )
        return summary

    # ------------------------------------------------------------------
    # Conversion
    # ------------------------------------------------------------------

    async def convert_to_transactions(
        self,
        owner_id: str,
        session_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> ConversionResult:
        """
        Turn every item of the session into an expense transaction.

        Idempotent: a converted session returns ALREADY_CONVERTED and
        writes nothing. The transactions and the converted flag commit in
        one batch, guarded by preconditions on the session (still
        unconverted, same itemCount and closedAt as read). If the session
        changed underneath us the batch is rebuilt and retried.

        After the batch commits, the summary snapshot is refreshed. If that
        refresh fails the conversion still stands; the StorageError is
        propagated so the caller can retry compute_and_save_summary.

        Raises:
            NotFoundError: If the session doesn't exist
            StorageError: If the batch could not be committed
        """
        correlation_id = correlation_id or create_correlation_id()
        path = bill_session_path(owner_id, session_id)
        attempts = self._settings.conversion_max_attempts

        for attempt in range(1, attempts + 1):
            session = await self.get_session(owner_id, session_id)
            if session.converted_to_transactions:
                await self._audit.log_conversion_skipped(
                    owner_id=owner_id,
                    session_id=session_id,
                    correlation_id=correlation_id,
                )
                return ConversionResult(
                    session_id=session_id,
                    status=ConversionStatus.ALREADY_CONVERTED,
                )

            items = await self.list_items(owner_id, session_id)

            batch = self._store.batch()
            batch.require_field(path, "convertedToTransactions", False)
            batch.require_field(path, "itemCount", session.item_count)
            batch.require_field(path, "closedAt", session.closed_at)

            transaction_ids = []
            for item in items:
                txn = Transaction.from_bill_item(item, session_id)
                transaction_ids.append(batch.create(
                    transactions_path(owner_id),
                    {
                        **txn.to_document(exclude={"created_at", "updated_at"}),
                        "createdAt": SERVER_TIMESTAMP,
                        "updatedAt": SERVER_TIMESTAMP,
                    },
                ))

            marks = {"convertedToTransactions": True, "convertedAt": SERVER_TIMESTAMP}
            if session.closed_at is None:
                marks["closedAt"] = SERVER_TIMESTAMP
            batch.update(path, marks)

            try:
                await self._commit(batch, "convert_to_transactions", owner_id, correlation_id)
            except PreconditionFailedError:
                await self._audit.log_conversion_conflict(
                    owner_id=owner_id,
                    session_id=session_id,
                    attempt=attempt,
                    correlation_id=correlation_id,
                )
                continue

            await self._audit.log_conversion_completed(
                owner_id=owner_id,
                session_id=session_id,
                transaction_ids=transaction_ids,
                correlation_id=correlation_id,
            )
            try:
                await self.compute_and_save_summary(
                    owner_id, session_id, close=True, correlation_id=correlation_id
                )
            except StorageError as e:
                await self._audit.log_error(
                    error_type="summary_refresh_failed",
                    error_message=str(e),
                    details={"session_id": session_id, "converted": True},
                    correlation_id=correlation_id,
                )
                raise
            return ConversionResult(
                session_id=session_id,
                status=ConversionStatus.CONVERTED,
                transaction_ids=transaction_ids,
            )

        raise StorageError(
            f"Session {session_id} kept changing during conversion; gave up after {attempts} attempts"
        )

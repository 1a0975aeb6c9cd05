"""
Transaction Ledger

Manually entered income/expense records, plus the expense records a bill
session conversion produces. Both share users/{uid}/transactions; the
converted ones carry a `source` stamp pointing back at the bill item.
"""

from datetime import date, datetime
from typing import Any, Optional, Union
from uuid import UUID

from pocketledger.models.audit import AuditEventType
from pocketledger.models.ledger import (
    Transaction,
    TransactionType,
    as_ledger_datetime,
    month_key_from_date,
)
from pocketledger.ledger.base import LedgerService
from pocketledger.ledger.paths import transaction_path, transactions_path
from pocketledger.services.storage import SERVER_TIMESTAMP, NotFoundError
from pocketledger.validation import (
    LedgerValidationError,
    require_positive_amount,
    require_text,
    require_transaction_type,
    validate_transaction,
)


class TransactionLedger(LedgerService):
    """CRUD over a user's transactions."""

    entity_type = "transaction"

    async def create_transaction(
        self,
        owner_id: str,
        tx_type: Union[TransactionType, str],
        amount: float,
        category_id: str,
        date: Union[date, datetime],
        note: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> str:
        """
        Record a transaction.

        Returns:
            The new transaction id

        Raises:
            LedgerValidationError: Unknown type, amount <= 0 or blank category
        """
        try:
            clean_type, clean_amount, clean_category = validate_transaction(
                tx_type, amount, category_id
            )
        except LedgerValidationError as e:
            await self._log_rejection(owner_id, e, correlation_id)
            raise

        when = as_ledger_datetime(date)
        txn = Transaction(
            type=clean_type,
            amount=clean_amount,
            category_id=clean_category,
            note=(note or "").strip(),
            date=when,
            month_key=month_key_from_date(when),
        )
        tx_id = await self._store.add(transactions_path(owner_id), {
            **txn.to_document(exclude={"created_at", "updated_at", "source"}),
            "createdAt": SERVER_TIMESTAMP,
            "updatedAt": SERVER_TIMESTAMP,
        })

        await self._audit.log_record_written(
            event_type=AuditEventType.TRANSACTION_CREATED,
            owner_id=owner_id,
            entity_type=self.entity_type,
            entity_id=tx_id,
            description=f"{clean_type.value.capitalize()} recorded: {clean_amount:.2f}",
            details={"category_id": clean_category, "month_key": txn.month_key},
            correlation_id=correlation_id,
        )
        return tx_id

    async def get_transaction(self, owner_id: str, tx_id: str) -> Transaction:
        """
        Raises:
            NotFoundError: If the transaction doesn't exist
        """
        doc = await self._store.get(transaction_path(owner_id, tx_id))
        if doc is None:
            raise NotFoundError(f"Transaction not found: {tx_id}")
        return Transaction.from_document(doc.id, doc.data)

    async def list_transactions_for_month(
        self,
        owner_id: str,
        month_key: str,
    ) -> list[Transaction]:
        """Transactions in a "YYYY-MM" month, latest date first."""
        docs = await self._store.query(
            transactions_path(owner_id),
            filters=[("monthKey", "==", month_key)],
            order_by="date",
            descending=True,
        )
        return [Transaction.from_document(d.id, d.data) for d in docs]

    async def list_transactions_for_session(
        self,
        owner_id: str,
        session_id: str,
    ) -> list[Transaction]:
        """Transactions a bill session was converted into."""
        docs = await self._store.query(
            transactions_path(owner_id),
            filters=[("source.sessionId", "==", session_id)],
        )
        return [Transaction.from_document(d.id, d.data) for d in docs]

    async def update_transaction(
        self,
        owner_id: str,
        tx_id: str,
        tx_type: Optional[Union[TransactionType, str]] = None,
        amount: Optional[float] = None,
        category_id: Optional[str] = None,
        note: Optional[str] = None,
        date: Optional[Union[date, datetime]] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """
        Patch a transaction. Only the given fields change.

        Changing the date re-derives monthKey.

        Raises:
            LedgerValidationError: If a given field is invalid
            NotFoundError: If the transaction doesn't exist
        """
        patch: dict[str, Any] = {"updatedAt": SERVER_TIMESTAMP}
        try:
            if tx_type is not None:
                patch["type"] = require_transaction_type(tx_type).value
            if amount is not None:
                patch["amount"] = require_positive_amount(amount)
            if category_id is not None:
                patch["categoryId"] = require_text(category_id, "category required", "category_id")
        except LedgerValidationError as e:
            await self._log_rejection(owner_id, e, correlation_id)
            raise
        if note is not None:
            patch["note"] = note.strip()
        if date is not None:
            when = as_ledger_datetime(date)
            patch["date"] = when
            patch["monthKey"] = month_key_from_date(when)

        await self._store.update(transaction_path(owner_id, tx_id), patch)
        await self._audit.log_record_written(
            event_type=AuditEventType.TRANSACTION_UPDATED,
            owner_id=owner_id,
            entity_type=self.entity_type,
            entity_id=tx_id,
            description="Transaction updated",
            details={"fields": sorted(k for k in patch if k != "updatedAt")},
            correlation_id=correlation_id,
        )

    async def delete_transaction(
        self,
        owner_id: str,
        tx_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """
        Raises:
            NotFoundError: If the transaction doesn't exist
        """
        await self._store.delete(transaction_path(owner_id, tx_id))
        await self._audit.log_record_written(
            event_type=AuditEventType.TRANSACTION_DELETED,
            owner_id=owner_id,
            entity_type=self.entity_type,
            entity_id=tx_id,
            description="Transaction deleted",
            correlation_id=correlation_id,
        )

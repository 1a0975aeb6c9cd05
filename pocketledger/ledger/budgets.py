"""
Budget Ledger

One budget document per (month, category), keyed "{monthKey}_{categoryId}".
Saving the same pair again overwrites the limit in place.
"""

from typing import Optional, Union
from uuid import UUID

from pocketledger.models.audit import AuditEventType
from pocketledger.models.ledger import OVERALL_BUDGET_CATEGORY, Budget
from pocketledger.ledger.base import LedgerService
from pocketledger.ledger.paths import budget_path, budgets_path
from pocketledger.services.storage import SERVER_TIMESTAMP
from pocketledger.validation import LedgerValidationError, validate_budget


def budget_id(month_key: str, category_id: str) -> str:
    return f"{month_key}_{category_id}"


class BudgetLedger(LedgerService):
    """Monthly limits per category, plus the overall "all" limit."""

    entity_type = "budget"

    async def upsert_budget(
        self,
        owner_id: str,
        month_key: str,
        category_id: str,
        limit: Union[int, float],
        correlation_id: Optional[UUID] = None,
    ) -> Budget:
        """
        Create or replace the limit for a month/category pair.

        createdAt is set only on first save; updatedAt on every save.

        Raises:
            LedgerValidationError: Blank month/category or negative limit
        """
        try:
            clean_month, clean_category, clean_limit = validate_budget(
                month_key, category_id, limit
            )
        except LedgerValidationError as e:
            await self._log_rejection(owner_id, e, correlation_id)
            raise

        bid = budget_id(clean_month, clean_category)
        path = budget_path(owner_id, bid)
        existing = await self._store.get(path)

        data = {
            "monthKey": clean_month,
            "categoryId": clean_category,
            "limit": clean_limit,
            "updatedAt": SERVER_TIMESTAMP,
        }
        if existing is None:
            data["createdAt"] = SERVER_TIMESTAMP
        await self._store.set(path, data, merge=True)

        scope = "overall" if clean_category == OVERALL_BUDGET_CATEGORY else clean_category
        await self._audit.log_record_written(
            event_type=AuditEventType.BUDGET_SAVED,
            owner_id=owner_id,
            entity_type=self.entity_type,
            entity_id=bid,
            description=f"Budget for {scope} in {clean_month} set to {clean_limit:.2f}",
            details={"created": existing is None},
            correlation_id=correlation_id,
        )

        saved = await self._store.get(path)
        return Budget.from_document(saved.id, saved.data)

    async def list_budgets_for_month(self, owner_id: str, month_key: str) -> list[Budget]:
        docs = await self._store.query(
            budgets_path(owner_id),
            filters=[("monthKey", "==", month_key)],
        )
        return [Budget.from_document(d.id, d.data) for d in docs]

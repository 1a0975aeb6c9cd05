"""
Goal Ledger

Savings goals with a target amount and a running balance. Deposits use an
atomic increment so two concurrent deposits both land.
"""

from datetime import date, datetime
from typing import Any, Optional, Union
from uuid import UUID

from pocketledger.models.audit import AuditEventType
from pocketledger.models.ledger import Goal, as_ledger_datetime
from pocketledger.ledger.base import LedgerService
from pocketledger.ledger.paths import goal_path, goals_path
from pocketledger.services.storage import SERVER_TIMESTAMP, Increment, NotFoundError
from pocketledger.validation import (
    LedgerValidationError,
    require_positive_amount,
    require_text,
    validate_goal,
)


# Marks "leave the deadline as it is" in update_goal, since None clears it
_KEEP = object()


class GoalLedger(LedgerService):
    """CRUD and deposits for a user's savings goals."""

    entity_type = "goal"

    async def create_goal(
        self,
        owner_id: str,
        name: str,
        target_amount: Union[int, float],
        deadline: Optional[Union[date, datetime]] = None,
        correlation_id: Optional[UUID] = None,
    ) -> str:
        """
        Raises:
            LedgerValidationError: "goal name required" / "target must be > 0"
        """
        try:
            clean_name, clean_target = validate_goal(name, target_amount)
        except LedgerValidationError as e:
            await self._log_rejection(owner_id, e, correlation_id)
            raise

        goal_id = await self._store.add(goals_path(owner_id), {
            "name": clean_name,
            "targetAmount": clean_target,
            "currentAmount": 0.0,
            "deadline": as_ledger_datetime(deadline) if deadline is not None else None,
            "createdAt": SERVER_TIMESTAMP,
            "updatedAt": SERVER_TIMESTAMP,
        })
        await self._audit.log_record_written(
            event_type=AuditEventType.GOAL_CREATED,
            owner_id=owner_id,
            entity_type=self.entity_type,
            entity_id=goal_id,
            description=f"Goal created: {clean_name}",
            details={"target_amount": clean_target},
            correlation_id=correlation_id,
        )
        return goal_id

    async def list_goals(self, owner_id: str) -> list[Goal]:
        """Newest goal first."""
        docs = await self._store.query(
            goals_path(owner_id),
            order_by="createdAt",
            descending=True,
        )
        return [Goal.from_document(d.id, d.data) for d in docs]

    async def get_goal(self, owner_id: str, goal_id: str) -> Goal:
        doc = await self._store.get(goal_path(owner_id, goal_id))
        if doc is None:
            raise NotFoundError(f"Goal not found: {goal_id}")
        return Goal.from_document(doc.id, doc.data)

    async def update_goal(
        self,
        owner_id: str,
        goal_id: str,
        name: Optional[str] = None,
        target_amount: Optional[Union[int, float]] = None,
        deadline: Any = _KEEP,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """
        Patch name, target or deadline. Passing deadline=None clears it.

        Raises:
            LedgerValidationError: If a given field is invalid
            NotFoundError: If the goal doesn't exist
        """
        patch: dict[str, Any] = {"updatedAt": SERVER_TIMESTAMP}
        try:
            if name is not None:
                patch["name"] = require_text(name, "goal name required", "name")
            if target_amount is not None:
                patch["targetAmount"] = require_positive_amount(
                    target_amount, message="target must be > 0", field="target_amount"
                )
        except LedgerValidationError as e:
            await self._log_rejection(owner_id, e, correlation_id)
            raise
        if deadline is not _KEEP:
            patch["deadline"] = as_ledger_datetime(deadline) if deadline is not None else None

        await self._store.update(goal_path(owner_id, goal_id), patch)
        await self._audit.log_record_written(
            event_type=AuditEventType.GOAL_UPDATED,
            owner_id=owner_id,
            entity_type=self.entity_type,
            entity_id=goal_id,
            description="Goal updated",
            details={"fields": sorted(k for k in patch if k != "updatedAt")},
            correlation_id=correlation_id,
        )

    async def delete_goal(
        self,
        owner_id: str,
        goal_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self._store.delete(goal_path(owner_id, goal_id))
        await self._audit.log_record_written(
            event_type=AuditEventType.GOAL_DELETED,
            owner_id=owner_id,
            entity_type=self.entity_type,
            entity_id=goal_id,
            description="Goal deleted",
            correlation_id=correlation_id,
        )

    async def deposit_to_goal(
        self,
        owner_id: str,
        goal_id: str,
        amount: Union[int, float],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """
        Add money to a goal's balance.

        Raises:
            LedgerValidationError: "deposit must be > 0"
            NotFoundError: If the goal doesn't exist
        """
        try:
            clean_amount = require_positive_amount(amount, message="deposit must be > 0")
        except LedgerValidationError as e:
            await self._log_rejection(owner_id, e, correlation_id)
            raise

        await self._store.update(goal_path(owner_id, goal_id), {
            "currentAmount": Increment(clean_amount),
            "updatedAt": SERVER_TIMESTAMP,
        })
        await self._audit.log_record_written(
            event_type=AuditEventType.GOAL_DEPOSIT,
            owner_id=owner_id,
            entity_type=self.entity_type,
            entity_id=goal_id,
            description=f"Deposited {clean_amount:.2f}",
            details={"amount": clean_amount},
            correlation_id=correlation_id,
        )

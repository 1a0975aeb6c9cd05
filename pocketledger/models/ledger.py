"""
Core Data Models for Pocket Ledger

These models define the strict schemas for every document the ledger
reads from or writes to the document store. They are designed to:
1. Enforce type safety at runtime
2. Round-trip through the store under the camelCase field names the
   web front-end already uses (monthKey, itemCount, convertedToTransactions...)
3. Be serializable for storage and logging

DESIGN DECISION: Python attributes are snake_case; the persisted layout is
camelCase. A single alias generator on LedgerModel keeps both in sync.
"""

from datetime import date, datetime, time, timezone
from enum import Enum
from typing import Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


def month_key_from_date(value: Union[date, datetime]) -> str:
    """Format a date as the "YYYY-MM" bucket used across the ledger."""
    return f"{value.year:04d}-{value.month:02d}"


def as_ledger_datetime(value: Union[date, datetime]) -> datetime:
    """
    Normalise a calendar date to a datetime the store can hold.

    Plain dates are pinned to midday UTC so the month never shifts when the
    value is rendered in a nearby timezone. Naive datetimes are read as UTC,
    so every stored date is timezone-aware.
    """
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value
    return datetime.combine(value, time(12, 0), tzinfo=timezone.utc)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class TransactionType(str, Enum):
    """Direction of a ledger transaction."""
    EXPENSE = "expense"
    INCOME = "income"


class ConversionStatus(str, Enum):
    """
    Outcome of converting a bill session into transactions.

    ALREADY_CONVERTED is a success: conversion is idempotent.
    """
    CONVERTED = "converted"
    ALREADY_CONVERTED = "already_converted"


# =============================================================================
# BASE
# =============================================================================

class LedgerModel(BaseModel):
    """Base for all persisted ledger documents."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
        use_enum_values=True,
    )

    def to_document(self, exclude: Optional[set[str]] = None) -> dict:
        """Dump to the camelCase dict written to the store (ids excluded)."""
        return self.model_dump(by_alias=True, exclude={"id"} | (exclude or set()))

    @classmethod
    def from_document(cls, doc_id: str, data: dict, **extra):
        """Build a model from a stored document and its id."""
        return cls.model_validate({**data, "id": doc_id, **extra})


# =============================================================================
# PROFILE
# =============================================================================

class Category(LedgerModel):
    """A spending/income category owned by a user's profile."""

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)


class UserProfile(LedgerModel):
    """
    Per-user profile document.

    Supplies the currency and category list the rest of the ledger uses.
    """

    id: str = Field(..., description="User id (same as the namespace key)")
    email: Optional[str] = None
    display_name: str = ""
    currency: str = Field(default="LKR", min_length=1)
    categories: list[Category] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def category_name(self, category_id: str) -> str:
        """Display name for a category id, falling back to the id itself."""
        for category in self.categories:
            if category.id == category_id:
                return category.name
        return category_id

    @property
    def category_ids(self) -> set[str]:
        return {category.id for category in self.categories}


# =============================================================================
# BILL SESSIONS
# =============================================================================

class BiggestItem(LedgerModel):
    """The largest item in a session summary."""

    merchant: str
    amount: float


class CategoryTotal(LedgerModel):
    """Sum of item amounts for one category."""

    category_id: str
    total: float


class BillSessionSummary(LedgerModel):
    """
    Derived aggregate of a session's items.

    Not authoritative: always recomputed from a fresh item scan.
    """

    total: float = 0.0
    count: int = Field(default=0, ge=0)
    biggest: Optional[BiggestItem] = None
    by_category: list[CategoryTotal] = Field(default_factory=list)

    @property
    def top_category(self) -> Optional[CategoryTotal]:
        return self.by_category[0] if self.by_category else None


class BillItem(LedgerModel):
    """
    One receipt entered into a bill session.

    Items are immutable once created; they are only ever added or deleted.
    """

    id: str
    merchant: str = Field(..., min_length=1)
    amount: float = Field(..., gt=0, allow_inf_nan=False)
    category_id: str = Field(..., min_length=1)
    note: str = ""
    date: datetime = Field(..., description="When the purchase happened")
    created_at: Optional[datetime] = None

    @field_validator('note', mode='before')
    @classmethod
    def none_note_is_empty(cls, v: Optional[str]) -> str:
        return v or ""


class BillSession(LedgerModel):
    """
    A batch of receipts entered together for one calendar month.

    CRITICAL: converted_to_transactions is one-way. Once True it never
    reverts and the items become historical.
    """

    id: str
    owner_id: str = Field(..., description="Owning user (namespace, not stored)")
    title: str
    month_key: str = Field(..., pattern=r"^\d{4}-\d{2}$")
    currency: str
    item_count: int = 0
    created_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None
    converted_to_transactions: bool = False
    converted_at: Optional[datetime] = None
    summary: BillSessionSummary = Field(default_factory=BillSessionSummary)

    @property
    def is_closed(self) -> bool:
        return self.closed_at is not None

    def to_document(self, exclude: Optional[set[str]] = None) -> dict:
        return super().to_document(exclude={"owner_id"} | (exclude or set()))


# =============================================================================
# TRANSACTIONS
# =============================================================================

class TransactionSource(LedgerModel):
    """Provenance stamp on transactions created by a conversion."""

    kind: Literal["billSession"] = "billSession"
    session_id: str
    item_id: str


class Transaction(LedgerModel):
    """
    A ledger transaction.

    month_key is always derived from date, never supplied independently.
    """

    id: Optional[str] = None
    type: TransactionType
    amount: float = Field(..., gt=0, allow_inf_nan=False)
    category_id: str = Field(..., min_length=1)
    note: str = ""
    date: datetime
    month_key: str = Field(..., pattern=r"^\d{4}-\d{2}$")
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    source: Optional[TransactionSource] = None

    @field_validator('note', mode='before')
    @classmethod
    def none_note_is_empty(cls, v: Optional[str]) -> str:
        return v or ""

    @classmethod
    def from_bill_item(cls, item: BillItem, session_id: str) -> "Transaction":
        """
        Build the expense transaction a bill item converts into.

        The month comes from the item's own date, not the session label:
        a session titled for March may hold a receipt from late February.
        """
        return cls(
            type=TransactionType.EXPENSE,
            amount=item.amount,
            category_id=item.category_id,
            note=item.note,
            date=item.date,
            month_key=month_key_from_date(item.date),
            source=TransactionSource(session_id=session_id, item_id=item.id),
        )

    @property
    def is_expense(self) -> bool:
        return self.type == TransactionType.EXPENSE.value


class ConversionResult(BaseModel):
    """Result of BillSessionLedger.convert_to_transactions."""

    session_id: str
    status: ConversionStatus
    transaction_ids: list[str] = Field(default_factory=list)

    @property
    def created_count(self) -> int:
        return len(self.transaction_ids)


# =============================================================================
# BUDGETS & GOALS
# =============================================================================

OVERALL_BUDGET_CATEGORY = "all"


class Budget(LedgerModel):
    """
    Monthly spending limit for a category.

    The pseudo-category "all" holds the overall monthly limit.
    """

    id: str
    month_key: str = Field(..., pattern=r"^\d{4}-\d{2}$")
    category_id: str = Field(..., min_length=1)
    limit: float = Field(..., ge=0, allow_inf_nan=False)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class Goal(LedgerModel):
    """A savings goal with a target and running balance."""

    id: str
    name: str = Field(..., min_length=1)
    target_amount: float = Field(..., gt=0, allow_inf_nan=False)
    current_amount: float = 0.0
    deadline: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def progress(self) -> float:
        """Fraction of the target reached, capped at 1.0."""
        return min(1.0, self.current_amount / self.target_amount)

    @property
    def remaining(self) -> float:
        return max(0.0, self.target_amount - self.current_amount)

    @property
    def is_complete(self) -> bool:
        return self.current_amount >= self.target_amount


# =============================================================================
# INSIGHT MODELS
# =============================================================================

class IncomeExpenseTotals(BaseModel):
    """Income, expense and net for a set of transactions."""

    income: float = 0.0
    expense: float = 0.0
    net: float = 0.0


class BudgetUsage(BaseModel):
    """How much of a budget has been spent."""

    category_id: str
    limit: float
    spent: float
    remaining: float
    percent_used: float = Field(
        ...,
        ge=0.0,
        le=100.0,
        description="Spent as a percentage of the limit, capped at 100"
    )

    @property
    def over_limit(self) -> bool:
        return self.remaining < 0

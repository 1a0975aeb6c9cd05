"""
Data Models Package

This package contains all Pydantic models used in Pocket Ledger.
All documents read from or written to the store conform to these schemas.
"""

from pocketledger.models.ledger import (
    OVERALL_BUDGET_CATEGORY,
    BiggestItem,
    BillItem,
    BillSession,
    BillSessionSummary,
    Budget,
    BudgetUsage,
    Category,
    CategoryTotal,
    ConversionResult,
    ConversionStatus,
    Goal,
    IncomeExpenseTotals,
    Transaction,
    TransactionSource,
    TransactionType,
    UserProfile,
    as_ledger_datetime,
    month_key_from_date,
)
from pocketledger.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "OVERALL_BUDGET_CATEGORY",
    "BiggestItem",
    "BillItem",
    "BillSession",
    "BillSessionSummary",
    "Budget",
    "BudgetUsage",
    "Category",
    "CategoryTotal",
    "ConversionResult",
    "ConversionStatus",
    "Goal",
    "IncomeExpenseTotals",
    "Transaction",
    "TransactionSource",
    "TransactionType",
    "UserProfile",
    "as_ledger_datetime",
    "month_key_from_date",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]

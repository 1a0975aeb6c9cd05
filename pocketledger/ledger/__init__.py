"""Ledger services over the document store."""

from pocketledger.ledger.base import LedgerService, local_now
from pocketledger.ledger.bill_sessions import (
    BillSessionLedger,
    SessionConvertedError,
    compute_summary,
)
from pocketledger.ledger.budgets import BudgetLedger, budget_id
from pocketledger.ledger.goals import GoalLedger
from pocketledger.ledger.insights import (
    budget_usage,
    spent_by_category,
    summary_insight_line,
    total_income_expense,
)
from pocketledger.ledger.profiles import (
    DEFAULT_CATEGORIES,
    ProfileStore,
    custom_category_id,
)
from pocketledger.ledger.transactions import TransactionLedger

__all__ = [
    "LedgerService",
    "local_now",
    "BillSessionLedger",
    "SessionConvertedError",
    "compute_summary",
    "BudgetLedger",
    "budget_id",
    "GoalLedger",
    "budget_usage",
    "spent_by_category",
    "summary_insight_line",
    "total_income_expense",
    "DEFAULT_CATEGORIES",
    "ProfileStore",
    "custom_category_id",
    "TransactionLedger",
]

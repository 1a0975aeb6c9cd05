"""
Input Validation for Ledger Writes

DESIGN DECISION: Every write is validated before anything touches the
store. A rejected call leaves no partial state behind.

Checks are deliberately narrow: they cover what makes a record
meaningless (no merchant, non-positive amount, no category). Anything
softer is left to the front-end.

IMPORTANT: Validation NEVER silently fixes values beyond trimming
whitespace. It raises with a short message the UI can show as-is.
"""

import math
from typing import Optional, Union

from pocketledger.models.ledger import TransactionType


class LedgerError(Exception):
    """Base exception for ledger operations."""
    pass


class LedgerValidationError(LedgerError, ValueError):
    """
    Malformed input to a ledger write.

    Raised before any write is attempted.
    """

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.field = field


def _is_positive_number(value: Union[int, float]) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value) and value > 0


def require_text(value: Optional[str], message: str, field: str) -> str:
    """Trim a text value; raise if nothing is left."""
    cleaned = (value or "").strip()
    if not cleaned:
        raise LedgerValidationError(message, field=field)
    return cleaned


def require_positive_amount(
    value: Union[int, float],
    message: str = "amount must be > 0",
    field: str = "amount",
) -> float:
    """Amounts must be finite and strictly positive."""
    if not _is_positive_number(value):
        raise LedgerValidationError(message, field=field)
    return float(value)


def validate_bill_item(
    merchant: Optional[str],
    amount: Union[int, float],
    category_id: Optional[str],
) -> tuple[str, float, str]:
    """
    Validate a bill item before it is added to a session.

    Returns:
        (merchant, amount, category_id) with whitespace trimmed
    """
    clean_merchant = require_text(merchant, "merchant required", "merchant")
    clean_amount = require_positive_amount(amount)
    clean_category = require_text(category_id, "category required", "category_id")
    return clean_merchant, clean_amount, clean_category


def require_transaction_type(tx_type: Union[TransactionType, str]) -> TransactionType:
    try:
        return TransactionType(tx_type)
    except ValueError:
        raise LedgerValidationError(
            f"type must be one of: {', '.join(t.value for t in TransactionType)}",
            field="type",
        )


def validate_transaction(
    tx_type: Union[TransactionType, str],
    amount: Union[int, float],
    category_id: Optional[str],
) -> tuple[TransactionType, float, str]:
    """Validate a manually entered transaction."""
    clean_type = require_transaction_type(tx_type)
    clean_amount = require_positive_amount(amount)
    clean_category = require_text(category_id, "category required", "category_id")
    return clean_type, clean_amount, clean_category


def validate_budget(
    month_key: Optional[str],
    category_id: Optional[str],
    limit: Union[int, float],
) -> tuple[str, str, float]:
    """Budgets need a month and category; the limit may be zero."""
    clean_month = require_text(month_key, "monthKey required", "month_key")
    clean_category = require_text(category_id, "categoryId required", "category_id")
    if (
        isinstance(limit, bool)
        or not isinstance(limit, (int, float))
        or not math.isfinite(limit)
        or limit < 0
    ):
        raise LedgerValidationError("limit must be >= 0", field="limit")
    return clean_month, clean_category, float(limit)


def validate_goal(name: Optional[str], target_amount: Union[int, float]) -> tuple[str, float]:
    clean_name = require_text(name, "goal name required", "name")
    clean_target = require_positive_amount(
        target_amount, message="target must be > 0", field="target_amount"
    )
    return clean_name, clean_target

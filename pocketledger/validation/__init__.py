"""Validation package."""

from pocketledger.validation.validator import (
    LedgerError,
    LedgerValidationError,
    require_positive_amount,
    require_text,
    require_transaction_type,
    validate_bill_item,
    validate_budget,
    validate_goal,
    validate_transaction,
)

__all__ = [
    "LedgerError",
    "LedgerValidationError",
    "require_positive_amount",
    "require_text",
    "require_transaction_type",
    "validate_bill_item",
    "validate_budget",
    "validate_goal",
    "validate_transaction",
]

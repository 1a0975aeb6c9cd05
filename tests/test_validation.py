"""Tests for ledger input validation."""

import math

import pytest

from pocketledger.models import TransactionType
from pocketledger.validation import (
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


class TestBillItemValidation:
    """Tests for validate_bill_item."""

    def test_valid_item_is_trimmed(self):
        """Test that merchant and category are trimmed."""
        assert validate_bill_item("  Keells ", 100, " food ") == ("Keells", 100.0, "food")

    def test_blank_merchant_rejected(self):
        """Test that a whitespace-only merchant is rejected."""
        with pytest.raises(LedgerValidationError, match="merchant required") as exc:
            validate_bill_item("   ", 10, "food")
        assert exc.value.field == "merchant"

    @pytest.mark.parametrize("amount", [0, -5, math.nan, math.inf])
    def test_non_positive_or_non_finite_amount_rejected(self, amount):
        """Test amount must be a finite number above zero."""
        with pytest.raises(LedgerValidationError, match="amount must be > 0"):
            validate_bill_item("Keells", amount, "food")

    def test_boolean_amount_rejected(self):
        """Test that True is not accepted as the number 1."""
        with pytest.raises(LedgerValidationError):
            validate_bill_item("Keells", True, "food")

    def test_blank_category_rejected(self):
        """Test that an empty category is rejected."""
        with pytest.raises(LedgerValidationError, match="category required"):
            validate_bill_item("Keells", 10, "")

    def test_validation_error_hierarchy(self):
        """Test validation errors are both LedgerError and ValueError."""
        with pytest.raises(LedgerError):
            require_text(None, "name required", "name")
        with pytest.raises(ValueError):
            require_positive_amount(-1)


class TestTransactionValidation:
    """Tests for validate_transaction."""

    def test_accepts_enum_and_string_types(self):
        """Test both enum members and their values are accepted."""
        assert validate_transaction("income", 5, "salary")[0] == TransactionType.INCOME
        assert validate_transaction(TransactionType.EXPENSE, 5, "food")[0] == TransactionType.EXPENSE

    def test_unknown_type_rejected(self):
        """Test an unknown type names the allowed values."""
        with pytest.raises(LedgerValidationError, match="expense, income") as exc:
            require_transaction_type("transfer")
        assert exc.value.field == "type"


class TestBudgetAndGoalValidation:
    """Tests for validate_budget and validate_goal."""

    def test_budget_zero_limit_allowed(self):
        """Test a zero limit is accepted."""
        assert validate_budget("2025-03", "all", 0) == ("2025-03", "all", 0.0)

    def test_budget_negative_limit_rejected(self):
        """Test a negative limit is rejected."""
        with pytest.raises(LedgerValidationError, match="limit must be >= 0"):
            validate_budget("2025-03", "food", -1)

    def test_budget_requires_month_and_category(self):
        """Test month and category are required."""
        with pytest.raises(LedgerValidationError, match="monthKey required"):
            validate_budget("", "food", 10)
        with pytest.raises(LedgerValidationError, match="categoryId required"):
            validate_budget("2025-03", " ", 10)

    def test_goal_messages(self):
        """Test goal validation messages."""
        with pytest.raises(LedgerValidationError, match="goal name required"):
            validate_goal("", 100)
        with pytest.raises(LedgerValidationError, match="target must be > 0"):
            validate_goal("Bike", 0)
        assert validate_goal(" Bike ", 100) == ("Bike", 100.0)

"""Tests for profiles, transactions, budgets and goals."""

from datetime import date, datetime, timezone

import pytest

from pocketledger.ledger import DEFAULT_CATEGORIES, budget_id
from pocketledger.models import AuditEventType, TransactionType
from pocketledger.services.storage import NotFoundError
from pocketledger.validation import LedgerValidationError


def event_types(audit_storage):
    return [e.event_type for e in audit_storage.events]


class TestProfiles:
    """Tests for ProfileStore."""

    @pytest.mark.asyncio
    async def test_ensure_profile_creates_defaults(self, profiles, owner_id, audit_storage):
        """Test a new profile gets the default currency and categories."""
        profile = await profiles.ensure_profile(owner_id, email="a@b.c", display_name=" Ann ")

        assert profile.id == owner_id
        assert profile.currency == "LKR"
        assert profile.display_name == "Ann"
        assert [c.id for c in profile.categories] == [c.id for c in DEFAULT_CATEGORIES]
        assert profile.created_at is not None
        assert AuditEventType.PROFILE_CREATED in event_types(audit_storage)

    @pytest.mark.asyncio
    async def test_ensure_profile_keeps_existing(self, profiles, owner_id, audit_storage):
        """Test calling ensure_profile again doesn't overwrite anything."""
        await profiles.ensure_profile(owner_id, currency="USD")
        again = await profiles.ensure_profile(owner_id, currency="EUR")

        assert again.currency == "USD"
        assert event_types(audit_storage).count(AuditEventType.PROFILE_CREATED) == 1

    @pytest.mark.asyncio
    async def test_missing_profile(self, profiles):
        """Test reading an unknown profile raises NotFoundError."""
        with pytest.raises(NotFoundError):
            await profiles.get_profile("nobody")

    @pytest.mark.asyncio
    async def test_add_custom_category(self, profiles, owner_id):
        """Test a custom category gets a slug id and is persisted."""
        await profiles.ensure_profile(owner_id)
        category = await profiles.add_custom_category(owner_id, "  Pet Food ")

        assert category.name == "Pet Food"
        assert category.id.startswith("c_pet_food_")
        assert len(category.id) == len("c_pet_food_") + 5
        assert category.id in await profiles.category_ids(owner_id)

    @pytest.mark.asyncio
    async def test_duplicate_category_name_returns_existing(self, profiles, owner_id):
        """Test names are unique regardless of case."""
        await profiles.ensure_profile(owner_id)
        first = await profiles.add_custom_category(owner_id, "Pets")
        second = await profiles.add_custom_category(owner_id, "PETS")
        builtin = await profiles.add_custom_category(owner_id, "food")

        assert second == first
        assert builtin.id == "food"
        profile = await profiles.get_profile(owner_id)
        assert len(profile.categories) == len(DEFAULT_CATEGORIES) + 1

    @pytest.mark.asyncio
    async def test_blank_category_rejected(self, profiles, owner_id):
        """Test an empty name is rejected."""
        await profiles.ensure_profile(owner_id)
        with pytest.raises(LedgerValidationError, match="category name required"):
            await profiles.add_custom_category(owner_id, "  ")

    @pytest.mark.asyncio
    async def test_long_category_name_accepted(self, profiles, owner_id):
        """Test a category name over a hundred characters is stored whole."""
        await profiles.ensure_profile(owner_id)
        name = "Household " * 12

        category = await profiles.add_custom_category(owner_id, name)

        assert category.name == name.strip()
        assert category.id in await profiles.category_ids(owner_id)

    @pytest.mark.asyncio
    async def test_category_for_missing_profile(self, profiles):
        """Test adding a category without a profile raises NotFoundError."""
        with pytest.raises(NotFoundError):
            await profiles.add_custom_category("nobody", "Pets")


class TestTransactions:
    """Tests for TransactionLedger."""

    @pytest.mark.asyncio
    async def test_create_and_get(self, transactions, owner_id, audit_storage):
        """Test a created transaction reads back with its derived month."""
        tx_id = await transactions.create_transaction(
            owner_id, "income", 5000, " salary ", date(2025, 3, 1), note=" March "
        )
        txn = await transactions.get_transaction(owner_id, tx_id)

        assert txn.id == tx_id
        assert txn.type == TransactionType.INCOME
        assert txn.category_id == "salary"
        assert txn.note == "March"
        assert txn.month_key == "2025-03"
        assert txn.source is None
        assert txn.created_at is not None
        assert AuditEventType.TRANSACTION_CREATED in event_types(audit_storage)

    @pytest.mark.asyncio
    async def test_invalid_transaction_rejected(self, transactions, owner_id):
        """Test type and amount are validated."""
        with pytest.raises(LedgerValidationError):
            await transactions.create_transaction(owner_id, "transfer", 5, "food", date(2025, 3, 1))
        with pytest.raises(LedgerValidationError, match="amount must be > 0"):
            await transactions.create_transaction(owner_id, "expense", 0, "food", date(2025, 3, 1))

    @pytest.mark.asyncio
    async def test_list_for_month_latest_first(self, transactions, owner_id):
        """Test monthly listing filters on monthKey and sorts by date descending."""
        early = await transactions.create_transaction(owner_id, "expense", 10, "food", date(2025, 3, 2))
        late = await transactions.create_transaction(owner_id, "expense", 20, "food", date(2025, 3, 20))
        await transactions.create_transaction(owner_id, "expense", 30, "food", date(2025, 4, 1))

        march = await transactions.list_transactions_for_month(owner_id, "2025-03")
        assert [t.id for t in march] == [late, early]

    @pytest.mark.asyncio
    async def test_list_for_month_mixes_dates_and_naive_datetimes(self, transactions, owner_id):
        """Test plain dates and naive datetimes sort together in one month."""
        by_date = await transactions.create_transaction(owner_id, "expense", 10, "food", date(2025, 3, 2))
        naive = await transactions.create_transaction(
            owner_id, "expense", 20, "food", datetime(2025, 3, 5, 9, 0)
        )
        moved = await transactions.create_transaction(owner_id, "expense", 30, "food", date(2025, 3, 1))
        await transactions.update_transaction(owner_id, moved, date=datetime(2025, 3, 8, 18, 30))

        march = await transactions.list_transactions_for_month(owner_id, "2025-03")

        assert [t.id for t in march] == [moved, naive, by_date]
        assert march[1].date == datetime(2025, 3, 5, 9, 0, tzinfo=timezone.utc)

    @pytest.mark.asyncio
    async def test_update_date_moves_month(self, transactions, owner_id):
        """Test changing the date re-derives monthKey."""
        tx_id = await transactions.create_transaction(owner_id, "expense", 10, "food", date(2025, 3, 2))

        await transactions.update_transaction(
            owner_id, tx_id, amount=12.5, date=datetime(2025, 4, 3, 8, 0, tzinfo=timezone.utc)
        )
        txn = await transactions.get_transaction(owner_id, tx_id)

        assert txn.amount == 12.5
        assert txn.month_key == "2025-04"
        assert await transactions.list_transactions_for_month(owner_id, "2025-03") == []

    @pytest.mark.asyncio
    async def test_update_rejects_bad_amount(self, transactions, owner_id):
        """Test a partial update is validated and nothing changes on rejection."""
        tx_id = await transactions.create_transaction(owner_id, "expense", 10, "food", date(2025, 3, 2))

        with pytest.raises(LedgerValidationError):
            await transactions.update_transaction(owner_id, tx_id, amount=-1, note="x")
        assert (await transactions.get_transaction(owner_id, tx_id)).amount == 10

    @pytest.mark.asyncio
    async def test_missing_transaction(self, transactions, owner_id):
        """Test get, update and delete of unknown ids raise NotFoundError."""
        with pytest.raises(NotFoundError):
            await transactions.get_transaction(owner_id, "nope")
        with pytest.raises(NotFoundError):
            await transactions.update_transaction(owner_id, "nope", note="x")
        with pytest.raises(NotFoundError):
            await transactions.delete_transaction(owner_id, "nope")

    @pytest.mark.asyncio
    async def test_delete(self, transactions, owner_id):
        """Test a deleted transaction is gone."""
        tx_id = await transactions.create_transaction(owner_id, "expense", 10, "food", date(2025, 3, 2))
        await transactions.delete_transaction(owner_id, tx_id)

        with pytest.raises(NotFoundError):
            await transactions.get_transaction(owner_id, tx_id)


class TestBudgets:
    """Tests for BudgetLedger."""

    def test_budget_id(self):
        """Test budget ids combine month and category."""
        assert budget_id("2025-03", "all") == "2025-03_all"

    @pytest.mark.asyncio
    async def test_upsert_creates_then_updates(self, budgets, owner_id):
        """Test re-saving a budget keeps createdAt and replaces the limit."""
        created = await budgets.upsert_budget(owner_id, "2025-03", "food", 500)
        updated = await budgets.upsert_budget(owner_id, "2025-03", "food", 750)

        assert created.id == "2025-03_food"
        assert updated.limit == 750
        assert updated.created_at == created.created_at
        assert updated.updated_at > created.updated_at

    @pytest.mark.asyncio
    async def test_list_for_month(self, budgets, owner_id):
        """Test listing returns only the requested month."""
        await budgets.upsert_budget(owner_id, "2025-03", "all", 2000)
        await budgets.upsert_budget(owner_id, "2025-03", "food", 500)
        await budgets.upsert_budget(owner_id, "2025-04", "food", 400)

        march = await budgets.list_budgets_for_month(owner_id, "2025-03")
        assert sorted(b.category_id for b in march) == ["all", "food"]

    @pytest.mark.asyncio
    async def test_negative_limit_rejected(self, budgets, owner_id, audit_storage):
        """Test a negative limit is rejected and audited."""
        with pytest.raises(LedgerValidationError, match="limit must be >= 0"):
            await budgets.upsert_budget(owner_id, "2025-03", "food", -1)
        assert await budgets.list_budgets_for_month(owner_id, "2025-03") == []
        assert AuditEventType.VALIDATION_FAILED in event_types(audit_storage)


class TestGoals:
    """Tests for GoalLedger."""

    @pytest.mark.asyncio
    async def test_create_and_deposit(self, goals, owner_id):
        """Test deposits accumulate on the goal balance."""
        goal_id = await goals.create_goal(owner_id, " Bike ", 1000, deadline=date(2025, 12, 31))
        await goals.deposit_to_goal(owner_id, goal_id, 200)
        await goals.deposit_to_goal(owner_id, goal_id, 50.5)

        goal = await goals.get_goal(owner_id, goal_id)
        assert goal.name == "Bike"
        assert goal.current_amount == 250.5
        assert goal.deadline == datetime(2025, 12, 31, 12, 0, tzinfo=timezone.utc)

    @pytest.mark.asyncio
    async def test_validation_messages(self, goals, owner_id):
        """Test goal and deposit validation."""
        with pytest.raises(LedgerValidationError, match="goal name required"):
            await goals.create_goal(owner_id, "", 100)
        with pytest.raises(LedgerValidationError, match="target must be > 0"):
            await goals.create_goal(owner_id, "Bike", 0)

        goal_id = await goals.create_goal(owner_id, "Bike", 100)
        with pytest.raises(LedgerValidationError, match="deposit must be > 0"):
            await goals.deposit_to_goal(owner_id, goal_id, 0)

    @pytest.mark.asyncio
    async def test_long_name_accepted(self, goals, owner_id):
        """Test a long goal name round-trips through create and update."""
        goal_id = await goals.create_goal(owner_id, "G" * 201, 100)
        await goals.update_goal(owner_id, goal_id, name="H" * 300)

        assert (await goals.get_goal(owner_id, goal_id)).name == "H" * 300

    @pytest.mark.asyncio
    async def test_list_newest_first(self, goals, owner_id):
        """Test goals are listed most recent first."""
        first = await goals.create_goal(owner_id, "Bike", 100)
        second = await goals.create_goal(owner_id, "Phone", 200)

        assert [g.id for g in await goals.list_goals(owner_id)] == [second, first]

    @pytest.mark.asyncio
    async def test_update_and_clear_deadline(self, goals, owner_id):
        """Test deadline is kept unless passed, and None clears it."""
        goal_id = await goals.create_goal(owner_id, "Bike", 100, deadline=date(2025, 6, 1))

        await goals.update_goal(owner_id, goal_id, name="E-bike", target_amount=150)
        goal = await goals.get_goal(owner_id, goal_id)
        assert goal.name == "E-bike"
        assert goal.target_amount == 150
        assert goal.deadline is not None

        await goals.update_goal(owner_id, goal_id, deadline=None)
        assert (await goals.get_goal(owner_id, goal_id)).deadline is None

    @pytest.mark.asyncio
    async def test_missing_goal(self, goals, owner_id):
        """Test operations on unknown goals raise NotFoundError."""
        with pytest.raises(NotFoundError):
            await goals.get_goal(owner_id, "nope")
        with pytest.raises(NotFoundError):
            await goals.deposit_to_goal(owner_id, "nope", 10)
        with pytest.raises(NotFoundError):
            await goals.delete_goal(owner_id, "nope")

    @pytest.mark.asyncio
    async def test_delete(self, goals, owner_id, audit_storage):
        """Test deleting a goal removes it."""
        goal_id = await goals.create_goal(owner_id, "Bike", 100)
        await goals.delete_goal(owner_id, goal_id)

        assert await goals.list_goals(owner_id) == []
        assert AuditEventType.GOAL_DELETED in event_types(audit_storage)

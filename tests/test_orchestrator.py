"""End-to-end tests through create_app_components."""

from datetime import date

import pytest

from pocketledger.ledger import budget_usage, summary_insight_line
from pocketledger.models import ConversionStatus
from pocketledger.orchestrator import _create_store, create_app_components
from pocketledger.services.storage import InMemoryAuditStorage, InMemoryDocumentStore

from tests.conftest import START, SteppingClock


class TestCreateAppComponents:
    """Tests for the component factory."""

    def test_memory_backend(self):
        """Test the memory backend builds an in-memory store."""
        assert isinstance(_create_store("memory"), InMemoryDocumentStore)

    def test_unknown_backend(self):
        """Test an unknown backend name is refused."""
        with pytest.raises(ValueError):
            _create_store("postgres")

    def test_components_share_store(self):
        """Test every ledger is wired to the same store and audit logger."""
        store = InMemoryDocumentStore()
        components = create_app_components(store=store, use_audit_sheets=False)

        assert components.store is store
        assert components.audit_storage is None
        for ledger in (
            components.profiles,
            components.bill_sessions,
            components.transactions,
            components.budgets,
            components.goals,
        ):
            assert ledger._store is store
            assert ledger._audit is components.audit_logger


class TestMonthFlow:
    """A month of receipts, from profile to dashboard."""

    @pytest.mark.asyncio
    async def test_receipts_to_budget_usage(self):
        """Test bills entered in a session show up against the month's budgets."""
        audit = InMemoryAuditStorage()
        app = create_app_components(
            store=InMemoryDocumentStore(clock=SteppingClock()),
            audit_storage=audit,
            clock=lambda: START,
        )
        uid = "user-9"

        profile = await app.profiles.ensure_profile(uid, currency="LKR")
        session_id = await app.bill_sessions.create_session(uid, currency=profile.currency)
        await app.bill_sessions.add_item(uid, session_id, "A", 100, "food", date(2025, 3, 2))
        await app.bill_sessions.add_item(uid, session_id, "B", 250, "transport", date(2025, 3, 3))
        await app.bill_sessions.add_item(uid, session_id, "C", 50, "food", date(2025, 3, 4))

        summary = await app.bill_sessions.compute_and_save_summary(uid, session_id, close=True)
        assert summary_insight_line(summary, profile.category_name, profile.currency) == (
            "Top category: Transport (LKR 250.00). Biggest bill: B (LKR 250.00)."
        )

        result = await app.bill_sessions.convert_to_transactions(uid, session_id)
        assert result.status == ConversionStatus.CONVERTED

        await app.transactions.create_transaction(uid, "income", 1000, "salary", date(2025, 3, 25))
        await app.budgets.upsert_budget(uid, "2025-03", "food", 100)
        await app.budgets.upsert_budget(uid, "2025-03", "all", 1000)

        month = await app.transactions.list_transactions_for_month(uid, "2025-03")
        usages = {
            u.category_id: u
            for u in budget_usage(await app.budgets.list_budgets_for_month(uid, "2025-03"), month)
        }

        assert len(month) == 4
        assert usages["food"].spent == 150
        assert usages["food"].over_limit is True
        assert usages["all"].spent == 400
        assert usages["all"].percent_used == 40
        assert len(audit.events) > 0

"""Tests for the in-memory document store contract."""

from datetime import datetime, timezone

import pytest

from pocketledger.services.storage import (
    SERVER_TIMESTAMP,
    Increment,
    InMemoryDocumentStore,
    NotFoundError,
    PreconditionFailedError,
)


FIXED = datetime(2025, 1, 1, tzinfo=timezone.utc)


@pytest.fixture
def mem():
    return InMemoryDocumentStore(clock=lambda: FIXED)


class TestDocumentOperations:
    """Tests for single-document reads and writes."""

    @pytest.mark.asyncio
    async def test_add_and_get(self, mem):
        """Test add generates an id and resolves server timestamps."""
        doc_id = await mem.add("users/u1/goals", {"name": "Bike", "createdAt": SERVER_TIMESTAMP})
        doc = await mem.get(f"users/u1/goals/{doc_id}")

        assert doc.id == doc_id
        assert doc.data == {"name": "Bike", "createdAt": FIXED}

    @pytest.mark.asyncio
    async def test_get_missing_returns_none(self, mem):
        """Test that a missing document reads as None."""
        assert await mem.get("users/u1/goals/nope") is None

    @pytest.mark.asyncio
    async def test_snapshots_are_copies(self, mem):
        """Test mutating a snapshot doesn't change the store."""
        await mem.set("users/u1", {"categories": [{"id": "food"}]})
        doc = await mem.get("users/u1")
        doc.data["categories"].append({"id": "x"})

        assert len((await mem.get("users/u1")).data["categories"]) == 1

    @pytest.mark.asyncio
    async def test_set_merge_keeps_other_fields(self, mem):
        """Test merge=True only overwrites the given fields."""
        await mem.set("users/u1/budgets/b", {"limit": 10, "createdAt": FIXED})
        await mem.set("users/u1/budgets/b", {"limit": 20}, merge=True)

        assert (await mem.get("users/u1/budgets/b")).data == {"limit": 20, "createdAt": FIXED}

    @pytest.mark.asyncio
    async def test_increment(self, mem):
        """Test Increment adds to the current value (missing counts as 0)."""
        await mem.set("users/u1/goals/g", {"name": "Bike"})
        await mem.update("users/u1/goals/g", {"currentAmount": Increment(5)})
        await mem.update("users/u1/goals/g", {"currentAmount": Increment(2.5)})

        assert (await mem.get("users/u1/goals/g")).data["currentAmount"] == 7.5

    @pytest.mark.asyncio
    async def test_update_and_delete_missing_raise(self, mem):
        """Test update and delete require the document to exist."""
        with pytest.raises(NotFoundError):
            await mem.update("users/u1/goals/g", {"name": "x"})
        with pytest.raises(NotFoundError):
            await mem.delete("users/u1/goals/g")


class TestQueries:
    """Tests for collection queries."""

    @pytest.mark.asyncio
    async def test_only_direct_children_listed(self, mem):
        """Test subcollection documents are not returned with their parent collection."""
        await mem.set("users/u1/billSessions/s1", {"title": "a"})
        await mem.set("users/u1/billSessions/s1/items/i1", {"merchant": "m"})

        docs = await mem.query("users/u1/billSessions")
        assert [d.id for d in docs] == ["s1"]

    @pytest.mark.asyncio
    async def test_order_ties_fall_back_to_insertion_order(self, mem):
        """Test equal order values sort by insertion sequence."""
        for name in ("a", "b", "c"):
            await mem.set(f"users/u1/items/{name}", {"createdAt": FIXED})

        newest_first = await mem.query("users/u1/items", order_by="createdAt", descending=True)
        assert [d.id for d in newest_first] == ["c", "b", "a"]

    @pytest.mark.asyncio
    async def test_documents_missing_order_field_skipped(self, mem):
        """Test order_by skips documents without the field."""
        await mem.set("users/u1/items/a", {"createdAt": FIXED})
        await mem.set("users/u1/items/b", {})

        docs = await mem.query("users/u1/items", order_by="createdAt")
        assert [d.id for d in docs] == ["a"]

    @pytest.mark.asyncio
    async def test_filters_and_limit(self, mem):
        """Test equality and nested field filters with a limit."""
        await mem.set("users/u1/transactions/t1", {"monthKey": "2025-03", "source": {"sessionId": "s1"}})
        await mem.set("users/u1/transactions/t2", {"monthKey": "2025-03"})
        await mem.set("users/u1/transactions/t3", {"monthKey": "2025-04"})

        march = await mem.query("users/u1/transactions", filters=[("monthKey", "==", "2025-03")])
        assert [d.id for d in march] == ["t1", "t2"]

        from_session = await mem.query(
            "users/u1/transactions", filters=[("source.sessionId", "==", "s1")]
        )
        assert [d.id for d in from_session] == ["t1"]

        limited = await mem.query("users/u1/transactions", limit=1)
        assert len(limited) == 1


class TestBatches:
    """Tests for atomic batches and preconditions."""

    @pytest.mark.asyncio
    async def test_batch_applies_all_writes(self, mem):
        """Test a successful batch applies every write."""
        await mem.set("users/u1/billSessions/s1", {"itemCount": 0, "convertedToTransactions": False})

        batch = mem.batch()
        batch.require_field("users/u1/billSessions/s1", "convertedToTransactions", False)
        new_id = batch.create("users/u1/transactions", {"amount": 1.0})
        batch.update("users/u1/billSessions/s1", {"itemCount": Increment(1)})
        await batch.commit()

        assert (await mem.get(f"users/u1/transactions/{new_id}")).data == {"amount": 1.0}
        assert (await mem.get("users/u1/billSessions/s1")).data["itemCount"] == 1

    @pytest.mark.asyncio
    async def test_failed_precondition_writes_nothing(self, mem):
        """Test a failed precondition leaves the store untouched."""
        await mem.set("users/u1/billSessions/s1", {"convertedToTransactions": True})

        batch = mem.batch()
        batch.require_field("users/u1/billSessions/s1", "convertedToTransactions", False)
        batch.create("users/u1/transactions", {"amount": 1.0})

        with pytest.raises(PreconditionFailedError):
            await batch.commit()
        assert len(mem) == 1

    @pytest.mark.asyncio
    async def test_failing_write_rolls_back_earlier_writes(self, mem):
        """Test a write that fails mid-batch undoes the writes before it."""
        batch = mem.batch()
        batch.create("users/u1/transactions", {"amount": 1.0})
        batch.update("users/u1/billSessions/missing", {"itemCount": Increment(1)})

        with pytest.raises(NotFoundError):
            await batch.commit()
        assert len(mem) == 0

    @pytest.mark.asyncio
    async def test_require_exists(self, mem):
        """Test existence preconditions."""
        batch = mem.batch()
        batch.require_exists("users/u1/billSessions/s1")
        with pytest.raises(NotFoundError):
            await batch.commit()

    @pytest.mark.asyncio
    async def test_precondition_on_null_field(self, mem):
        """Test a precondition expecting None matches an unset field."""
        await mem.set("users/u1/billSessions/s1", {"closedAt": None})

        batch = mem.batch()
        batch.require_field("users/u1/billSessions/s1", "closedAt", None)
        batch.update("users/u1/billSessions/s1", {"closedAt": SERVER_TIMESTAMP})
        await batch.commit()

        assert (await mem.get("users/u1/billSessions/s1")).data["closedAt"] == FIXED

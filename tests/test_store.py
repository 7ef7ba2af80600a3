"""Tests for the document store: reads, atomic batches, queries and transactions."""

import pytest

from payroll_portal.store import (
    DOCUMENT_ID,
    ArrayUnion,
    BatchCommittedError,
    DocumentExistsError,
    DocumentNotFoundError,
    DocumentStore,
    Increment,
    Query,
)
from payroll_portal.store.fields import InvalidFieldPathError

pytestmark = pytest.mark.asyncio


class TestReadsAndWrites:
    """Single-document operations."""

    async def test_get_missing_document(self, store: DocumentStore):
        snap = await store.get("general", "nope")
        assert snap.exists is False
        assert snap.to_dict() is None
        assert snap.get("name", "fallback") == "fallback"

    async def test_add_then_get(self, store: DocumentStore):
        doc_id = await store.add("general", {"empCode": "EN0001", "name": {"first": "Asha"}})
        assert len(doc_id) == 20

        snap = await store.get("general", doc_id)
        assert snap.exists
        assert snap.get("name.first") == "Asha"
        assert snap.get(DOCUMENT_ID) == doc_id

    async def test_snapshot_is_a_copy(self, store: DocumentStore):
        await store.set(store.ref("general", "g1"), {"name": {"first": "Asha"}})
        snap = await store.get("general", "g1")
        body = snap.to_dict()
        body["name"]["first"] = "Changed"

        again = await store.get("general", "g1")
        assert again.get("name.first") == "Asha"

    async def test_update_missing_document_fails(self, store: DocumentStore):
        with pytest.raises(DocumentNotFoundError):
            await store.update(store.ref("employees", "missing"), {"isDeleted": True})

    async def test_update_dotted_path_creates_intermediate_maps(self, store: DocumentStore):
        await store.set(store.ref("loanDetails", "l1"), {"status": "PENDING"})
        await store.update(
            store.ref("loanDetails", "l1"),
            {"paybackTerm.installment": "500", "paybackTerm.date": "2025-01-01"},
        )

        snap = await store.get("loanDetails", "l1")
        assert snap.get("paybackTerm") == {"installment": "500", "date": "2025-01-01"}
        assert snap.get("status") == "PENDING"

    async def test_set_merge_is_deep(self, store: DocumentStore):
        ref = store.ref("general", "g1")
        await store.set(ref, {"name": {"first": "Asha", "last": "Rao"}, "gender": "FEMALE"})
        await store.set(ref, {"name": {"last": "Iyer"}}, merge=True)

        snap = await store.get("general", "g1")
        assert snap.get("name") == {"first": "Asha", "last": "Iyer"}
        assert snap.get("gender") == "FEMALE"

    async def test_set_without_merge_overwrites(self, store: DocumentStore):
        ref = store.ref("general", "g1")
        await store.set(ref, {"a": 1, "b": 2})
        await store.set(ref, {"a": 3})

        assert (await store.get("general", "g1")).to_dict() == {"a": 3}

    async def test_array_union_skips_existing_values(self, store: DocumentStore):
        ref = store.ref("employees", "e1")
        await store.set(ref, {"loanId": ["l1"]})
        await store.update(ref, {"loanId": ArrayUnion("l1", "l2")})
        await store.update(ref, {"loanId": ArrayUnion("l3")})

        assert (await store.get("employees", "e1")).get("loanId") == ["l1", "l2", "l3"]

    async def test_array_union_on_missing_field(self, store: DocumentStore):
        ref = store.ref("employees", "e1")
        await store.set(ref, {"isDeleted": False})
        await store.update(ref, {"previousJobId": ArrayUnion("p1")})

        assert (await store.get("employees", "e1")).get("previousJobId") == ["p1"]

    async def test_increment(self, store: DocumentStore):
        ref = store.ref("counters", "c1")
        await store.set(ref, {"value": 4})
        await store.update(ref, {"value": Increment(3), "fresh": Increment()})

        snap = await store.get("counters", "c1")
        assert snap.get("value") == 7
        assert snap.get("fresh") == 1

    async def test_get_all_preserves_positions(self, store: DocumentStore):
        await store.set(store.ref("loanDetails", "a"), {"n": 1})
        await store.set(store.ref("loanDetails", "c"), {"n": 3})

        snaps = await store.get_all("loanDetails", ["c", "missing", "a"])
        assert [snap.id for snap in snaps] == ["c", "missing", "a"]
        assert [snap.to_dict() for snap in snaps] == [{"n": 3}, None, {"n": 1}]


class TestBatches:
    """Atomic multi-document writes."""

    async def test_batch_commits_every_write(self, store: DocumentStore):
        batch = store.batch()
        batch.create(store.ref("general", "g1"), {"empCode": "EN0001"})
        batch.create(store.ref("employees", "e1"), {"generalId": "g1"})
        batch.update(store.ref("general", "g1"), {"id": "g1"})

        assert await batch.commit() == 3
        assert (await store.get("general", "g1")).to_dict() == {"empCode": "EN0001", "id": "g1"}
        assert (await store.get("employees", "e1")).exists

    async def test_failed_batch_writes_nothing(self, store: DocumentStore):
        await store.set(store.ref("general", "taken"), {"empCode": "EN0001"})

        batch = store.batch()
        batch.create(store.ref("professional", "p1"), {"department": "Engineering"})
        batch.create(store.ref("general", "taken"), {"empCode": "EN0002"})
        with pytest.raises(DocumentExistsError):
            await batch.commit()

        assert not (await store.get("professional", "p1")).exists
        assert (await store.get("general", "taken")).get("empCode") == "EN0001"

    async def test_failed_update_rolls_back_batch(self, store: DocumentStore):
        batch = store.batch()
        batch.create(store.ref("loanDetails", "l1"), {"status": "PENDING"})
        batch.update(store.ref("employees", "ghost"), {"loanId": ArrayUnion("l1")})
        with pytest.raises(DocumentNotFoundError):
            await batch.commit()

        assert not (await store.get("loanDetails", "l1")).exists

    async def test_batch_cannot_be_reused(self, store: DocumentStore):
        batch = store.batch().create(store.ref("general", "g1"), {"a": 1})
        await batch.commit()
        with pytest.raises(BatchCommittedError):
            await batch.commit()

    async def test_empty_update_is_rejected(self, store: DocumentStore):
        with pytest.raises(ValueError):
            store.batch().update(store.ref("general", "g1"), {})

    async def test_malformed_path_rolls_back_batch(self, store: DocumentStore):
        await store.set(store.ref("previousJobs", "j1"), {"company": "Initech"})
        batch = store.batch()
        batch.update(store.ref("previousJobs", "j1"), {"company": "Globex"})
        batch.update(store.ref("previousJobs", "j1"), {"a..b": 1})

        with pytest.raises(InvalidFieldPathError):
            await batch.commit()
        assert (await store.get("previousJobs", "j1")).to_dict() == {"company": "Initech"}


class TestQueries:
    """Filters, ordering, limits and cursors."""

    @pytest.fixture
    async def loans(self, store: DocumentStore):
        rows = {
            "l1": {"status": "PENDING", "paybackTerm": {"date": "2025-01-10"}, "amount": 100},
            "l2": {"status": "APPROVED", "paybackTerm": {"date": "2025-03-01"}, "amount": 250},
            "l3": {"status": "DECLINED", "paybackTerm": {"date": "2025-02-15"}, "amount": 75},
            "l4": {"status": "APPROVED", "paybackTerm": {"date": "2025-02-15"}, "amount": 500},
        }
        for doc_id, data in rows.items():
            await store.set(store.ref("loanDetails", doc_id), data)
        await store.set(store.ref("general", "other"), {"status": "APPROVED"})
        return rows

    async def test_equality_filter(self, store: DocumentStore, loans):
        rows = await store.run(
            Query("loanDetails").where("status", "==", "APPROVED").order_by(DOCUMENT_ID)
        )
        assert [row.id for row in rows] == ["l2", "l4"]

    async def test_in_filter(self, store: DocumentStore, loans):
        rows = await store.run(
            Query("loanDetails").where("status", "in", ["PENDING", "DECLINED"]).order_by(DOCUMENT_ID)
        )
        assert [row.id for row in rows] == ["l1", "l3"]

    async def test_numeric_range_filter(self, store: DocumentStore, loans):
        rows = await store.run(
            Query("loanDetails").where("amount", ">=", 100).order_by(DOCUMENT_ID)
        )
        assert [row.id for row in rows] == ["l1", "l2", "l4"]

    async def test_order_desc_breaks_ties_by_id(self, store: DocumentStore, loans):
        rows = await store.run(Query("loanDetails").order_by("paybackTerm.date", "desc"))
        assert [row.id for row in rows] == ["l2", "l4", "l3", "l1"]

    async def test_start_after_cursor(self, store: DocumentStore, loans):
        query = Query("loanDetails").order_by("paybackTerm.date", "desc")
        first = await store.run(query.limit(2))
        rest = await store.run(query.start_after(first[-1]))

        assert [row.id for row in first] == ["l2", "l4"]
        assert [row.id for row in rest] == ["l3", "l1"]

    async def test_start_after_requires_order(self, store: DocumentStore, loans):
        snap = await store.get("loanDetails", "l1")
        with pytest.raises(ValueError):
            Query("loanDetails").start_after(snap)

    async def test_unknown_operator_rejected(self):
        with pytest.raises(ValueError):
            Query("loanDetails").where("status", "like", "A%")


class TestTransactions:
    """Read-then-write units of work."""

    async def test_writes_apply_on_exit(self, store: DocumentStore):
        ref = store.ref("employeeCodeCounters", "EN")
        async with store.transaction() as txn:
            snap = await txn.get(ref)
            assert not snap.exists
            txn.set(ref, {"lastNumber": 1})

        assert (await store.get("employeeCodeCounters", "EN")).get("lastNumber") == 1

    async def test_error_discards_writes(self, store: DocumentStore):
        ref = store.ref("employeeCodeCounters", "EN")
        with pytest.raises(RuntimeError):
            async with store.transaction() as txn:
                txn.set(ref, {"lastNumber": 1})
                raise RuntimeError("abort")

        assert not (await store.get("employeeCodeCounters", "EN")).exists

    async def test_transaction_query(self, store: DocumentStore):
        await store.set(store.ref("general", "g1"), {"empCode": "EN0001"})
        async with store.transaction() as txn:
            rows = await txn.run(Query("general").where("empCode", "==", "EN0001"))
        assert [row.id for row in rows] == ["g1"]

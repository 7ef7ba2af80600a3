"""Tests for page-number pagination over ordered queries."""

import pytest
import pytest_asyncio

from payroll_portal.services import fetch_page
from payroll_portal.store import DOCUMENT_ID, DocumentStore, Query

pytestmark = pytest.mark.asyncio

DOC_IDS = [f"emp{n:02d}" for n in range(1, 8)]


@pytest_asyncio.fixture
async def seeded(store: DocumentStore) -> list[str]:
    for doc_id in DOC_IDS:
        await store.set(store.ref("employees", doc_id), {"isDeleted": False})
    await store.set(store.ref("employees", "emp99"), {"isDeleted": True})
    return DOC_IDS


def _query() -> Query:
    return Query("employees").where("isDeleted", "==", False).order_by(DOCUMENT_ID)


class TestFetchPage:
    """Pages line up with a single ordered scan."""

    async def test_first_page(self, store: DocumentStore, seeded):
        rows = await fetch_page(store, _query(), limit=3, page=1)
        assert [row.id for row in rows] == ["emp01", "emp02", "emp03"]

    @pytest.mark.parametrize("limit", [1, 2, 3, 7, 10])
    async def test_pages_concatenate_to_full_scan(self, store: DocumentStore, seeded, limit):
        collected: list[str] = []
        page = 1
        while True:
            rows = await fetch_page(store, _query(), limit=limit, page=page)
            if not rows:
                break
            assert len(rows) <= limit
            collected.extend(row.id for row in rows)
            page += 1

        assert collected == DOC_IDS

    async def test_last_partial_page(self, store: DocumentStore, seeded):
        rows = await fetch_page(store, _query(), limit=3, page=3)
        assert [row.id for row in rows] == ["emp07"]

    async def test_page_past_end_is_empty(self, store: DocumentStore, seeded):
        assert await fetch_page(store, _query(), limit=3, page=4) == []
        assert await fetch_page(store, _query(), limit=5, page=9) == []

    async def test_page_and_limit_are_clamped(self, store: DocumentStore, seeded):
        rows = await fetch_page(store, _query(), limit=0, page=0)
        assert [row.id for row in rows] == ["emp01"]

    async def test_empty_collection(self, store: DocumentStore):
        assert await fetch_page(store, _query(), limit=10, page=2) == []

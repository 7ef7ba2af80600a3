"""Page-number pagination over ordered document queries."""

from __future__ import annotations

from payroll_portal.store import DocumentSnapshot, DocumentStore, Query


async def fetch_page(
    store: DocumentStore,
    query: Query,
    limit: int = 10,
    page: int = 1,
) -> list[DocumentSnapshot]:
    """Return page ``page`` (1-based) of ``query`` with ``limit`` rows per page.

    Page numbers are not backed by a stored cursor: for page N the first
    (N-1)*limit documents are read to find the last document of the previous
    page, and the real read starts strictly after it.  Cost therefore grows
    with the page number.  ``query`` must carry an ``order_by`` so the cursor
    is well-defined.
    """
    page = max(page, 1)
    limit = max(limit, 1)

    if page > 1:
        preceding = await store.run(query.limit((page - 1) * limit))
        if preceding:
            query = query.start_after(preceding[-1])

    return await store.run(query.limit(limit))

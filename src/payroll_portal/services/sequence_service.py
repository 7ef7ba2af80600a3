"""Numbering-scheme registry."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from payroll_portal.constants import SEQUENCE_NUMBERS
from payroll_portal.store import DOCUMENT_ID, DocumentStore, Query


class SequenceService:
    def __init__(self, store: DocumentStore):
        self.store = store

    async def create_sequence(
        self,
        seq_type: str,
        prefix: str,
        next_available_number: int,
        created_by: str,
    ) -> str:
        return await self.store.add(
            SEQUENCE_NUMBERS,
            {
                "type": seq_type.strip(),
                "prefix": prefix.strip(),
                "nextAvailableNumber": int(next_available_number),
                "createdBy": created_by,
                "createdAt": datetime.now(timezone.utc).isoformat(),
            },
        )

    async def list_sequences(self) -> list[dict[str, Any]]:
        rows = await self.store.run(Query(SEQUENCE_NUMBERS).order_by(DOCUMENT_ID))
        return [{"id": row.id, **(row.data or {})} for row in rows]

"""Document table backing every collection of the document store."""

from __future__ import annotations

from typing import Any

from sqlalchemy import JSON, Index, String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from payroll_portal.models.base import Base, TimestampMixin


class DocumentRecord(Base, TimestampMixin):
    """A single document: a JSON body addressed by (collection, doc_id)."""

    __tablename__ = "document"
    __table_args__ = (Index("ix_document_collection", "collection"),)

    collection: Mapped[str] = mapped_column(String(128), primary_key=True)
    doc_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    data: Mapped[dict[str, Any]] = mapped_column(
        JSON().with_variant(JSONB(), "postgresql"),
        nullable=False,
        default=dict,
    )

    def __repr__(self) -> str:
        return f"<DocumentRecord {self.collection}/{self.doc_id}>"

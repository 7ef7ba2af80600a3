"""SQLAlchemy ORM models."""

from payroll_portal.models.base import Base, TimestampMixin
from payroll_portal.models.document import DocumentRecord

__all__ = ["Base", "TimestampMixin", "DocumentRecord"]

"""Document snapshots and the query builder for the document store."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field, replace
from typing import Any, Literal

from sqlalchemy import Select, and_, or_, select
from sqlalchemy.sql.elements import ColumnElement

from payroll_portal.models import DocumentRecord
from payroll_portal.store.fields import MISSING, get_path, split_path

DOCUMENT_ID = "__name__"

Direction = Literal["asc", "desc"]

_OPERATORS = frozenset({"==", "!=", "<", "<=", ">", ">=", "in"})


@dataclass(frozen=True)
class DocumentSnapshot:
    """An immutable read of one document."""

    collection: str
    id: str
    data: dict[str, Any] | None = None

    @property
    def exists(self) -> bool:
        return self.data is not None

    def to_dict(self) -> dict[str, Any] | None:
        """Return a copy of the document body, or None if it does not exist."""
        return copy.deepcopy(self.data) if self.data is not None else None

    def get(self, path: str, default: Any = None) -> Any:
        if self.data is None:
            return default
        if path == DOCUMENT_ID:
            return self.id
        value = get_path(self.data, path)
        return default if value is MISSING else value


@dataclass(frozen=True)
class FieldFilter:
    field: str
    op: str
    value: Any


@dataclass(frozen=True)
class Query:
    """Immutable description of a collection scan.

    Each builder method returns a new query, so a base query can be shared
    and specialised per request::

        base = Query("employees").where("isDeleted", "==", False).order_by("__name__")
        first = await store.run(base.limit(10))
        second = await store.run(base.start_after(first[-1]).limit(10))
    """

    collection: str
    filters: tuple[FieldFilter, ...] = ()
    order_field: str | None = None
    direction: Direction = "asc"
    limit_count: int | None = None
    cursor: DocumentSnapshot | None = field(default=None, compare=False)

    def where(self, field_path: str, op: str, value: Any) -> Query:
        if op not in _OPERATORS:
            raise ValueError(f"Unsupported operator: {op}")
        if op == "in" and not isinstance(value, (list, tuple, set, frozenset)):
            raise ValueError("'in' filters require a list of values")
        return replace(self, filters=self.filters + (FieldFilter(field_path, op, value),))

    def order_by(self, field_path: str, direction: Direction = "asc") -> Query:
        if direction not in ("asc", "desc"):
            raise ValueError(f"Unsupported direction: {direction}")
        return replace(self, order_field=field_path, direction=direction)

    def limit(self, count: int) -> Query:
        if count < 0:
            raise ValueError("limit must not be negative")
        return replace(self, limit_count=count)

    def start_after(self, snapshot: DocumentSnapshot) -> Query:
        if self.order_field is None:
            raise ValueError("start_after requires an order_by clause")
        return replace(self, cursor=snapshot)

    def to_select(self) -> Select[tuple[DocumentRecord]]:
        """Compile the query into a SQLAlchemy select over the document table."""
        stmt = select(DocumentRecord).where(DocumentRecord.collection == self.collection)

        for flt in self.filters:
            stmt = stmt.where(_compile_filter(flt))

        order_expr: ColumnElement[Any] | None = None
        if self.order_field is not None and self.order_field != DOCUMENT_ID:
            order_expr = _json_value(self.order_field, "")
            stmt = stmt.where(order_expr.is_not(None))

        if self.cursor is not None:
            stmt = stmt.where(self._cursor_clause(order_expr))

        if self.direction == "desc":
            if order_expr is not None:
                stmt = stmt.order_by(order_expr.desc())
            stmt = stmt.order_by(DocumentRecord.doc_id.desc())
        else:
            if order_expr is not None:
                stmt = stmt.order_by(order_expr.asc())
            stmt = stmt.order_by(DocumentRecord.doc_id.asc())

        if self.limit_count is not None:
            stmt = stmt.limit(self.limit_count)
        return stmt

    def _cursor_clause(self, order_expr: ColumnElement[Any] | None) -> ColumnElement[bool]:
        assert self.cursor is not None
        cursor_id = self.cursor.id
        descending = self.direction == "desc"

        def past(column: Any, value: Any) -> ColumnElement[bool]:
            return column < value if descending else column > value

        if order_expr is None:
            return past(DocumentRecord.doc_id, cursor_id)

        cursor_value = self.cursor.get(self.order_field)
        if cursor_value is None:
            return past(DocumentRecord.doc_id, cursor_id)
        cursor_value = str(cursor_value)
        return or_(
            past(order_expr, cursor_value),
            and_(order_expr == cursor_value, past(DocumentRecord.doc_id, cursor_id)),
        )


def _json_value(field_path: str, sample: Any) -> ColumnElement[Any]:
    """Typed accessor for a JSON field, chosen from the value it is compared to."""
    if field_path == DOCUMENT_ID:
        return DocumentRecord.doc_id
    element = DocumentRecord.data[split_path(field_path)]
    if isinstance(sample, bool):
        return element.as_boolean()
    if isinstance(sample, int):
        return element.as_integer()
    if isinstance(sample, float):
        return element.as_float()
    return element.as_string()


def _compile_filter(flt: FieldFilter) -> ColumnElement[bool]:
    if flt.op == "in":
        values = list(flt.value)
        column = _json_value(flt.field, values[0] if values else "")
        return column.in_(values)

    column = _json_value(flt.field, flt.value)
    if flt.op == "==":
        return column == flt.value
    if flt.op == "!=":
        return column != flt.value
    if flt.op == "<":
        return column < flt.value
    if flt.op == "<=":
        return column <= flt.value
    if flt.op == ">":
        return column > flt.value
    return column >= flt.value

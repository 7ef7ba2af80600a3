"""Async document store over the SQL ``document`` table.

Collections are namespaces inside a single table; each document is a JSON
body.  Writes are grouped into batches that commit inside one database
transaction, so every operation in a batch lands or none does.
"""

from __future__ import annotations

import copy
import logging
import secrets
import string
from collections.abc import AsyncIterator, Mapping, Sequence
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, Literal

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from payroll_portal.database import WRITE_EXECUTION_OPTIONS
from payroll_portal.errors import ConflictError, NotFoundError, PortalError
from payroll_portal.models import DocumentRecord
from payroll_portal.store.fields import (
    apply_field_updates,
    deep_merge,
    resolve_transforms,
)
from payroll_portal.store.query import DocumentSnapshot, Query

logger = logging.getLogger(__name__)

_ID_ALPHABET = string.ascii_letters + string.digits
_ID_LENGTH = 20


class DocumentNotFoundError(NotFoundError):
    """Raised when an update targets a document that does not exist."""

    def __init__(self, collection: str, doc_id: str):
        self.collection = collection
        self.doc_id = doc_id
        super().__init__(f"No document to update: {collection}/{doc_id}")


class DocumentExistsError(ConflictError):
    """Raised when a create targets a document that already exists."""

    def __init__(self, collection: str, doc_id: str):
        self.collection = collection
        self.doc_id = doc_id
        super().__init__(f"Document already exists: {collection}/{doc_id}")


class WriteConflictError(ConflictError):
    """Raised when a concurrent writer created the same document first."""


class BatchCommittedError(PortalError):
    """Raised when a batch is reused after commit."""


@dataclass(frozen=True)
class DocumentRef:
    """Address of a document."""

    collection: str
    id: str


@dataclass(frozen=True)
class WriteOp:
    kind: Literal["create", "set", "merge", "update"]
    ref: DocumentRef
    data: Mapping[str, Any]


def new_document_id() -> str:
    """Generate a random 20-character alphanumeric document id."""
    return "".join(secrets.choice(_ID_ALPHABET) for _ in range(_ID_LENGTH))


def _snapshot(record: DocumentRecord) -> DocumentSnapshot:
    return DocumentSnapshot(record.collection, record.doc_id, copy.deepcopy(record.data))


class _WriteQueue:
    """Ordered list of write operations shared by batches and transactions."""

    def __init__(self) -> None:
        self._ops: list[WriteOp] = []

    def __len__(self) -> int:
        return len(self._ops)

    def create(self, ref: DocumentRef, data: Mapping[str, Any]) -> _WriteQueue:
        self._ops.append(WriteOp("create", ref, dict(data)))
        return self

    def set(self, ref: DocumentRef, data: Mapping[str, Any], merge: bool = False) -> _WriteQueue:
        self._ops.append(WriteOp("merge" if merge else "set", ref, dict(data)))
        return self

    def update(self, ref: DocumentRef, fields: Mapping[str, Any]) -> _WriteQueue:
        if not fields:
            raise ValueError("update requires at least one field")
        self._ops.append(WriteOp("update", ref, dict(fields)))
        return self


async def _apply_ops(session: AsyncSession, ops: Sequence[WriteOp]) -> None:
    """Apply queued writes in order inside the session's open transaction."""
    for op in ops:
        key = (op.ref.collection, op.ref.id)
        record = await session.get(DocumentRecord, key)

        if op.kind == "create":
            if record is not None:
                raise DocumentExistsError(*key)
            session.add(
                DocumentRecord(
                    collection=op.ref.collection,
                    doc_id=op.ref.id,
                    data=resolve_transforms(op.data, {}),
                )
            )
        elif op.kind == "set":
            body = resolve_transforms(op.data, {})
            if record is None:
                session.add(DocumentRecord(collection=op.ref.collection, doc_id=op.ref.id, data=body))
            else:
                record.data = body
        elif op.kind == "merge":
            if record is None:
                session.add(
                    DocumentRecord(
                        collection=op.ref.collection,
                        doc_id=op.ref.id,
                        data=deep_merge({}, op.data),
                    )
                )
            else:
                record.data = deep_merge(record.data, op.data)
        else:
            if record is None:
                raise DocumentNotFoundError(*key)
            record.data = apply_field_updates(record.data, op.data)

        # New records must be visible to later ops on the same key.
        await session.flush()


@asynccontextmanager
async def _write_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncIterator[AsyncSession]:
    """Session whose transaction holds the write lock from its first statement."""
    async with session_factory() as session:
        try:
            async with session.begin():
                await session.connection(execution_options=WRITE_EXECUTION_OPTIONS)
                yield session
        except IntegrityError as exc:
            raise WriteConflictError(
                "A concurrent write created the same document; retry the request"
            ) from exc


class WriteBatch:
    """Atomic group of writes, committed with :meth:`commit`.

    Usage:
        batch = store.batch()
        batch.create(store.ref("general", general_id), general)
        batch.update(store.ref("employees", employee_id), {"bankDetailId": bank_id})
        await batch.commit()
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory
        self._queue = _WriteQueue()
        self._committed = False

    def __len__(self) -> int:
        return len(self._queue)

    def create(self, ref: DocumentRef, data: Mapping[str, Any]) -> WriteBatch:
        self._queue.create(ref, data)
        return self

    def set(self, ref: DocumentRef, data: Mapping[str, Any], merge: bool = False) -> WriteBatch:
        self._queue.set(ref, data, merge=merge)
        return self

    def update(self, ref: DocumentRef, fields: Mapping[str, Any]) -> WriteBatch:
        self._queue.update(ref, fields)
        return self

    async def commit(self) -> int:
        """Apply every queued write in one transaction. Returns the write count."""
        if self._committed:
            raise BatchCommittedError("Batch has already been committed")
        self._committed = True
        ops = list(self._queue._ops)
        if not ops:
            return 0
        async with _write_session(self._session_factory) as session:
            await _apply_ops(session, ops)
        logger.debug("Committed batch of %d writes", len(ops))
        return len(ops)


class Transaction:
    """Read-then-write unit of work.

    The session holds the write lock from its first statement on SQLite;
    elsewhere reads take row locks.  Writes are queued and applied when the
    ``store.transaction()`` block exits without error.
    """

    def __init__(self, session: AsyncSession):
        self._session = session
        self._queue = _WriteQueue()

    async def get(self, ref: DocumentRef) -> DocumentSnapshot:
        stmt = (
            select(DocumentRecord)
            .where(
                DocumentRecord.collection == ref.collection,
                DocumentRecord.doc_id == ref.id,
            )
            .with_for_update()
        )
        record = (await self._session.execute(stmt)).scalar_one_or_none()
        if record is None:
            return DocumentSnapshot(ref.collection, ref.id, None)
        return _snapshot(record)

    async def run(self, query: Query) -> list[DocumentSnapshot]:
        result = await self._session.execute(query.to_select())
        return [_snapshot(record) for record in result.scalars().all()]

    def create(self, ref: DocumentRef, data: Mapping[str, Any]) -> Transaction:
        self._queue.create(ref, data)
        return self

    def set(self, ref: DocumentRef, data: Mapping[str, Any], merge: bool = False) -> Transaction:
        self._queue.set(ref, data, merge=merge)
        return self

    def update(self, ref: DocumentRef, fields: Mapping[str, Any]) -> Transaction:
        self._queue.update(ref, fields)
        return self

    async def _flush_writes(self) -> None:
        await _apply_ops(self._session, self._queue._ops)


class DocumentStore:
    """Entry point for document reads, queries and atomic writes."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    @staticmethod
    def new_id() -> str:
        return new_document_id()

    @staticmethod
    def ref(collection: str, doc_id: str | None = None) -> DocumentRef:
        """Reference a document, generating a fresh id when none is given."""
        return DocumentRef(collection, doc_id or new_document_id())

    async def get(self, collection: str, doc_id: str) -> DocumentSnapshot:
        async with self._session_factory() as session:
            record = await session.get(DocumentRecord, (collection, doc_id))
            if record is None:
                return DocumentSnapshot(collection, doc_id, None)
            return _snapshot(record)

    async def get_all(self, collection: str, doc_ids: Sequence[str]) -> list[DocumentSnapshot]:
        """Fetch several documents; the result lines up with ``doc_ids``."""
        if not doc_ids:
            return []
        async with self._session_factory() as session:
            result = await session.execute(
                select(DocumentRecord).where(
                    DocumentRecord.collection == collection,
                    DocumentRecord.doc_id.in_(list(set(doc_ids))),
                )
            )
            found = {record.doc_id: _snapshot(record) for record in result.scalars().all()}
        return [found.get(doc_id, DocumentSnapshot(collection, doc_id, None)) for doc_id in doc_ids]

    async def run(self, query: Query) -> list[DocumentSnapshot]:
        async with self._session_factory() as session:
            result = await session.execute(query.to_select())
            return [_snapshot(record) for record in result.scalars().all()]

    async def update(self, ref: DocumentRef, fields: Mapping[str, Any]) -> None:
        """Single-document partial update."""
        await self.batch().update(ref, fields).commit()

    async def set(self, ref: DocumentRef, data: Mapping[str, Any], merge: bool = False) -> None:
        """Single-document overwrite, or deep merge when ``merge`` is true."""
        await self.batch().set(ref, data, merge=merge).commit()

    async def add(self, collection: str, data: Mapping[str, Any]) -> str:
        """Create a document with a generated id and return the id."""
        ref = self.ref(collection)
        await self.batch().create(ref, data).commit()
        return ref.id

    def batch(self) -> WriteBatch:
        return WriteBatch(self._session_factory)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[Transaction]:
        async with _write_session(self._session_factory) as session:
            txn = Transaction(session)
            yield txn
            await txn._flush_writes()

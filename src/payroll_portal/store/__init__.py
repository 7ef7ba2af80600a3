"""Document store: collections of JSON documents with atomic batched writes."""

from payroll_portal.store.client import (
    BatchCommittedError,
    DocumentExistsError,
    DocumentNotFoundError,
    DocumentRef,
    DocumentStore,
    Transaction,
    WriteBatch,
    WriteConflictError,
    new_document_id,
)
from payroll_portal.store.fields import ArrayUnion, Increment, deep_merge
from payroll_portal.store.query import DOCUMENT_ID, DocumentSnapshot, Query

__all__ = [
    "ArrayUnion",
    "BatchCommittedError",
    "DOCUMENT_ID",
    "DocumentExistsError",
    "DocumentNotFoundError",
    "DocumentRef",
    "DocumentSnapshot",
    "DocumentStore",
    "Increment",
    "Query",
    "Transaction",
    "WriteBatch",
    "WriteConflictError",
    "deep_merge",
    "new_document_id",
]

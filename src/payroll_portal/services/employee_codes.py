"""Department-prefixed employee code allocation.

Codes look like ``EN0007``: a two-letter department prefix followed by a
zero-padded sequence number.  The next number is the larger of the
per-prefix counter document and the highest code already present in the
``general`` collection, plus one.

``reserve`` runs inside the transaction that creates the employee.  It
advances the counter and creates an ``employeeCodes/{code}`` claim document,
so a code can be handed out once only: a competing registration that computed
the same code fails with ``DocumentExistsError`` when its claim is written.
"""

from __future__ import annotations

from datetime import datetime, timezone

from payroll_portal.constants import (
    DEPARTMENT_PREFIXES,
    EMPLOYEE_CODE_COUNTERS,
    EMPLOYEE_CODE_DIGITS,
    EMPLOYEE_CODES,
    GENERAL,
    UNMAPPED_PREFIX,
)
from payroll_portal.store import DocumentSnapshot, DocumentStore, Increment, Query, Transaction


def department_prefix(department: str) -> str:
    return DEPARTMENT_PREFIXES.get(department, UNMAPPED_PREFIX)


def format_code(prefix: str, number: int) -> str:
    return f"{prefix}{number:0{EMPLOYEE_CODE_DIGITS}d}"


def code_number(code: object, prefix: str) -> int | None:
    """Numeric suffix of ``code`` if it carries ``prefix``, else None."""
    if not isinstance(code, str) or not code.startswith(prefix):
        return None
    suffix = code[len(prefix):]
    return int(suffix) if suffix.isascii() and suffix.isdigit() else None


def highest_code_number(snapshots: list[DocumentSnapshot], prefix: str) -> int:
    numbers = [code_number(snap.get("empCode"), prefix) for snap in snapshots]
    return max((n for n in numbers if n is not None), default=0)


class EmployeeCodeAllocator:
    """Computes and reserves employee codes per department prefix."""

    def __init__(self, store: DocumentStore):
        self.store = store

    async def generate(self, department: str) -> str:
        """Preview the next code for ``department`` without reserving it."""
        prefix = department_prefix(department)
        counter = await self._counter_value(prefix)
        existing = await self.store.run(Query(GENERAL))
        return format_code(prefix, max(counter, highest_code_number(existing, prefix)) + 1)

    async def reserve(self, department: str, txn: Transaction) -> str:
        """Allocate the next code and queue the counter and claim writes on ``txn``."""
        prefix = department_prefix(department)
        counter_ref = self.store.ref(EMPLOYEE_CODE_COUNTERS, prefix)
        counter_snap = await txn.get(counter_ref)
        counter = int(counter_snap.get("lastNumber", 0) or 0)
        existing = await txn.run(Query(GENERAL))
        number = max(counter, highest_code_number(existing, prefix)) + 1

        # Skip numbers claimed by registrations whose general record is gone.
        while (await txn.get(self.store.ref(EMPLOYEE_CODES, format_code(prefix, number)))).exists:
            number += 1

        code = format_code(prefix, number)
        now = datetime.now(timezone.utc).isoformat()
        txn.set(
            counter_ref,
            {"prefix": prefix, "lastNumber": Increment(number - counter), "updatedAt": now},
            merge=True,
        )
        txn.create(
            self.store.ref(EMPLOYEE_CODES, code),
            {"empCode": code, "prefix": prefix, "claimedAt": now},
        )
        return code

    async def _counter_value(self, prefix: str) -> int:
        snap = await self.store.get(EMPLOYEE_CODE_COUNTERS, prefix)
        return int(snap.get("lastNumber", 0) or 0)

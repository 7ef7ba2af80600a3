"""Loan and advance requests attached to employees."""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping, Sequence
from datetime import datetime, timezone
from typing import Any

from payroll_portal.constants import EMPLOYEES, LOANS, LoanStatus
from payroll_portal.errors import NotFoundError, ValidationError
from payroll_portal.services.pagination import fetch_page
from payroll_portal.store import ArrayUnion, DocumentSnapshot, DocumentStore, Query

logger = logging.getLogger(__name__)

# Sparse edit keys and the document paths they write to.
EDITABLE_FIELDS = {
    "amountApp": "amountApp",
    "staffNote": "staffNote",
    "installment": "paybackTerm.installment",
    "date": "paybackTerm.date",
}


def _today() -> str:
    return datetime.now(timezone.utc).date().isoformat()


def _parse_amount(value: Any) -> float | None:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def loan_row(loan: Mapping[str, Any]) -> dict[str, Any]:
    payback = loan.get("paybackTerm") or {}
    return {
        "id": loan.get("id"),
        "name": loan.get("empName"),
        "amountReq": loan.get("amountReq"),
        "status": loan.get("status"),
        "amountApp": loan.get("amountApp") if loan.get("amountApp") is not None else "",
        "installment": payback.get("installment") if payback.get("installment") is not None else "",
        "balance": loan.get("balance") if loan.get("balance") is not None else "",
    }


class LoanService:
    """Create, approve, cancel, edit and list loan requests."""

    def __init__(self, store: DocumentStore):
        self.store = store

    async def _require_loan(self, loan_id: str, action: str) -> DocumentSnapshot:
        snap = await self.store.get(LOANS, loan_id)
        if not snap.exists:
            logger.error("Loan %s failed: loan record not found for ID: %s", action, loan_id)
            raise NotFoundError("Loan record not found")
        return snap

    async def create_loan_request(self, employee_id: str, data: Mapping[str, Any]) -> dict[str, Any]:
        logger.info("Creating loan request for employee ID: %s", employee_id)
        emp_name = data.get("empName")
        amount_req = data.get("amountReq")
        if not emp_name or not amount_req:
            logger.error(
                "Loan creation failed: missing employee name or requested amount for employee ID: %s",
                employee_id,
            )
            raise ValidationError("Employee name and requested amount are required")

        employee = await self.store.get(EMPLOYEES, employee_id)
        if not employee.exists:
            logger.error("Loan creation failed: employee not found for ID: %s", employee_id)
            raise NotFoundError("Employee not found")

        loan_ref = self.store.ref(LOANS)
        req_date = _today()
        loan = {
            "id": loan_ref.id,
            "employeeId": employee_id,
            "empName": emp_name,
            "reqDate": req_date,
            "status": LoanStatus.PENDING.value,
            "amountReq": amount_req,
            "amountApp": "",
            "balance": "",
            "paybackTerm": {"installment": "", "date": "", "remaining": ""},
            "approvedBy": "",
            "staffNote": data.get("staffNote") or "",
            "note": data.get("note") or "",
            "activity": [f"Loan requested on {req_date}"],
        }

        batch = self.store.batch()
        batch.create(loan_ref, loan)
        batch.update(self.store.ref(EMPLOYEES, employee_id), {"loanId": ArrayUnion(loan_ref.id)})
        await batch.commit()

        logger.info("Loan created with ID: %s for employee ID: %s", loan_ref.id, employee_id)
        return {"message": "Loan created successfully", "loanId": loan_ref.id}

    async def approve_loan(self, loan_id: str, data: Mapping[str, Any]) -> dict[str, Any]:
        logger.info("Approving loan with ID: %s", loan_id)
        amount_app = data.get("amountApp")
        installment = data.get("installment")
        payback_date = data.get("date")
        staff_note = data.get("staffNote")
        if not amount_app or not installment or not payback_date or not staff_note:
            logger.error("Loan approval failed: missing required fields for loan ID: %s", loan_id)
            raise ValidationError("Missing required approval details")

        loan = await self._require_loan(loan_id, "approval")

        approved_amount = _parse_amount(amount_app)
        installment_amount = _parse_amount(installment)
        if approved_amount is None or installment_amount is None or installment_amount <= 0:
            logger.error("Loan approval failed: invalid numeric values for loan ID: %s", loan_id)
            raise ValidationError("Invalid approved amount or installment value")

        updates: dict[str, Any] = {
            "amountApp": amount_app,
            "balance": amount_app,
            "status": LoanStatus.APPROVED.value,
            "paybackTerm.installment": installment,
            "paybackTerm.date": payback_date,
            "paybackTerm.remaining": amount_app,
            "staffNote": staff_note,
            "activity": [*(loan.get("activity") or []), f"Loan approved on {_today()}"],
        }
        if data.get("approvedBy"):
            updates["approvedBy"] = data["approvedBy"]
        await self.store.update(self.store.ref(LOANS, loan_id), updates)

        logger.info("Loan approved for loan ID: %s", loan_id)
        return {"message": "Loan approved successfully"}

    async def cancel_loan(self, loan_id: str, cancel_reason: str | None) -> dict[str, Any]:
        logger.info("Cancelling loan with ID: %s, reason: %s", loan_id, cancel_reason)
        loan = await self._require_loan(loan_id, "cancellation")

        await self.store.update(
            self.store.ref(LOANS, loan_id),
            {
                "status": LoanStatus.DECLINED.value,
                "cancelReason": cancel_reason,
                "activity": [*(loan.get("activity") or []), f"Loan cancelled on {_today()}"],
            },
        )
        logger.info("Loan cancelled for loan ID: %s", loan_id)
        return {"message": "Loan cancelled successfully", "reason": cancel_reason}

    async def edit_loan(self, loan_id: str, data: Mapping[str, Any]) -> dict[str, Any]:
        logger.info("Editing loan with ID: %s", loan_id)
        await self._require_loan(loan_id, "edit")

        updates = {
            path: data[key]
            for key, path in EDITABLE_FIELDS.items()
            if data.get(key) is not None
        }
        if not updates:
            logger.error("Loan edit failed: no valid fields provided for loan ID: %s", loan_id)
            raise ValidationError("No valid fields to update")

        await self.store.update(self.store.ref(LOANS, loan_id), updates)
        logger.info("Loan updated for loan ID: %s", loan_id)
        return {"message": "Loan info updated successfully", "updatedFields": updates}

    async def list_loans(
        self,
        limit: int = 10,
        page: int = 1,
        statuses: Sequence[str] | None = None,
        start_date: str | None = None,
        end_date: str | None = None,
    ) -> list[dict[str, Any]]:
        logger.info(
            "Fetching loans | limit: %s | page: %s | statuses: %s | range: %s..%s",
            limit, page, statuses, start_date, end_date,
        )
        query = Query(LOANS)
        if statuses:
            query = query.where("status", "in", list(statuses))
        if start_date and end_date:
            query = query.where("paybackTerm.date", ">=", start_date)
            query = query.where("paybackTerm.date", "<=", end_date)
        query = query.order_by("paybackTerm.date", "desc")

        rows = await fetch_page(self.store, query, limit=limit, page=page)
        loans = [loan_row(row.data or {}) for row in rows]
        logger.info("Fetched %d loans", len(loans))
        return loans

    async def get_loan(self, loan_id: str) -> dict[str, Any]:
        snap = await self.store.get(LOANS, loan_id)
        if not snap.exists:
            logger.error("Loan not found for ID: %s", loan_id)
            raise NotFoundError("Loan not found")
        return {**(snap.data or {}), "id": snap.id}

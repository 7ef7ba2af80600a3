"""Full employee profile assembled from every per-employee collection."""

from __future__ import annotations

import asyncio
from typing import Any

from payroll_portal.constants import (
    BANK_DETAILS,
    EMPLOYEES,
    GENERAL,
    LOANS,
    PF_DETAILS,
    PREVIOUS_JOBS,
    PROFESSIONAL,
    RESOURCES,
)
from payroll_portal.errors import NotFoundError
from payroll_portal.store import DOCUMENT_ID, DocumentSnapshot, DocumentStore, Query


def null_bank_details() -> dict[str, Any]:
    return {
        "bankName": None,
        "accountName": None,
        "branchName": None,
        "accountNum": None,
        "accountType": None,
        "ifscCode": None,
    }


def null_pf_details() -> dict[str, Any]:
    return {
        "employeePfEnable": False,
        "pfNum": None,
        "employeerPfEnable": False,
        "uanNum": None,
        "esiEnable": False,
        "esiNum": None,
        "professionalTax": False,
        "labourWelfare": False,
    }


class EmployeeAggregationReader:
    """Reads a complete employee profile by employee code."""

    def __init__(self, store: DocumentStore):
        self.store = store

    async def _optional(self, collection: str, doc_id: str | None) -> DocumentSnapshot | None:
        if not doc_id:
            return None
        return await self.store.get(collection, doc_id)

    async def get_complete_employee_details(self, emp_code: str) -> dict[str, Any]:
        general_rows = await self.store.run(
            Query(GENERAL).where("empCode", "==", emp_code).order_by(DOCUMENT_ID).limit(1)
        )
        if not general_rows:
            raise NotFoundError("No employee found with this employee code")
        general = general_rows[0]

        index_rows = await self.store.run(
            Query(EMPLOYEES).where("generalId", "==", general.id).order_by(DOCUMENT_ID).limit(1)
        )
        if not index_rows:
            raise NotFoundError("Employee record not found")
        index = index_rows[0]

        professional, bank, pf = await asyncio.gather(
            self._optional(PROFESSIONAL, index.get("professionalId")),
            self._optional(BANK_DETAILS, index.get("bankDetailId")),
            self._optional(PF_DETAILS, index.get("pfId")),
        )
        loans, previous, projects = await asyncio.gather(
            self.store.get_all(LOANS, index.get("loanId") or []),
            self.store.get_all(PREVIOUS_JOBS, index.get("previousJobId") or []),
            self.store.get_all(RESOURCES, index.get("projectId") or []),
        )

        return {
            "general": general.to_dict(),
            "professional": professional.to_dict() if professional and professional.exists else None,
            "bankDetails": bank.to_dict() if bank and bank.exists else null_bank_details(),
            "pf": pf.to_dict() if pf and pf.exists else null_pf_details(),
            # Positions are preserved; consumers index these lists.
            "loan": [snap.to_dict() for snap in loans],
            "previous": [snap.to_dict() for snap in previous],
            "project": [
                {"id": snap.id, **(snap.data or {})}
                for snap in projects
                if snap.exists and not snap.get("isDeleted")
            ],
        }

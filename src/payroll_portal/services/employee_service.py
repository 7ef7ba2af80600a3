"""Employee aggregate service.

An employee is spread over several collections, tied together by the
``employees`` index document (the aggregate root):

    employees/{employeeId}   generalId, professionalId, bankDetailId, pfId,
                             loanId[], previousJobId[], projectId[], isDeleted
    general/{generalId}      name, empCode, contact details, status, loginDetails
    professional/{id}        joining date, department, role, CTC, ...
    bankDetails/{id}         at most one per employee

Writes that touch more than one of these documents go through a single
batch or transaction.  Login provisioning is the exception: the GeneralInfo
merge and the identity account are separate writes.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from typing import Any

from payroll_portal.config import Settings
from payroll_portal.constants import (
    BANK_DETAILS,
    EMPLOYEE_CODE_ATTEMPTS,
    EMPLOYEES,
    GENERAL,
    PREVIOUS_JOBS,
    PROFESSIONAL,
    RESOURCES,
    EmployeeStatus,
)
from payroll_portal.errors import NotFoundError, ValidationError
from payroll_portal.identity import IdentityProvider
from payroll_portal.services.employee_codes import EmployeeCodeAllocator
from payroll_portal.services.pagination import fetch_page
from payroll_portal.store import (
    DOCUMENT_ID,
    ArrayUnion,
    DocumentExistsError,
    DocumentSnapshot,
    DocumentStore,
    Query,
    Transaction,
    WriteBatch,
    WriteConflictError,
    deep_merge,
)

logger = logging.getLogger(__name__)

GENERAL_REQUIRED = ("name", "empCode", "primaryEmail", "gender", "phoneNum")
PROFESSIONAL_REQUIRED = (
    "joiningDate",
    "department",
    "designation",
    "location",
    "reportingManager",
    "workWeek",
    "holidayGroup",
    "ctcAnnual",
    "payslipComponent",
    "role",
)
BANK_REQUIRED = (
    "accountType",
    "accountName",
    "accountNum",
    "ifscCode",
    "bankName",
    "branchName",
)


def _missing(data: Mapping[str, Any], fields: tuple[str, ...]) -> list[str]:
    return [name for name in fields if not data.get(name)]


def employee_summary(
    employee_id: str, general: Mapping[str, Any], professional: Mapping[str, Any]
) -> dict[str, Any]:
    """Row shape shared by the employee list and status change."""
    name = general.get("name") or {}
    return {
        "id": employee_id,
        "employeeCode": general.get("empCode"),
        "employeeName": f"{name.get('first') or ''} {name.get('last') or ''}".strip(),
        "joiningDate": professional.get("joiningDate"),
        "designation": professional.get("designation"),
        "department": professional.get("department"),
        "location": professional.get("location"),
        "gender": general.get("gender"),
        "status": general.get("status"),
        "payslipComponent": professional.get("payslipComponent"),
    }


class EmployeeService:
    """Operations on the employee aggregate."""

    def __init__(self, store: DocumentStore, identity: IdentityProvider, settings: Settings):
        self.store = store
        self.identity = identity
        self.settings = settings
        self.codes = EmployeeCodeAllocator(store)

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    async def generate_emp_code(self, department: str) -> str:
        return await self.codes.generate(department)

    def _queue_aggregate(
        self,
        writer: WriteBatch | Transaction,
        general: Mapping[str, Any],
        professional: Mapping[str, Any],
    ) -> dict[str, str]:
        missing = _missing(general, GENERAL_REQUIRED) + _missing(professional, PROFESSIONAL_REQUIRED)
        if missing:
            logger.warning("Employee creation rejected, missing fields: %s", missing)
            raise ValidationError("Missing required employee fields", details=missing)

        general_doc = {
            "name": general["name"],
            "empCode": general["empCode"],
            "primaryEmail": general["primaryEmail"],
            "gender": general["gender"],
            "phoneNum": general["phoneNum"],
            "status": general.get("status") or EmployeeStatus.ACTIVE.value,
        }
        professional_doc = {name: professional[name] for name in PROFESSIONAL_REQUIRED}

        general_ref = self.store.ref(GENERAL)
        professional_ref = self.store.ref(PROFESSIONAL)
        employee_ref = self.store.ref(EMPLOYEES)

        writer.create(general_ref, general_doc)
        writer.create(professional_ref, professional_doc)
        writer.create(
            employee_ref,
            {
                "generalId": general_ref.id,
                "professionalId": professional_ref.id,
                "isDeleted": False,
            },
        )
        writer.update(general_ref, {"id": general_ref.id})
        writer.update(professional_ref, {"id": professional_ref.id})

        return {
            "employeeId": employee_ref.id,
            "generalId": general_ref.id,
            "professionalId": professional_ref.id,
            "empCode": general_doc["empCode"],
        }

    async def add_employee(
        self, general: Mapping[str, Any], professional: Mapping[str, Any]
    ) -> dict[str, Any]:
        """Create GeneralInfo, ProfessionalInfo and the index in one batch."""
        batch = self.store.batch()
        ids = self._queue_aggregate(batch, general, professional)
        await batch.commit()
        logger.info("Employee created | id: %s | code: %s", ids["employeeId"], ids["empCode"])
        return {"msg": "successfully created", **ids}

    async def register_employee(self, data: Mapping[str, Any]) -> dict[str, Any]:
        """Create an employee from the HTTP payload, allocating the code atomically."""
        first_name = data["firstName"].strip()
        last_name = (data.get("lastName") or data["firstName"]).strip()
        general = {
            "name": {"title": data.get("title"), "first": first_name, "last": last_name},
            "primaryEmail": data.get("email"),
            "gender": data.get("gender"),
            "phoneNum": {
                "code": data.get("phoneCode") or self.settings.default_phone_code,
                "num": data.get("phone"),
            },
        }
        professional = {
            "joiningDate": data.get("joiningDate"),
            "department": data.get("department"),
            "designation": data.get("designation"),
            "location": data.get("location"),
            "reportingManager": data.get("reportingManager"),
            "holidayGroup": data.get("holidayGroup"),
            "workWeek": data.get("workingPattern"),
            "ctcAnnual": data.get("ctc"),
            "role": data.get("role"),
            "payslipComponent": data.get("payslipComponent"),
        }

        for attempt in range(1, EMPLOYEE_CODE_ATTEMPTS + 1):
            try:
                async with self.store.transaction() as txn:
                    general["empCode"] = await self.codes.reserve(data.get("department") or "", txn)
                    ids = self._queue_aggregate(txn, general, professional)
                break
            except (DocumentExistsError, WriteConflictError):
                if attempt == EMPLOYEE_CODE_ATTEMPTS:
                    logger.error("Employee code allocation failed after %d attempts", attempt)
                    raise
                logger.warning("Employee code %s was taken concurrently, retrying", general["empCode"])

        logger.info("Employee registered | id: %s | code: %s", ids["employeeId"], ids["empCode"])
        return {"msg": "successfully created", **ids}

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def _summary_for(self, employee: DocumentSnapshot) -> dict[str, Any] | None:
        if employee.get("isDeleted"):
            return None
        general, professional = await asyncio.gather(
            self.store.get(GENERAL, employee.get("generalId", "")),
            self.store.get(PROFESSIONAL, employee.get("professionalId", "")),
        )
        if not general.exists or not professional.exists:
            return None
        return employee_summary(employee.id, general.data or {}, professional.data or {})

    async def list_employees(self, limit: int = 10, page: int = 1) -> list[dict[str, Any]]:
        query = Query(EMPLOYEES).where("isDeleted", "==", False).order_by(DOCUMENT_ID)
        rows = await fetch_page(self.store, query, limit=limit, page=page)
        summaries = await asyncio.gather(*(self._summary_for(row) for row in rows))
        return [summary for summary in summaries if summary is not None]

    async def _require_employee(self, employee_id: str) -> DocumentSnapshot:
        snap = await self.store.get(EMPLOYEES, employee_id)
        if not snap.exists:
            raise NotFoundError("Employee not found")
        return snap

    async def get_employee_by_id(self, employee_id: str) -> dict[str, Any]:
        snap = await self._require_employee(employee_id)
        return {
            "employeeId": employee_id,
            "generalId": snap.get("generalId"),
            "professionalId": snap.get("professionalId"),
            "bankDetailId": snap.get("bankDetailId"),
            "pfId": snap.get("pfId"),
            "loanId": snap.get("loanId"),
        }

    # ------------------------------------------------------------------
    # Status and soft delete
    # ------------------------------------------------------------------

    async def change_status(self, employee_id: str, status: str) -> dict[str, Any] | None:
        ids = await self.get_employee_by_id(employee_id)
        general_ref = self.store.ref(GENERAL, ids["generalId"])

        await self.store.batch().update(general_ref, {"status": status}).commit()
        logger.info("Employee status changed | id: %s | status: %s", employee_id, status)

        general, professional = await asyncio.gather(
            self.store.get(GENERAL, ids["generalId"]),
            self.store.get(PROFESSIONAL, ids["professionalId"] or ""),
        )
        if not general.exists or not professional.exists:
            return None
        return employee_summary(employee_id, general.data or {}, professional.data or {})

    async def delete_employee(self, employee_id: str) -> dict[str, Any]:
        """Soft-delete the employee and every resource tagged with its code.

        Writes are split into batches of at most ``batch_write_limit``
        operations.  The employee index flip goes in the last batch, so a
        failure part-way leaves the employee visible and the call can be
        repeated.
        """
        employee = await self.store.get(EMPLOYEES, employee_id)
        if not employee.exists:
            raise NotFoundError(f"Employee with ID {employee_id} does not exist")

        general = await self.store.get(GENERAL, employee.get("generalId", ""))
        emp_code = general.get("empCode")
        if not emp_code:
            raise ValidationError(f"Employee {employee_id} does not have an empCode")

        resources = await self.store.run(Query(RESOURCES).where("empCode", "==", emp_code))
        refs = [self.store.ref(RESOURCES, snap.id) for snap in resources]
        refs.append(self.store.ref(EMPLOYEES, employee_id))

        chunk = max(self.settings.batch_write_limit, 1)
        for start in range(0, len(refs), chunk):
            batch = self.store.batch()
            for ref in refs[start:start + chunk]:
                batch.update(ref, {"isDeleted": True})
            await batch.commit()

        logger.info(
            "Employee soft-deleted | id: %s | resources: %d", employee_id, len(resources)
        )
        return {
            "message": "Employee and related resources marked as deleted",
            "resourcesDeleted": len(resources),
        }

    # ------------------------------------------------------------------
    # Sub-record edits
    # ------------------------------------------------------------------

    async def _merge_overwrite(
        self, collection: str, doc_id: str, patch: Mapping[str, Any], missing_message: str
    ) -> dict[str, Any]:
        snap = await self.store.get(collection, doc_id)
        if not snap.exists:
            raise NotFoundError(missing_message)
        merged = deep_merge(snap.data or {}, patch)
        await self.store.set(self.store.ref(collection, doc_id), merged)
        return merged

    async def edit_general_info(self, general_id: str, patch: Mapping[str, Any]) -> dict[str, Any]:
        await self._merge_overwrite(GENERAL, general_id, patch, "General info not found")
        return {"message": "General info updated successfully"}

    async def edit_professional_info(
        self, professional_id: str, patch: Mapping[str, Any]
    ) -> dict[str, Any]:
        await self._merge_overwrite(
            PROFESSIONAL, professional_id, patch, "Professional info not found"
        )
        return {"message": "Professional info updated successfully"}

    async def add_bank_details(self, employee_id: str, data: Mapping[str, Any]) -> dict[str, Any]:
        if _missing(data, BANK_REQUIRED):
            raise ValidationError("Missing required bank detail fields")

        employee = await self._require_employee(employee_id)
        if employee.get("bankDetailId"):
            return {
                "bankDetailId": employee.get("bankDetailId"),
                "message": "Bank details already exist for this employee",
            }

        bank_ref = self.store.ref(BANK_DETAILS)
        batch = self.store.batch()
        batch.create(bank_ref, {**{name: data[name] for name in BANK_REQUIRED}, "id": bank_ref.id})
        batch.update(self.store.ref(EMPLOYEES, employee_id), {"bankDetailId": bank_ref.id})
        await batch.commit()

        logger.info("Bank details added | employee: %s | bank: %s", employee_id, bank_ref.id)
        return {"bankDetailId": bank_ref.id, "message": "Bank details added successfully"}

    async def edit_bank_details(self, bank_id: str, patch: Mapping[str, Any]) -> dict[str, Any]:
        snap = await self.store.get(BANK_DETAILS, bank_id)
        if not snap.exists:
            raise NotFoundError("BankDetails info not found")
        if not patch:
            raise ValidationError("No valid fields to update")
        await self.store.update(self.store.ref(BANK_DETAILS, bank_id), patch)
        return {"message": "BankDetails info updated successfully", "updated": dict(patch)}

    # ------------------------------------------------------------------
    # Login details
    # ------------------------------------------------------------------

    async def add_login_details(self, general_id: str, login: Mapping[str, Any]) -> dict[str, Any]:
        """Attach login details to GeneralInfo and provision the identity.

        The GeneralInfo merge is committed before the identity is created.
        If identity creation fails the merge is not rolled back.
        """
        general = await self.store.get(GENERAL, general_id)
        if not general.exists:
            raise NotFoundError("General info not found")

        index = await self.store.run(
            Query(EMPLOYEES).where("generalId", "==", general_id).order_by(DOCUMENT_ID).limit(1)
        )
        if not index:
            raise NotFoundError("Employee record not found")

        professional_id = index[0].get("professionalId")
        if not professional_id:
            raise NotFoundError("professionalId missing in employee document")
        professional = await self.store.get(PROFESSIONAL, professional_id)
        if not professional.exists:
            raise NotFoundError("Professional info not found")

        username = login.get("username")
        if not username:
            raise ValidationError("Username is required")

        role = professional.get("role")
        login_details = {key: value for key, value in login.items() if key != "password"}
        merged = deep_merge(general.data or {}, {"loginDetails": login_details})
        general_ref = self.store.ref(GENERAL, general_id)
        await self.store.set(general_ref, merged)

        user = await self.identity.create_user(
            email=username,
            password=login.get("password") or "",
            display_name=username,
            role=role,
        )
        await self.identity.update_user(
            user.uid,
            login_enable=login.get("loginEnable"),
            acc_locked=login.get("accLocked"),
        )
        await self.store.update(general_ref, {"loginDetails.uid": user.uid})

        logger.info("Login provisioned | general: %s | uid: %s", general_id, user.uid)
        return {
            "message": "Login details and user created successfully",
            "loginDetails": {**login_details, "uid": user.uid},
            "role": role,
        }

    async def edit_login_details(
        self, general_id: str, patch: Mapping[str, Any]
    ) -> dict[str, Any]:
        """Apply login changes to GeneralInfo and the identity record.

        The two documents are written independently.
        """
        general = await self.store.get(GENERAL, general_id)
        if not general.exists:
            raise NotFoundError("General info not found")

        existing = general.get("loginDetails") or {}
        uid = existing.get("uid")
        if not uid and existing.get("username"):
            uid = await self.identity.find_uid_by_email(existing["username"])
        if not uid:
            raise NotFoundError("users info not found")

        await self.identity.update_user(
            uid,
            password=patch.get("password"),
            login_enable=patch.get("loginEnable"),
            acc_locked=patch.get("accLocked"),
        )

        updated = {**existing, **{k: v for k, v in patch.items() if k != "password"}}
        await self.store.set(self.store.ref(GENERAL, general_id), {"loginDetails": updated}, merge=True)
        return {"message": "Login details updated successfully", "updated": updated}

    # ------------------------------------------------------------------
    # Previous jobs
    # ------------------------------------------------------------------

    async def add_previous_job(self, employee_id: str, job: Mapping[str, Any]) -> dict[str, Any]:
        await self._require_employee(employee_id)

        job_ref = self.store.ref(PREVIOUS_JOBS)
        job_with_id = {"id": job_ref.id, **job}

        batch = self.store.batch()
        batch.create(job_ref, job_with_id)
        batch.update(
            self.store.ref(EMPLOYEES, employee_id),
            {"previousJobId": ArrayUnion(job_ref.id)},
        )
        await batch.commit()
        return {"message": "Previous job added successfully", "job": job_with_id}

    async def edit_previous_job(self, job_id: str, patch: Mapping[str, Any]) -> dict[str, Any]:
        snap = await self.store.get(PREVIOUS_JOBS, job_id)
        if not snap.exists:
            raise NotFoundError("Previous job not found")
        if not patch:
            raise ValidationError("No valid fields to update")
        await self.store.update(self.store.ref(PREVIOUS_JOBS, job_id), patch)
        return {
            "message": "Previous job updated successfully",
            "updatedFields": dict(patch),
            "jobId": job_id,
        }

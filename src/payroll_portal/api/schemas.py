"""Pydantic schemas for API request/response models.

Request and response bodies use camelCase on the wire; fields are declared
in snake_case and aliased.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel

from payroll_portal.constants import EmployeeStatus

Amount = str | int | float


class CamelModel(BaseModel):
    """Base schema with camelCase aliases."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_document(self) -> dict[str, Any]:
        """Fields the client actually sent, keyed by their camelCase names."""
        return self.model_dump(by_alias=True, exclude_unset=True)


class PatchModel(CamelModel):
    """Partial update: every field optional, unknown fields rejected."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")


class ErrorResponse(BaseModel):
    """Standard error response."""

    error: str
    details: Any | None = None


class MessageResponse(BaseModel):
    message: str


# ============================================================================
# Auth schemas
# ============================================================================


class SignupRequest(CamelModel):
    email: EmailStr
    password: str = Field(min_length=6)
    display_name: str = Field(min_length=1)


class LoginRequest(CamelModel):
    email: EmailStr
    password: str = Field(min_length=1)


class IdentitySummary(CamelModel):
    uid: str
    email: str
    display_name: str | None = None
    role: str | None = None


class LoginResponse(IdentitySummary):
    token: str


# ============================================================================
# Employee schemas
# ============================================================================


class CreateEmployeeRequest(CamelModel):
    """Payload for POST /employees. The employee code is allocated server-side."""

    title: str | None = None
    first_name: str = Field(min_length=1)
    last_name: str | None = None
    email: EmailStr
    gender: str = Field(min_length=1)
    phone: str = Field(min_length=1)
    phone_code: str | None = None
    joining_date: str = Field(min_length=1)
    department: str = Field(min_length=1)
    designation: str = Field(min_length=1)
    role: str = Field(min_length=1)
    location: str = Field(min_length=1)
    reporting_manager: str = Field(min_length=1)
    working_pattern: str = Field(min_length=1)
    holiday_group: str = Field(min_length=1)
    ctc: float = Field(gt=0)
    payslip_component: str = Field(min_length=1)


class CreateEmployeeResponse(CamelModel):
    msg: str
    employee_id: str
    general_id: str
    professional_id: str
    emp_code: str


class EmployeeSummary(CamelModel):
    id: str
    employee_code: str | None = None
    employee_name: str
    joining_date: str | None = None
    designation: str | None = None
    department: str | None = None
    location: str | None = None
    gender: str | None = None
    status: str | None = None
    payslip_component: str | None = None


class EmployeeIds(CamelModel):
    employee_id: str
    general_id: str | None = None
    professional_id: str | None = None
    bank_detail_id: str | None = None
    pf_id: str | None = None
    loan_id: list[str] | None = None


class ChangeStatusRequest(CamelModel):
    status: EmployeeStatus


class DeleteEmployeeResponse(CamelModel):
    message: str
    resources_deleted: int


class NamePatch(PatchModel):
    title: str | None = None
    first: str | None = None
    last: str | None = None


class PhonePatch(PatchModel):
    code: str | None = None
    num: str | None = None


class GeneralInfoPatch(PatchModel):
    """Editable GeneralInfo fields. The employee code is immutable."""

    name: NamePatch | None = None
    primary_email: EmailStr | None = None
    gender: str | None = None
    phone_num: PhonePatch | None = None
    status: EmployeeStatus | None = None

    def to_document(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_unset=True, mode="json")


class ProfessionalInfoPatch(PatchModel):
    joining_date: str | None = None
    department: str | None = None
    designation: str | None = None
    location: str | None = None
    reporting_manager: str | None = None
    work_week: str | None = None
    holiday_group: str | None = None
    ctc_annual: float | None = Field(default=None, gt=0)
    payslip_component: str | None = None
    role: str | None = None


class BankDetailsRequest(CamelModel):
    account_type: str = Field(min_length=1)
    account_name: str = Field(min_length=1)
    account_num: str = Field(min_length=1)
    ifsc_code: str = Field(min_length=1)
    bank_name: str = Field(min_length=1)
    branch_name: str = Field(min_length=1)


class BankDetailsPatch(PatchModel):
    account_type: str | None = None
    account_name: str | None = None
    account_num: str | None = None
    ifsc_code: str | None = None
    bank_name: str | None = None
    branch_name: str | None = None


class LoginDetailsRequest(CamelModel):
    username: str = Field(min_length=1)
    password: str = Field(min_length=6)
    login_enable: bool = True
    acc_locked: bool = False


class LoginDetailsPatch(PatchModel):
    password: str | None = Field(default=None, min_length=6)
    login_enable: bool | None = None
    acc_locked: bool | None = None


# ============================================================================
# Loan schemas
# ============================================================================


class LoanCreateRequest(CamelModel):
    emp_name: str | None = None
    amount_req: Amount | None = None
    staff_note: str | None = None
    note: str | None = None


class LoanApprovalRequest(CamelModel):
    amount_app: Amount | None = None
    installment: Amount | None = None
    date: str | None = None
    staff_note: str | None = None
    approved_by: str | None = None


class LoanCancelRequest(CamelModel):
    cancel_reason: str | None = None


class LoanPatch(CamelModel):
    amount_app: Amount | None = None
    installment: Amount | None = None
    date: str | None = None
    staff_note: str | None = None


class LoanRow(CamelModel):
    id: str | None = None
    name: str | None = None
    amount_req: Amount | None = None
    status: str | None = None
    amount_app: Amount
    installment: Amount
    balance: Amount


# ============================================================================
# Sequence number schemas
# ============================================================================


class SequenceCreateRequest(CamelModel):
    type: str = Field(min_length=1)
    prefix: str = Field(min_length=1)
    next_available_number: int = Field(ge=0)


class SequenceCreateResponse(BaseModel):
    message: str
    id: str

"""Employee endpoints: the aggregate, its sub-records and attached loans."""

from typing import Annotated, Any

from fastapi import APIRouter, Body, Path, status

from payroll_portal.api.dependencies import Aggregation, CurrentUser, Employees, Loans
from payroll_portal.api.schemas import (
    BankDetailsPatch,
    BankDetailsRequest,
    ChangeStatusRequest,
    CreateEmployeeRequest,
    CreateEmployeeResponse,
    DeleteEmployeeResponse,
    EmployeeIds,
    EmployeeSummary,
    ErrorResponse,
    GeneralInfoPatch,
    LoanApprovalRequest,
    LoanCancelRequest,
    LoanCreateRequest,
    LoanPatch,
    LoginDetailsPatch,
    LoginDetailsRequest,
    ProfessionalInfoPatch,
)
from payroll_portal.errors import NotFoundError

router = APIRouter(prefix="/employees", tags=["employees"])

EmployeeId = Annotated[str, Path(description="Employee index document id")]
NOT_FOUND = {404: {"model": ErrorResponse}}
BAD_REQUEST = {400: {"model": ErrorResponse}}


# ============================================================================
# Employee aggregate
# ============================================================================


@router.post(
    "",
    response_model=CreateEmployeeResponse,
    status_code=status.HTTP_201_CREATED,
    responses=BAD_REQUEST,
)
async def create_employee(
    employees: Employees,
    user: CurrentUser,
    payload: CreateEmployeeRequest,
) -> dict[str, Any]:
    """Create GeneralInfo, ProfessionalInfo and the employee index atomically."""
    return await employees.register_employee(payload.to_document())


@router.get("", response_model=list[EmployeeSummary])
async def list_employees(
    employees: Employees,
    user: CurrentUser,
    limit: int = 10,
    page: int = 1,
) -> list[dict[str, Any]]:
    return await employees.list_employees(limit=limit, page=page)


@router.get("/all/{emp_code}", responses=NOT_FOUND)
async def get_complete_employee_details(
    reader: Aggregation,
    user: CurrentUser,
    emp_code: Annotated[str, Path()],
) -> dict[str, Any]:
    """Return every sub-record of an employee, looked up by employee code."""
    return await reader.get_complete_employee_details(emp_code)


@router.get("/{employee_id}", response_model=EmployeeIds, responses=NOT_FOUND)
async def get_employee(
    employees: Employees,
    user: CurrentUser,
    employee_id: EmployeeId,
) -> dict[str, Any]:
    return await employees.get_employee_by_id(employee_id)


@router.patch(
    "/status/{employee_id}",
    response_model=EmployeeSummary,
    responses={**NOT_FOUND, **BAD_REQUEST},
)
async def change_status(
    employees: Employees,
    user: CurrentUser,
    employee_id: EmployeeId,
    payload: ChangeStatusRequest,
) -> dict[str, Any]:
    summary = await employees.change_status(employee_id, payload.status.value)
    if summary is None:
        raise NotFoundError("Employee details not found")
    return summary


@router.delete(
    "/{employee_id}",
    response_model=DeleteEmployeeResponse,
    responses={**NOT_FOUND, **BAD_REQUEST},
)
async def delete_employee(
    employees: Employees,
    user: CurrentUser,
    employee_id: EmployeeId,
) -> dict[str, Any]:
    """Soft-delete the employee and every resource tagged with its code."""
    return await employees.delete_employee(employee_id)


# ============================================================================
# Sub-records
# ============================================================================


@router.patch("/general/{general_id}", responses={**NOT_FOUND, **BAD_REQUEST})
async def edit_general_info(
    employees: Employees,
    user: CurrentUser,
    general_id: Annotated[str, Path()],
    payload: GeneralInfoPatch,
) -> dict[str, Any]:
    return await employees.edit_general_info(general_id, payload.to_document())


@router.post("/general/login-details/{general_id}", responses={**NOT_FOUND, **BAD_REQUEST})
async def add_login_details(
    employees: Employees,
    user: CurrentUser,
    general_id: Annotated[str, Path()],
    payload: LoginDetailsRequest,
) -> dict[str, Any]:
    """Attach login details and provision the employee's sign-in identity."""
    return await employees.add_login_details(
        general_id, payload.model_dump(by_alias=True)
    )


@router.patch("/general/login-details/{general_id}", responses={**NOT_FOUND, **BAD_REQUEST})
async def edit_login_details(
    employees: Employees,
    user: CurrentUser,
    general_id: Annotated[str, Path()],
    payload: LoginDetailsPatch,
) -> dict[str, Any]:
    return await employees.edit_login_details(general_id, payload.to_document())


@router.patch("/professional/{professional_id}", responses={**NOT_FOUND, **BAD_REQUEST})
async def edit_professional_info(
    employees: Employees,
    user: CurrentUser,
    professional_id: Annotated[str, Path()],
    payload: ProfessionalInfoPatch,
) -> dict[str, Any]:
    return await employees.edit_professional_info(professional_id, payload.to_document())


@router.post(
    "/bank/{employee_id}",
    status_code=status.HTTP_201_CREATED,
    responses={**NOT_FOUND, **BAD_REQUEST},
)
async def add_bank_details(
    employees: Employees,
    user: CurrentUser,
    employee_id: EmployeeId,
    payload: BankDetailsRequest,
) -> dict[str, Any]:
    return await employees.add_bank_details(employee_id, payload.model_dump(by_alias=True))


@router.patch("/bank/{bank_id}", responses={**NOT_FOUND, **BAD_REQUEST})
async def edit_bank_details(
    employees: Employees,
    user: CurrentUser,
    bank_id: Annotated[str, Path()],
    payload: BankDetailsPatch,
) -> dict[str, Any]:
    return await employees.edit_bank_details(bank_id, payload.to_document())


@router.post(
    "/proviousJob/{employee_id}",
    status_code=status.HTTP_201_CREATED,
    responses=NOT_FOUND,
)
async def add_previous_job(
    employees: Employees,
    user: CurrentUser,
    employee_id: EmployeeId,
    job: Annotated[dict[str, Any], Body()],
) -> dict[str, Any]:
    return await employees.add_previous_job(employee_id, job)


@router.patch(
    "/proviousJob/{job_id}",
    status_code=status.HTTP_201_CREATED,
    responses={**NOT_FOUND, **BAD_REQUEST},
)
async def edit_previous_job(
    employees: Employees,
    user: CurrentUser,
    job_id: Annotated[str, Path()],
    patch: Annotated[dict[str, Any], Body()],
) -> dict[str, Any]:
    return await employees.edit_previous_job(job_id, patch)


# ============================================================================
# Loans
# ============================================================================


@router.post(
    "/loan/{employee_id}",
    status_code=status.HTTP_201_CREATED,
    responses={**NOT_FOUND, **BAD_REQUEST},
)
async def create_loan_request(
    loans: Loans,
    user: CurrentUser,
    employee_id: EmployeeId,
    payload: LoanCreateRequest,
) -> dict[str, Any]:
    return await loans.create_loan_request(employee_id, payload.to_document())


@router.post(
    "/approvedLoan/{loan_id}",
    status_code=status.HTTP_201_CREATED,
    responses={**NOT_FOUND, **BAD_REQUEST},
)
async def approve_loan(
    loans: Loans,
    user: CurrentUser,
    loan_id: Annotated[str, Path()],
    payload: LoanApprovalRequest,
) -> dict[str, Any]:
    data = payload.to_document()
    data.setdefault("approvedBy", user.email)
    return await loans.approve_loan(loan_id, data)


@router.post(
    "/cancelLoan/{loan_id}",
    status_code=status.HTTP_201_CREATED,
    responses={**NOT_FOUND, **BAD_REQUEST},
)
async def cancel_loan(
    loans: Loans,
    user: CurrentUser,
    loan_id: Annotated[str, Path()],
    payload: LoanCancelRequest,
) -> dict[str, Any]:
    return await loans.cancel_loan(loan_id, payload.cancel_reason)


@router.patch(
    "/loan/{loan_id}",
    status_code=status.HTTP_201_CREATED,
    responses={**NOT_FOUND, **BAD_REQUEST},
)
async def edit_loan(
    loans: Loans,
    user: CurrentUser,
    loan_id: Annotated[str, Path()],
    payload: LoanPatch,
) -> dict[str, Any]:
    return await loans.edit_loan(loan_id, payload.to_document())

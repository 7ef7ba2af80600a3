"""Loan listing endpoints."""

from typing import Annotated, Any

from fastapi import APIRouter, Path, Query

from payroll_portal.api.dependencies import CurrentUser, Loans
from payroll_portal.api.schemas import ErrorResponse, LoanRow

router = APIRouter(prefix="/loans", tags=["loans"])


def _split_statuses(values: list[str] | None) -> list[str]:
    """Accept both ``?status=A&status=B`` and ``?status=A,B``."""
    statuses: list[str] = []
    for value in values or []:
        statuses.extend(part.strip() for part in value.split(",") if part.strip())
    return statuses


@router.get("", response_model=list[LoanRow])
async def list_loans(
    loans: Loans,
    user: CurrentUser,
    limit: int = 10,
    page: int = 1,
    status: Annotated[list[str] | None, Query()] = None,
    start_date: Annotated[str | None, Query(alias="startDate")] = None,
    end_date: Annotated[str | None, Query(alias="endDate")] = None,
) -> list[dict[str, Any]]:
    """List loans newest payback date first."""
    return await loans.list_loans(
        limit=limit,
        page=page,
        statuses=_split_statuses(status),
        start_date=start_date,
        end_date=end_date,
    )


@router.get("/{loan_id}", responses={404: {"model": ErrorResponse}})
async def get_loan(
    loans: Loans,
    user: CurrentUser,
    loan_id: Annotated[str, Path()],
) -> dict[str, Any]:
    return await loans.get_loan(loan_id)

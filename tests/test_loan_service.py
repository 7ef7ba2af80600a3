"""Tests for the loan lifecycle service."""

import pytest
import pytest_asyncio

from payroll_portal.errors import NotFoundError, ValidationError
from payroll_portal.services import LoanService
from payroll_portal.store import DocumentStore

pytestmark = pytest.mark.asyncio

APPROVAL = {
    "amountApp": "40000",
    "installment": "5000",
    "date": "2025-07-01",
    "staffNote": "Approved by finance",
}


@pytest_asyncio.fixture
async def employee(make_employee) -> dict:
    return await make_employee()


@pytest_asyncio.fixture
async def loan_id(loan_service: LoanService, employee) -> str:
    result = await loan_service.create_loan_request(
        employee["employeeId"], {"empName": "Asha Rao", "amountReq": "50000", "note": "Medical"}
    )
    return result["loanId"]


class TestCreateLoan:
    async def test_create_links_loan_to_employee(
        self, loan_service: LoanService, store: DocumentStore, employee
    ):
        result = await loan_service.create_loan_request(
            employee["employeeId"], {"empName": "Asha Rao", "amountReq": 25000}
        )

        assert result["message"] == "Loan created successfully"
        loan = await loan_service.get_loan(result["loanId"])
        assert loan["status"] == "PENDING"
        assert loan["employeeId"] == employee["employeeId"]
        assert loan["amountReq"] == 25000
        assert loan["paybackTerm"] == {"installment": "", "date": "", "remaining": ""}
        assert len(loan["activity"]) == 1
        assert loan["activity"][0].startswith("Loan requested on ")

        index = await store.get("employees", employee["employeeId"])
        assert index.get("loanId") == [result["loanId"]]

    async def test_create_requires_name_and_amount(self, loan_service: LoanService, employee):
        with pytest.raises(ValidationError):
            await loan_service.create_loan_request(employee["employeeId"], {"empName": "Asha"})
        with pytest.raises(ValidationError):
            await loan_service.create_loan_request(employee["employeeId"], {"amountReq": 10})

    async def test_create_for_missing_employee(self, loan_service: LoanService, store):
        with pytest.raises(NotFoundError):
            await loan_service.create_loan_request("ghost", {"empName": "X", "amountReq": 1})
        assert await loan_service.list_loans() == []


class TestApproveLoan:
    async def test_approve_sets_payback_terms(self, loan_service: LoanService, loan_id):
        before = await loan_service.get_loan(loan_id)
        result = await loan_service.approve_loan(loan_id, {**APPROVAL, "approvedBy": "hr@acme.com"})

        assert result == {"message": "Loan approved successfully"}
        loan = await loan_service.get_loan(loan_id)
        assert loan["status"] == "APPROVED"
        assert loan["amountApp"] == "40000"
        assert loan["balance"] == "40000"
        assert loan["paybackTerm"] == {
            "installment": "5000",
            "date": "2025-07-01",
            "remaining": "40000",
        }
        assert loan["approvedBy"] == "hr@acme.com"
        assert len(loan["activity"]) == len(before["activity"]) + 1
        assert loan["activity"][-1].startswith("Loan approved on ")

    @pytest.mark.parametrize("installment", ["0", "-5", "abc", "nan", "inf"])
    async def test_invalid_installment(self, loan_service: LoanService, loan_id, installment):
        with pytest.raises(ValidationError):
            await loan_service.approve_loan(loan_id, {**APPROVAL, "installment": installment})
        assert (await loan_service.get_loan(loan_id))["status"] == "PENDING"

    async def test_non_numeric_amount(self, loan_service: LoanService, loan_id):
        with pytest.raises(ValidationError):
            await loan_service.approve_loan(loan_id, {**APPROVAL, "amountApp": "lots"})

    async def test_missing_approval_fields(self, loan_service: LoanService, loan_id):
        with pytest.raises(ValidationError):
            await loan_service.approve_loan(loan_id, {"amountApp": "100"})

    async def test_approve_missing_loan(self, loan_service: LoanService):
        with pytest.raises(NotFoundError):
            await loan_service.approve_loan("ghost", APPROVAL)

    async def test_reapproval_overwrites_terms(self, loan_service: LoanService, loan_id):
        await loan_service.approve_loan(loan_id, APPROVAL)
        await loan_service.approve_loan(loan_id, {**APPROVAL, "amountApp": "30000"})

        loan = await loan_service.get_loan(loan_id)
        assert loan["status"] == "APPROVED"
        assert loan["amountApp"] == "30000"
        assert len(loan["activity"]) == 3


class TestCancelAndEdit:
    async def test_cancel_records_reason(self, loan_service: LoanService, loan_id):
        result = await loan_service.cancel_loan(loan_id, "Duplicate request")

        assert result == {"message": "Loan cancelled successfully", "reason": "Duplicate request"}
        loan = await loan_service.get_loan(loan_id)
        assert loan["status"] == "DECLINED"
        assert loan["cancelReason"] == "Duplicate request"
        assert loan["activity"][-1].startswith("Loan cancelled on ")

    async def test_approve_after_cancel(self, loan_service: LoanService, loan_id):
        await loan_service.cancel_loan(loan_id, None)
        await loan_service.approve_loan(loan_id, APPROVAL)

        loan = await loan_service.get_loan(loan_id)
        assert loan["status"] == "APPROVED"
        assert loan["balance"] == "40000"

    async def test_cancel_approved_loan(self, loan_service: LoanService, loan_id):
        await loan_service.approve_loan(loan_id, APPROVAL)
        await loan_service.cancel_loan(loan_id, "Repaid early")

        loan = await loan_service.get_loan(loan_id)
        assert loan["status"] == "DECLINED"
        assert loan["cancelReason"] == "Repaid early"
        assert loan["amountApp"] == "40000"

    async def test_edit_loan_without_status(
        self, loan_service: LoanService, store: DocumentStore, loan_id
    ):
        await store.set(store.ref("loanDetails", loan_id), {"id": loan_id, "empName": "Asha Rao"})
        await loan_service.edit_loan(loan_id, {"staffNote": "Imported record"})

        loan = await loan_service.get_loan(loan_id)
        assert loan["staffNote"] == "Imported record"

    async def test_cancel_missing_loan(self, loan_service: LoanService):
        with pytest.raises(NotFoundError):
            await loan_service.cancel_loan("ghost", "n/a")

    async def test_edit_writes_nested_fields(self, loan_service: LoanService, loan_id):
        await loan_service.approve_loan(loan_id, APPROVAL)
        result = await loan_service.edit_loan(loan_id, {"installment": "4000", "staffNote": "Revised"})

        assert result["updatedFields"] == {"paybackTerm.installment": "4000", "staffNote": "Revised"}
        loan = await loan_service.get_loan(loan_id)
        assert loan["paybackTerm"]["installment"] == "4000"
        assert loan["paybackTerm"]["date"] == "2025-07-01"
        assert loan["staffNote"] == "Revised"

    async def test_edit_requires_a_field(self, loan_service: LoanService, loan_id):
        with pytest.raises(ValidationError):
            await loan_service.edit_loan(loan_id, {"unknown": "x"})


class TestListLoans:
    async def test_rows_and_filters(self, loan_service: LoanService, employee):
        ids = []
        for amount in ("1000", "2000", "3000"):
            created = await loan_service.create_loan_request(
                employee["employeeId"], {"empName": "Asha Rao", "amountReq": amount}
            )
            ids.append(created["loanId"])
        await loan_service.approve_loan(ids[0], {**APPROVAL, "date": "2025-03-01"})
        await loan_service.approve_loan(ids[1], {**APPROVAL, "date": "2025-05-01"})

        everything = await loan_service.list_loans()
        assert [row["id"] for row in everything] == [ids[1], ids[0], ids[2]]
        assert everything[0] == {
            "id": ids[1],
            "name": "Asha Rao",
            "amountReq": "2000",
            "status": "APPROVED",
            "amountApp": "40000",
            "installment": "5000",
            "balance": "40000",
        }
        assert everything[2]["amountApp"] == ""

        pending = await loan_service.list_loans(statuses=["PENDING"])
        assert [row["id"] for row in pending] == [ids[2]]

        ranged = await loan_service.list_loans(start_date="2025-04-01", end_date="2025-12-31")
        assert [row["id"] for row in ranged] == [ids[1]]

        second_page = await loan_service.list_loans(limit=2, page=2)
        assert [row["id"] for row in second_page] == [ids[2]]

    async def test_get_missing_loan(self, loan_service: LoanService):
        with pytest.raises(NotFoundError):
            await loan_service.get_loan("ghost")

"""Business services."""

from payroll_portal.services.aggregation import EmployeeAggregationReader
from payroll_portal.services.auth_service import AuthService
from payroll_portal.services.employee_codes import EmployeeCodeAllocator
from payroll_portal.services.employee_service import EmployeeService
from payroll_portal.services.loan_service import LoanService
from payroll_portal.services.pagination import fetch_page
from payroll_portal.services.sequence_service import SequenceService

__all__ = [
    "AuthService",
    "EmployeeAggregationReader",
    "EmployeeCodeAllocator",
    "EmployeeService",
    "LoanService",
    "SequenceService",
    "fetch_page",
]

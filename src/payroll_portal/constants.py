"""Collection names and shared enumerations."""

from __future__ import annotations

from enum import Enum

# Document collections
GENERAL = "general"
PROFESSIONAL = "professional"
EMPLOYEES = "employees"
BANK_DETAILS = "bankDetails"
PF_DETAILS = "pfDetails"
LOANS = "loanDetails"
PREVIOUS_JOBS = "previousJobs"
RESOURCES = "resources"
USERS = "users"
USER_EMAILS = "userEmails"
SEQUENCE_NUMBERS = "sequenceNumbers"
EMPLOYEE_CODE_COUNTERS = "employeeCodeCounters"
EMPLOYEE_CODES = "employeeCodes"

DEPARTMENT_PREFIXES: dict[str, str] = {
    "HR": "HR",
    "Finance": "FN",
    "Engineering": "EN",
    "Sales": "SL",
    "Marketing": "MK",
}
UNMAPPED_PREFIX = "UN"
EMPLOYEE_CODE_DIGITS = 4
EMPLOYEE_CODE_ATTEMPTS = 3


class EmployeeStatus(str, Enum):
    """Employee lifecycle values stored on GeneralInfo."""

    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    ON_NOTICE = "ON_NOTICE"
    EXITED = "EXITED"


class UserRole(str, Enum):
    """Roles assigned to identity records."""

    SUPER_ADMIN = "SUPER_ADMIN"
    ADMIN = "ADMIN"
    HR = "HR"
    EMPLOYEE = "EMPLOYEE"


class LoanStatus(str, Enum):
    """Loan status values.

    A new loan is PENDING.  Approval sets APPROVED and cancellation sets
    DECLINED from whatever status the loan is in.
    """

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    DECLINED = "DECLINED"

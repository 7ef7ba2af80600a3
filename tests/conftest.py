"""Pytest fixtures for payroll portal tests."""

from __future__ import annotations

from collections.abc import AsyncGenerator, Awaitable, Callable
from typing import Any

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine

from payroll_portal.config import Settings
from payroll_portal.database import create_schema, get_engine, make_session_factory
from payroll_portal.identity import IdentityProvider
from payroll_portal.services import (
    AuthService,
    EmployeeAggregationReader,
    EmployeeService,
    LoanService,
    SequenceService,
)
from payroll_portal.store import DocumentStore

# File-backed SQLite so concurrent reads get their own connections.
# For full Postgres features, point DATABASE_URL at a test Postgres database.


def make_settings(database_url: str, **overrides: Any) -> Settings:
    values: dict[str, Any] = {
        "database_url": database_url,
        "host": "127.0.0.1",
        "port": 3000,
        "debug": False,
        "log_level": "INFO",
        "jwt_secret": "test-secret",
        "jwt_alg": "HS256",
        "access_token_expire_minutes": 60,
        "batch_write_limit": 500,
        "default_phone_code": "+91",
    }
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def database_url(tmp_path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'portal.db'}"


@pytest.fixture
def settings(database_url: str) -> Settings:
    return make_settings(database_url)


@pytest_asyncio.fixture
async def engine(database_url: str) -> AsyncGenerator[AsyncEngine, None]:
    """Create test database engine with the document table."""
    engine = get_engine(database_url)
    await create_schema(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def store(engine: AsyncEngine) -> DocumentStore:
    return DocumentStore(make_session_factory(engine))


@pytest.fixture
def identity(store: DocumentStore, settings: Settings) -> IdentityProvider:
    return IdentityProvider(store, settings)


@pytest.fixture
def employee_service(
    store: DocumentStore, identity: IdentityProvider, settings: Settings
) -> EmployeeService:
    return EmployeeService(store, identity, settings)


@pytest.fixture
def loan_service(store: DocumentStore) -> LoanService:
    return LoanService(store)


@pytest.fixture
def aggregation_reader(store: DocumentStore) -> EmployeeAggregationReader:
    return EmployeeAggregationReader(store)


@pytest.fixture
def auth_service(identity: IdentityProvider) -> AuthService:
    return AuthService(identity)


@pytest.fixture
def sequence_service(store: DocumentStore) -> SequenceService:
    return SequenceService(store)


def general_info(emp_code: str, first: str = "Asha", last: str = "Rao") -> dict[str, Any]:
    return {
        "name": {"title": "Ms", "first": first, "last": last},
        "empCode": emp_code,
        "primaryEmail": f"{first.lower()}.{last.lower()}@acme.com",
        "gender": "FEMALE",
        "phoneNum": {"code": "+91", "num": "9876543210"},
    }


def professional_info(department: str = "Engineering", **overrides: Any) -> dict[str, Any]:
    data = {
        "joiningDate": "2024-04-01",
        "department": department,
        "designation": "Software Engineer",
        "location": "Bengaluru",
        "reportingManager": "R. Iyer",
        "workWeek": "MON-FRI",
        "holidayGroup": "India",
        "ctcAnnual": 1200000,
        "payslipComponent": "Standard",
        "role": "EMPLOYEE",
    }
    data.update(overrides)
    return data


@pytest.fixture
def make_employee(
    employee_service: EmployeeService,
) -> Callable[..., Awaitable[dict[str, Any]]]:
    """Create an employee aggregate and return its ids."""

    async def _make(emp_code: str = "EN0001", **kwargs: Any) -> dict[str, Any]:
        department = kwargs.pop("department", "Engineering")
        return await employee_service.add_employee(
            general_info(emp_code, **kwargs), professional_info(department)
        )

    return _make

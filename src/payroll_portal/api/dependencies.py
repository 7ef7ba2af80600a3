"""FastAPI dependencies for dependency injection."""

from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from payroll_portal.config import Settings
from payroll_portal.errors import AuthenticationError
from payroll_portal.identity import IdentityProvider, TokenClaims
from payroll_portal.services import (
    AuthService,
    EmployeeAggregationReader,
    EmployeeService,
    LoanService,
    SequenceService,
)
from payroll_portal.store import DocumentStore


async def get_db_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Get database session dependency."""
    async with request.app.state.session_factory() as session:
        try:
            yield session
        finally:
            await session.close()


def get_settings_dep(request: Request) -> Settings:
    return request.app.state.settings


def get_store(request: Request) -> DocumentStore:
    return request.app.state.store


def get_identity(request: Request) -> IdentityProvider:
    return request.app.state.identity


DbSession = Annotated[AsyncSession, Depends(get_db_session)]
AppSettings = Annotated[Settings, Depends(get_settings_dep)]
Store = Annotated[DocumentStore, Depends(get_store)]
Identity = Annotated[IdentityProvider, Depends(get_identity)]


def get_bearer_token(authorization: Annotated[str | None, Header()] = None) -> str:
    """Extract the bearer token from the Authorization header."""
    if not authorization:
        raise AuthenticationError("Authorization header is required")
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise AuthenticationError("Invalid authorization header format")
    return token.strip()


BearerToken = Annotated[str, Depends(get_bearer_token)]


async def get_current_user(token: BearerToken, identity: Identity) -> TokenClaims:
    """Verify the session token and return its claims."""
    return await identity.verify_token(token)


CurrentUser = Annotated[TokenClaims, Depends(get_current_user)]


def get_auth_service(identity: Identity) -> AuthService:
    return AuthService(identity)


def get_employee_service(store: Store, identity: Identity, settings: AppSettings) -> EmployeeService:
    return EmployeeService(store, identity, settings)


def get_loan_service(store: Store) -> LoanService:
    return LoanService(store)


def get_aggregation_reader(store: Store) -> EmployeeAggregationReader:
    return EmployeeAggregationReader(store)


def get_sequence_service(store: Store) -> SequenceService:
    return SequenceService(store)


# Type aliases for cleaner dependency injection
Auth = Annotated[AuthService, Depends(get_auth_service)]
Employees = Annotated[EmployeeService, Depends(get_employee_service)]
Loans = Annotated[LoanService, Depends(get_loan_service)]
Aggregation = Annotated[EmployeeAggregationReader, Depends(get_aggregation_reader)]
Sequences = Annotated[SequenceService, Depends(get_sequence_service)]

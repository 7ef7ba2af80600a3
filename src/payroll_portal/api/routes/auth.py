"""Authentication endpoints."""

from fastapi import APIRouter, status

from payroll_portal.api.dependencies import Auth, BearerToken
from payroll_portal.api.schemas import (
    ErrorResponse,
    IdentitySummary,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    SignupRequest,
)

router = APIRouter(tags=["auth"])


@router.post(
    "/signup/super-admin",
    response_model=IdentitySummary,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def signup_super_admin(auth: Auth, payload: SignupRequest) -> dict:
    """Create the first super admin. Only one may ever exist."""
    return await auth.signup_super_admin(
        payload.email, payload.password, payload.display_name
    )


@router.post(
    "/login",
    response_model=LoginResponse,
    responses={401: {"model": ErrorResponse}},
)
async def login(auth: Auth, payload: LoginRequest) -> dict:
    return await auth.login(payload.email, payload.password)


@router.post(
    "/logout",
    response_model=MessageResponse,
    responses={401: {"model": ErrorResponse}},
)
async def logout(auth: Auth, token: BearerToken) -> MessageResponse:
    """Revoke every session issued to the caller."""
    return MessageResponse(message=await auth.logout(token))

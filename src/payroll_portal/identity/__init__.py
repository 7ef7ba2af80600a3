"""Identity provider adapter."""

from payroll_portal.identity.provider import (
    IdentityError,
    IdentityProvider,
    IdentityUser,
    InvalidCredentialsError,
    InvalidTokenError,
    TokenClaims,
    hash_password,
    verify_password,
)

__all__ = [
    "IdentityError",
    "IdentityProvider",
    "IdentityUser",
    "InvalidCredentialsError",
    "InvalidTokenError",
    "TokenClaims",
    "hash_password",
    "verify_password",
]

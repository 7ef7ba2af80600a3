"""Exception hierarchy shared by the store, identity provider and services.

Every error carries the HTTP status it maps to so the API layer can render
it without knowing which component raised it.
"""

from __future__ import annotations

from typing import Any


class PortalError(Exception):
    """Base class for all payroll portal errors."""

    status_code: int = 500

    def __init__(self, message: str, details: Any | None = None):
        self.message = message
        self.details = details
        super().__init__(message)


class ValidationError(PortalError):
    """Raised when input is missing or malformed."""

    status_code = 400


class NotFoundError(PortalError):
    """Raised when a referenced document does not exist."""

    status_code = 404


class ConflictError(PortalError):
    """Raised when an operation would violate a uniqueness rule."""

    status_code = 409


class AuthenticationError(PortalError):
    """Raised when a request cannot be authenticated."""

    status_code = 401

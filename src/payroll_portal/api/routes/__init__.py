"""API routes."""

from payroll_portal.api.routes.auth import router as auth_router
from payroll_portal.api.routes.employees import router as employees_router
from payroll_portal.api.routes.health import router as health_router
from payroll_portal.api.routes.loans import router as loans_router
from payroll_portal.api.routes.sequences import router as sequences_router

__all__ = [
    "auth_router",
    "employees_router",
    "health_router",
    "loans_router",
    "sequences_router",
]

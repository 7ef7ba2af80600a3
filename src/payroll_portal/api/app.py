"""FastAPI application factory."""

import logging
from contextlib import asynccontextmanager
from collections.abc import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from payroll_portal.api.routes import (
    auth_router,
    employees_router,
    health_router,
    loans_router,
    sequences_router,
)
from payroll_portal.config import Settings, configure_logging, get_settings
from payroll_portal.database import create_schema, get_engine, make_session_factory
from payroll_portal.errors import PortalError
from payroll_portal.identity import IdentityProvider
from payroll_portal.store import DocumentStore

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    # Startup
    configure_logging(app.state.settings.log_level)
    await create_schema(app.state.engine)
    logger.info("Payroll portal started")
    yield
    # Shutdown
    await app.state.engine.dispose()


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = settings or get_settings()

    app = FastAPI(
        title="Payroll Portal API",
        description="HR and payroll administration backend",
        version="0.1.0",
        lifespan=lifespan,
    )

    engine = get_engine(settings.database_url)
    session_factory = make_session_factory(engine)
    store = DocumentStore(session_factory)

    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = session_factory
    app.state.store = store
    app.state.identity = IdentityProvider(store, settings)

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Exception handlers
    @app.exception_handler(PortalError)
    async def portal_error_handler(request: Request, exc: PortalError) -> JSONResponse:
        """Render domain errors with the status they carry."""
        content = {"error": exc.message}
        if exc.details is not None:
            content["details"] = jsonable_encoder(exc.details)
        return JSONResponse(status_code=exc.status_code, content=content)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """Handle malformed request bodies and parameters."""
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={
                "error": "Invalid request data",
                "details": jsonable_encoder(exc.errors()),
            },
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        """Handle unexpected exceptions."""
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "An unexpected error occurred"},
        )

    # Include routers
    app.include_router(health_router)
    app.include_router(auth_router, prefix="/api/auth")
    app.include_router(sequences_router, prefix="/api/sequenceNumber")
    app.include_router(employees_router)
    app.include_router(loans_router)

    return app


# Default app instance for uvicorn
app = create_app()

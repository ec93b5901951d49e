"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from workzen.api.routes import (
    attendance_router,
    health_router,
    payruns_router,
    salary_router,
    settings_router,
)
from workzen.calculators import ComponentValidationError, ConfigurationError
from workzen.config import get_settings
from workzen.database import close_db, init_db
from workzen.logging_config import configure_logging
from workzen.repositories import NotFoundError
from workzen.services import (
    AttendanceError,
    InvalidTransitionError,
    PayrunValidationError,
    PayslipLockedError,
    SettingsValidationError,
)

logger = logging.getLogger(__name__)

# exception type -> (HTTP status, error code)
ERROR_MAP: dict[type[Exception], tuple[int, str]] = {
    NotFoundError: (status.HTTP_404_NOT_FOUND, "NOT_FOUND"),
    ConfigurationError: (status.HTTP_400_BAD_REQUEST, "CONFIGURATION_ERROR"),
    ComponentValidationError: (status.HTTP_422_UNPROCESSABLE_ENTITY, "VALIDATION_ERROR"),
    SettingsValidationError: (status.HTTP_422_UNPROCESSABLE_ENTITY, "VALIDATION_ERROR"),
    PayrunValidationError: (status.HTTP_422_UNPROCESSABLE_ENTITY, "VALIDATION_ERROR"),
    InvalidTransitionError: (status.HTTP_409_CONFLICT, "INVALID_TRANSITION"),
    PayslipLockedError: (status.HTTP_409_CONFLICT, "PAYSLIP_LOCKED"),
    AttendanceError: (status.HTTP_409_CONFLICT, "ATTENDANCE_CONFLICT"),
}


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    settings = get_settings()
    configure_logging(settings.log_level, settings.log_format)
    init_db()
    logger.info("WorkZen API started", extra={"version": settings.engine_version})
    yield
    await close_db()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="WorkZen Payroll API",
        description="Salary structures, attendance and payruns",
        version=get_settings().engine_version,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    async def domain_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Map domain errors to their HTTP status."""
        status_code, code = next(ERROR_MAP[t] for t in type(exc).__mro__ if t in ERROR_MAP)
        return JSONResponse(status_code=status_code, content={"detail": str(exc), "code": code})

    for exc_type in ERROR_MAP:
        app.add_exception_handler(exc_type, domain_exception_handler)

    @app.exception_handler(Exception)
    async def general_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        """Handle unexpected exceptions."""
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "detail": "An unexpected error occurred",
                "code": "INTERNAL_ERROR",
            },
        )

    app.include_router(health_router)
    app.include_router(salary_router, prefix="/api/v1")
    app.include_router(attendance_router, prefix="/api/v1")
    app.include_router(payruns_router, prefix="/api/v1")
    app.include_router(settings_router, prefix="/api/v1")

    return app


# Default app instance for uvicorn
app = create_app()

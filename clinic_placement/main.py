"""
FastAPI application entry point.

This module creates and configures the FastAPI application.
Using an application factory pattern (create_app function) because:
- Easier to test with different configurations
- Explicit about initialization order
- Can create multiple app instances if needed (e.g., for testing)

For local development:
    uvicorn clinic_placement.main:app --reload

For production:
    gunicorn clinic_placement.main:app -w 4 -k uvicorn.workers.UvicornWorker
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import __version__
from .api.routes import activities, admin, health, placements, recommendations, submissions
from .config.settings import get_settings
from .core.errors import ClinicError
from .infrastructure.documents.client import DocumentStoreError
from .infrastructure.snowflake.client import SnowflakeConnectionError

# Configure logging
logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=get_settings().log_level.upper(),
)

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1/clinic"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Logs startup with the active mock modes and reports missing
    configuration. Missing configuration is logged, not fatal, so the
    readiness check can report it.
    """
    settings = get_settings()

    logger.info(
        "Clinic placement API starting",
        extra={
            "version": __version__,
            "mock_mode": {
                "snowflake": settings.snowflake_mock_mode,
                "notifications": settings.notifications_mock_mode,
            },
        },
    )

    missing_fields = settings.validate_required_fields()
    if missing_fields:
        logger.error(
            "Missing required configuration",
            extra={"missing_fields": missing_fields},
        )

    yield

    logger.info("Clinic placement API shutting down")


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def _describe_validation_error(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "invalid value")
    return f"{location}: {message}" if location else message


def create_app() -> FastAPI:
    """
    Application factory.

    Creates and configures the FastAPI application.
    This function is called once at startup (in production) or
    multiple times (in tests with different configurations).
    """
    settings = get_settings()

    app = FastAPI(
        title=settings.api_title,
        version=__version__,
        description="""
        Back office for swim school clinics.

        ## Features

        - Parents submit slot preferences for a clinic, camp or pop-up
        - Admins see preferences grouped by slot and counted by level
        - Admins assign swimmers to lanes and manage waitlists
        - Admins get ranked slot recommendations for every swimmer

        ## Authentication

        Admin endpoints require `Authorization: Bearer <token>` for an admin
        account. Submitting preferences and reading activities is public.
        """,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # CORS middleware
    # Configure allowed origins via CORS_ORIGINS environment variable
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routers
    app.include_router(
        health.router,
        prefix="/health",
        tags=["Health"],
    )

    app.include_router(
        submissions.router,
        prefix=f"{API_PREFIX}/submissions",
        tags=["Submissions"],
    )

    app.include_router(
        admin.router,
        prefix=f"{API_PREFIX}/admin",
        tags=["Admin"],
    )

    app.include_router(
        placements.router,
        prefix=f"{API_PREFIX}/placements",
        tags=["Placements"],
    )

    app.include_router(
        recommendations.router,
        prefix=f"{API_PREFIX}/recommendations",
        tags=["Recommendations"],
    )

    app.include_router(
        activities.router,
        prefix=f"{API_PREFIX}/activities",
        tags=["Activities"],
    )

    # Root endpoint
    @app.get("/", include_in_schema=False)
    async def root():
        """Root endpoint - points at the docs."""
        return {
            "message": "Swim Clinic Placement API",
            "version": __version__,
            "docs": "/docs",
            "health": "/health",
        }

    # Domain errors carry their own status code
    @app.exception_handler(ClinicError)
    async def clinic_error_handler(request: Request, exc: ClinicError):
        logger.warning(
            "Request rejected",
            extra={
                "path": request.url.path,
                "method": request.method,
                "status_code": exc.status_code,
                "error": exc.message,
            },
        )
        return _error(exc.status_code, exc.message)

    @app.exception_handler(DocumentStoreError)
    @app.exception_handler(SnowflakeConnectionError)
    async def storage_error_handler(request: Request, exc: Exception):
        logger.error(
            "Storage failure",
            extra={"path": request.url.path, "method": request.method, "error": str(exc)},
            exc_info=exc,
        )
        return _error(500, "Storage is unavailable. Please try again later.")

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        message = _describe_validation_error(exc)
        logger.warning(
            "Malformed request",
            extra={"path": request.url.path, "method": request.method, "error": message},
        )
        return _error(422, message)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return _error(exc.status_code, str(exc.detail))

    # Global exception handler
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """
        Catch-all exception handler.

        Prevents stack traces from leaking to clients. The full error is
        logged server-side; the client gets a generic message.
        """
        logger.error(
            "Unhandled exception",
            extra={
                "path": request.url.path,
                "method": request.method,
                "error": str(exc),
            },
            exc_info=exc,
        )
        return _error(500, "Internal server error")

    logger.info(
        "FastAPI application created",
        extra={
            "title": settings.api_title,
            "version": __version__,
        },
    )

    return app


# Create the application instance
# This is what uvicorn/gunicorn will import
app = create_app()


# For debugging/development
if __name__ == "__main__":
    import uvicorn

    settings = get_settings()

    uvicorn.run(
        "clinic_placement.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level=settings.log_level.lower(),
    )

"""FastAPI main application module."""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager

from ...application.exceptions import (
    ConcurrentSnapshotUpdateError,
    CriticalFailureNotFoundError,
    ScoringUnavailableError,
    TripNotFoundError,
)
from ...infrastructure.logging import get_logger, setup_logging_from_env
from ...infrastructure.services import initialize_services, shutdown_services
from .routes import health, trips, risk_scoring, drivers
from .config import get_settings
from .middleware import RequestResponseLoggingMiddleware


logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan management."""
    # Startup
    setup_logging_from_env()
    logger.info("Starting Fleet Safety Risk Scoring API")
    await initialize_services()

    yield

    # Shutdown
    logger.info("Shutting down Fleet Safety Risk Scoring API")
    await shutdown_services()


def _error(status_code: int, detail: str, error_type: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"detail": detail, "type": error_type})


def add_exception_handlers(app: FastAPI) -> None:
    """Add custom exception handlers to the FastAPI application."""

    @app.exception_handler(TripNotFoundError)
    async def trip_not_found_handler(request: Request, exc: TripNotFoundError):
        """Handle unknown trips."""
        logger.warning(f"Trip not found on {request.url}: {str(exc)}")
        return _error(404, str(exc), "not_found")

    @app.exception_handler(CriticalFailureNotFoundError)
    async def failure_not_found_handler(request: Request, exc: CriticalFailureNotFoundError):
        """Handle unknown critical failures."""
        logger.warning(f"Critical failure not found on {request.url}: {str(exc)}")
        return _error(404, str(exc), "not_found")

    @app.exception_handler(ScoringUnavailableError)
    async def scoring_unavailable_handler(request: Request, exc: ScoringUnavailableError):
        """Handle risk inputs that could not be loaded.

        Reported as unavailable so that no caller reads it as a zero score.
        """
        logger.error(
            f"Risk scoring unavailable on {request.url}: {str(exc)}",
            extra={"stream": exc.stream, "trip_id": str(exc.trip_id) if exc.trip_id else None}
        )
        return _error(503, str(exc), "scoring_unavailable")

    @app.exception_handler(ConcurrentSnapshotUpdateError)
    async def concurrent_update_handler(request: Request, exc: ConcurrentSnapshotUpdateError):
        """Handle lost snapshot write races."""
        logger.warning(f"Concurrent snapshot update on {request.url}: {str(exc)}")
        return _error(409, str(exc), "concurrent_update")

    @app.exception_handler(PermissionError)
    async def permission_error_handler(request: Request, exc: PermissionError):
        """Handle actions the actor's role does not allow."""
        logger.warning(f"Authorization error on {request.url}: {str(exc)}")
        return _error(403, str(exc), "authorization_error")

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError):
        """Handle validation errors from business logic."""
        logger.warning(f"Validation error on {request.url}: {str(exc)}")
        return _error(400, str(exc), "validation_error")

    @app.exception_handler(RuntimeError)
    async def runtime_error_handler(request: Request, exc: RuntimeError):
        """Handle runtime errors from business logic."""
        logger.error(f"Runtime error on {request.url}: {str(exc)}")
        return _error(500, "Internal server error occurred", "runtime_error")


def create_app() -> FastAPI:
    """Create and configure FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Fleet Safety Risk Scoring",
        description="Trip risk scoring, dispatch compliance and critical failure overrides",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan
    )

    # Add custom exception handlers
    add_exception_handlers(app)

    # Request logging with correlation IDs
    app.add_middleware(
        RequestResponseLoggingMiddleware,
        exclude_paths=settings.log_request_paths_excluded
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=settings.allowed_methods,
        allow_headers=settings.allowed_headers,
    )

    # Include routers
    app.include_router(health.router, tags=["health"])
    app.include_router(
        trips.router,
        prefix=f"{settings.api_prefix}/trips",
        tags=["trips"]
    )
    app.include_router(
        risk_scoring.router,
        prefix=f"{settings.api_prefix}/trips",
        tags=["risk-scoring"]
    )
    app.include_router(
        drivers.router,
        prefix=f"{settings.api_prefix}/drivers",
        tags=["drivers"]
    )

    return app


# Create app instance
app = create_app()

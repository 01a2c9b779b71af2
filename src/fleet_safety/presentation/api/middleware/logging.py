"""HTTP request/response logging middleware for FastAPI."""

import time
from typing import Callable, Iterable, Optional
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from ....infrastructure.logging import (
    generate_correlation_id,
    set_correlation_id,
    clear_correlation_id,
    get_logger,
    log_request,
    log_response
)

logger = get_logger(__name__)

# Headers to exclude from logging (sensitive information)
EXCLUDED_HEADERS = {
    'authorization',
    'cookie',
    'set-cookie',
    'x-api-key',
    'x-auth-token',
    'proxy-authorization',
}

DEFAULT_EXCLUDED_PATHS = frozenset({'/health', '/docs', '/redoc', '/openapi.json', '/favicon.ico'})


class RequestResponseLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware to log HTTP requests and responses with correlation IDs."""

    def __init__(self, app: ASGIApp, exclude_paths: Optional[Iterable[str]] = None):
        """
        Initialize the logging middleware.

        Args:
            app: The ASGI application
            exclude_paths: Paths to exclude from logging
        """
        super().__init__(app)
        self.exclude_paths = set(exclude_paths) if exclude_paths is not None else set(DEFAULT_EXCLUDED_PATHS)

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Process the request and response with logging."""
        if request.url.path in self.exclude_paths:
            return await call_next(request)

        correlation_id = request.headers.get("X-Correlation-ID") or generate_correlation_id()
        set_correlation_id(correlation_id)
        start_time = time.perf_counter()

        try:
            log_request(
                logger,
                request.method,
                request.url.path,
                request_query=str(request.query_params) if request.query_params else None,
                request_headers=sanitize_headers(dict(request.headers)),
                actor_id=request.headers.get("x-actor-id"),
                actor_role=request.headers.get("x-actor-role"),
                client_host=request.client.host if request.client else "unknown",
            )

            response = await call_next(request)
            response.headers["X-Correlation-ID"] = correlation_id

            log_response(
                logger,
                request.method,
                request.url.path,
                response.status_code,
                (time.perf_counter() - start_time) * 1000,
                content_type=response.headers.get("content-type"),
            )
            return response

        except Exception as exc:
            duration_ms = (time.perf_counter() - start_time) * 1000
            logger.error(
                f"Request failed: {request.method} {request.url.path}",
                extra={
                    "request_method": request.method,
                    "request_path": request.url.path,
                    "duration_ms": round(duration_ms, 2),
                    "error": str(exc),
                    "error_type": type(exc).__name__
                },
                exc_info=True
            )
            raise

        finally:
            clear_correlation_id()


def sanitize_headers(headers: dict) -> dict:
    """Redact sensitive headers before logging."""
    return {
        key: "[REDACTED]" if key.lower() in EXCLUDED_HEADERS else value
        for key, value in headers.items()
    }

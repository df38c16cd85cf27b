"""Custom exceptions and centralized FastAPI error handlers."""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class ServiceError(Exception):
    """Base exception with HTTP status code."""

    def __init__(self, message: str, status_code: int = 500):
        super().__init__(message)
        self.status_code = status_code


class FetchError(ServiceError):
    """An upstream fetch failed (HTTP error, network error, timeout or bad JSON)."""

    def __init__(self, message: str = "Failed to fetch data", upstream_status: int | None = None):
        super().__init__(message or "Failed to fetch data", status_code=502)
        self.upstream_status = upstream_status


class InvalidEndpointError(ServiceError):
    def __init__(self, endpoint: str):
        super().__init__(
            f"Invalid endpoint: {endpoint!r}. Expected a path starting with '/'",
            status_code=400,
        )


class UpstreamNotConfiguredError(ServiceError):
    def __init__(self):
        super().__init__("Upstream API is not configured (API_BASE_URL)", status_code=503)


def register_error_handlers(app: FastAPI) -> None:
    """Register centralized exception handlers on the FastAPI app."""

    @app.exception_handler(ServiceError)
    async def handle_service_error(_request: Request, exc: ServiceError):
        return JSONResponse({"error": str(exc)}, status_code=exc.status_code)

    @app.exception_handler(ValueError)
    async def handle_value_error(_request: Request, exc: ValueError):
        return JSONResponse({"error": str(exc)}, status_code=400)

    @app.exception_handler(Exception)
    async def handle_unexpected(_request: Request, exc: Exception):
        logger.exception("Unhandled error: %s", exc)
        return JSONResponse(
            {"error": "Internal server error"},
            status_code=500,
        )

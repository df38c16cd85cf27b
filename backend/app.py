"""FastAPI application entry point for the CRM data API."""

import logging
import sys

import httpx
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware

from config import settings
from errors import register_error_handlers
from services.cache import FetchCache
from services.fetcher import DataFetcher

# Structured logging: JSON for production, human-readable for local
if settings.is_production:
    logging.basicConfig(
        level=settings.log_level,
        format='{"time":"%(asctime)s","level":"%(levelname)s","logger":"%(name)s","message":"%(message)s"}',
        stream=sys.stdout,
    )
else:
    logging.basicConfig(level=settings.log_level, format="%(levelname)s %(name)s: %(message)s")

logger = logging.getLogger(__name__)


def build_fetcher() -> DataFetcher:
    """Shared fetcher for the process: one HTTP client, one cache."""
    client_kwargs: dict = {"timeout": settings.fetch_timeout_seconds}
    if settings.api_base_url:
        client_kwargs["base_url"] = settings.api_base_url
    return DataFetcher(
        httpx.AsyncClient(**client_kwargs),
        FetchCache(ttl_seconds=settings.fetch_cache_ttl_seconds),
        timeout_seconds=settings.fetch_timeout_seconds,
        retry_delay_seconds=settings.fetch_retry_delay_seconds,
    )


def create_app() -> FastAPI:
    app = FastAPI(title="CRM Data API", version="1.0.0")

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Security headers
    @app.middleware("http")
    async def add_security_headers(request: Request, call_next):
        response: Response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        if settings.is_production:
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        return response

    # Centralized error handlers
    register_error_handlers(app)

    from routes.data import router as data_router
    from routes.health import router as health_router

    app.include_router(health_router)
    app.include_router(data_router)

    @app.on_event("startup")
    async def _start_fetcher() -> None:
        missing = settings.validate()
        if missing:
            logger.warning("Missing env vars (data proxy disabled): %s", ", ".join(missing))
        if getattr(app.state, "fetcher", None) is None:
            app.state.fetcher = build_fetcher()

    @app.on_event("shutdown")
    async def _close_fetcher() -> None:
        fetcher = getattr(app.state, "fetcher", None)
        if fetcher is not None:
            await fetcher.aclose()

    return app


app = create_app()

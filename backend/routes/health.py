"""Health and readiness check routes."""

import logging
import time
from datetime import datetime, timezone

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from config import settings

logger = logging.getLogger(__name__)

router = APIRouter()

VERSION = "1.0.0"
_started_at = time.monotonic()

NO_STORE_HEADERS = {
    "Cache-Control": "no-store, no-cache, must-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
}


@router.get("/ready")
async def ready() -> dict:
    """Lightweight readiness check — no external calls."""
    return {"status": "ok", "service": "crm-data-api", "commit": settings.git_sha}


@router.get("/health")
async def health(request: Request) -> JSONResponse:
    """Health of the service and its fetch cache, for monitoring."""
    result = {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "uptime": round(time.monotonic() - _started_at, 3),
        "environment": settings.environment,
        "version": VERSION,
        "commit": settings.git_sha,
        "checks": {},
    }

    fetcher = getattr(request.app.state, "fetcher", None)
    if fetcher is None:
        result["status"] = "unhealthy"
        result["checks"]["fetch_cache"] = {"status": "error", "error": "fetcher not initialized"}
    else:
        result["checks"]["fetch_cache"] = {"status": "ok", **fetcher.cache.stats()}

    missing = settings.validate()
    result["checks"]["environment"] = {"status": "ok" if not missing else "warning"}
    if missing:
        result["checks"]["environment"]["missing"] = missing

    status_code = 200 if result["status"] == "healthy" else 503
    return JSONResponse(result, status_code=status_code, headers=NO_STORE_HEADERS)

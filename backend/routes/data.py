"""Read-through data routes backed by the shared DataFetcher."""

import logging
from typing import Any

from fastapi import APIRouter, Depends, Query, Request

from config import settings
from errors import InvalidEndpointError, UpstreamNotConfiguredError
from services.fetcher import DataFetcher

logger = logging.getLogger(__name__)

router = APIRouter()


def get_fetcher(request: Request) -> DataFetcher:
    return request.app.state.fetcher


def _validate_endpoint(endpoint: str) -> str:
    """Only relative paths on the upstream API may be proxied."""
    if not endpoint.startswith("/") or endpoint.startswith("//"):
        raise InvalidEndpointError(endpoint)
    return endpoint


@router.get("/data")
async def fetch_data(
    endpoint: str = Query(""),
    retry: int = Query(0, ge=0, le=settings.fetch_max_retries),
    fetcher: DataFetcher = Depends(get_fetcher),
) -> dict:
    """Cached upstream read. Paginated envelopes come back as the bare list."""
    data: Any = []
    if endpoint:
        endpoint = _validate_endpoint(endpoint)
        if not settings.api_base_url:
            raise UpstreamNotConfiguredError()
        data = await fetcher.load(endpoint, retry)
    return {"endpoint": endpoint, "data": data}


@router.get("/data/cache")
async def cache_stats(fetcher: DataFetcher = Depends(get_fetcher)) -> dict:
    return fetcher.cache.stats()


@router.delete("/data/cache")
async def invalidate_cache(
    pattern: str | None = Query(None),
    fetcher: DataFetcher = Depends(get_fetcher),
) -> dict:
    """Drop cached entries matching pattern (``*`` wildcard), or all of them."""
    if pattern:
        removed = fetcher.cache.invalidate_matching(pattern)
    else:
        removed = fetcher.cache.size()
        fetcher.cache.clear()
    logger.info("Invalidated %d cache entries (pattern=%s)", removed, pattern)
    return {"removed": removed, "pattern": pattern}

"""Cached, deduplicated JSON reads from the upstream CRUD API.

The upstream serves universities, colleges, degrees, specializations and users.
List endpoints may answer with a paginated envelope, which is unwrapped here
so callers always see the list itself.

For each endpoint identifier, at most one request is in flight. Concurrent
callers join it instead of issuing their own. Successful results are cached
for the TTL of the injected FetchCache.
"""

import asyncio
import logging
from typing import Any

import httpx

from errors import FetchError
from services.cache import CacheEntry, FetchCache

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT_SECONDS = 30.0
RETRY_DELAY_SECONDS = 1.0

# Ask intermediaries for a fresh copy; caching is done here.
NO_CACHE_HEADERS = {"Cache-Control": "no-cache"}


def normalize_payload(body: Any) -> Any:
    """Unwrap ``{"data": [...], "pagination": {...}}`` list envelopes."""
    if isinstance(body, dict) and body.get("data") is not None and body.get("pagination") is not None:
        return body["data"]
    return body


class DataFetcher:
    def __init__(
        self,
        client: httpx.AsyncClient,
        cache: FetchCache | None = None,
        timeout_seconds: float = REQUEST_TIMEOUT_SECONDS,
        retry_delay_seconds: float = RETRY_DELAY_SECONDS,
    ):
        self._client = client
        self._cache = cache if cache is not None else FetchCache()
        self._timeout = timeout_seconds
        self._retry_delay = retry_delay_seconds

    @property
    def cache(self) -> FetchCache:
        return self._cache

    def cached(self, key: str | None) -> CacheEntry | None:
        """Fresh cache entry for key, without touching the network."""
        if not key:
            return None
        return self._cache.get_fresh(key)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def load(self, key: str | None, retry: int = 0) -> Any:
        """Resolve key to its (normalized) JSON payload.

        Args:
            key: Endpoint identifier, e.g. ``/api/degrees?page=2``. Empty keys
                resolve to an empty list without any I/O.
            retry: Additional attempts after the first failure. Attempts are
                spaced by a fixed delay.

        Raises:
            FetchError: The last attempt failed.
        """
        if not key:
            return []
        if retry < 0:
            raise ValueError(f"retry must be >= 0, got {retry}")

        attempts = retry + 1
        for attempt in range(1, attempts):
            try:
                return await self._attempt(key)
            except FetchError as e:
                logger.warning(
                    "Fetch of %s failed: %s, retrying in %.1fs (attempt %d/%d)",
                    key,
                    e,
                    self._retry_delay,
                    attempt,
                    attempts,
                )
                await asyncio.sleep(self._retry_delay)

        try:
            return await self._attempt(key)
        except FetchError as e:
            logger.warning("Fetch of %s failed after %d attempt(s): %s", key, attempts, e)
            raise

    async def _attempt(self, key: str) -> Any:
        entry = self._cache.get_fresh(key)
        if entry is not None:
            logger.debug("Cache hit for %s", key)
            return entry.payload

        pending = self._cache.get_pending(key)
        if pending is not None:
            try:
                return await self._join(key, pending)
            except FetchError as e:
                logger.debug("Shared request for %s failed (%s), issuing a new one", key, e)

        return await self._request(key)

    async def _join(self, key: str, pending: asyncio.Future) -> Any:
        # asyncio.wait does not cancel the shared request if this caller is cancelled
        logger.debug("Joining in-flight request for %s", key)
        await asyncio.wait({pending})
        if pending.cancelled():
            raise FetchError("Shared request was canceled")
        return pending.result()

    async def _request(self, key: str) -> Any:
        pending = self._cache.get_pending(key)
        if pending is not None:
            return await self._join(key, pending)

        task = asyncio.ensure_future(self._fetch(key))
        self._cache.add_pending(key, task)
        # Awaiting the task directly: cancelling the owner aborts the transport call.
        return await task

    async def _fetch(self, key: str) -> Any:
        logger.info("Fetching %s", key)
        try:
            response = await asyncio.wait_for(
                self._client.get(key, headers=NO_CACHE_HEADERS),
                timeout=self._timeout,
            )
            response.raise_for_status()
            body = response.json()
        except asyncio.TimeoutError as e:
            raise FetchError(f"timeout of {int(self._timeout * 1000)}ms exceeded") from e
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            raise FetchError(f"Request failed with status code {status}", upstream_status=status) from e
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise FetchError(str(e) or "Network Error") from e
        except ValueError as e:
            raise FetchError(f"Invalid JSON response: {e}") from e

        payload = normalize_payload(body)
        self._cache.store(key, payload)
        return payload

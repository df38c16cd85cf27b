"""Observable fetch state for a single consumer.

A FetchSubscription tracks one endpoint at a time and republishes
``data`` / ``loading`` / ``error`` whenever its load settles. Switching to a
different endpoint, or closing the subscription, cancels the outstanding
attempt; a cancelled attempt never publishes anything.
"""

import asyncio
import dataclasses
import logging
from dataclasses import dataclass, field
from typing import Any, Callable

from errors import FetchError
from services.fetcher import DataFetcher

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RequestState:
    data: Any = field(default_factory=list)
    loading: bool = False
    error: str | None = None


class FetchSubscription:
    def __init__(
        self,
        fetcher: DataFetcher,
        retry: int = 0,
        on_change: Callable[[RequestState], None] | None = None,
    ):
        self._fetcher = fetcher
        self._retry = retry
        self._on_change = on_change
        self._endpoint: str | None = None
        self._task: asyncio.Task | None = None
        self._closed = False
        self._tracking = False
        self.state = RequestState()

    @property
    def endpoint(self) -> str | None:
        return self._endpoint

    @property
    def closed(self) -> bool:
        return self._closed

    def track(self, endpoint: str | None) -> asyncio.Task | None:
        """Follow endpoint, loading only when it differs from the tracked one.

        Returns the task running the load, or None when the state was settled
        synchronously (empty endpoint or fresh cache hit).
        """
        if self._closed:
            raise RuntimeError("Subscription is closed")
        if self._tracking and endpoint == self._endpoint:
            if self._task is not None and not self._task.done():
                return self._task
            return None
        self._tracking = True
        self._endpoint = endpoint
        return self._start()

    def refetch(self) -> asyncio.Task | None:
        if self._closed:
            raise RuntimeError("Subscription is closed")
        return self._start()

    async def wait(self) -> RequestState:
        """Wait for the outstanding load (if any) and return the current state."""
        task = self._task
        if task is not None and not task.done():
            await asyncio.wait({task})
        return self.state

    def close(self) -> None:
        self._closed = True
        self._cancel()

    async def __aenter__(self) -> "FetchSubscription":
        return self

    async def __aexit__(self, *exc_info) -> None:
        self.close()

    def _start(self) -> asyncio.Task | None:
        self._cancel()
        endpoint = self._endpoint

        if not endpoint:
            self._publish(data=[], loading=False, error=None)
            return None

        entry = self._fetcher.cached(endpoint)
        if entry is not None:
            self._publish(data=entry.payload, loading=False, error=None)
            return None

        self._publish(loading=True, error=None)
        self._task = asyncio.ensure_future(self._run(endpoint))
        return self._task

    async def _run(self, endpoint: str) -> None:
        try:
            data = await self._fetcher.load(endpoint, self._retry)
        except FetchError as e:
            self._publish(loading=False, error=str(e) or "Failed to fetch data")
            return
        except Exception as e:
            logger.exception("Unexpected error loading %s", endpoint)
            self._publish(loading=False, error=str(e) or "Failed to fetch data")
            return
        self._publish(data=data, loading=False, error=None)

    def _cancel(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    def _publish(self, **changes) -> None:
        self.state = dataclasses.replace(self.state, **changes)
        if self._on_change is not None:
            self._on_change(self.state)

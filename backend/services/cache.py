"""In-memory response cache and in-flight request registry for the fetch layer.

Not thread-safe, but safe for asyncio single-threaded concurrency: no method
here awaits, so a lookup and the write that follows it cannot be interleaved
with another coroutine.

Entries expire passively. A stale entry stays in memory until it is
overwritten by a refetch, invalidated, or the cache is cleared.
"""

import asyncio
import re
import time
from dataclasses import dataclass
from typing import Any, Callable

DEFAULT_TTL_SECONDS = 120.0


@dataclass
class CacheEntry:
    payload: Any
    fetched_at: float


class FetchCache:
    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._pending: dict[str, asyncio.Future] = {}

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    def is_fresh(self, entry: CacheEntry) -> bool:
        return self._clock() - entry.fetched_at < self._ttl

    def get_fresh(self, key: str) -> CacheEntry | None:
        """Return the entry for key only if it is younger than the TTL."""
        entry = self._entries.get(key)
        if entry is not None and self.is_fresh(entry):
            return entry
        return None

    def entry(self, key: str) -> CacheEntry | None:
        return self._entries.get(key)

    def store(self, key: str, payload: Any) -> CacheEntry:
        entry = CacheEntry(payload=payload, fetched_at=self._clock())
        self._entries[key] = entry
        return entry

    def get_pending(self, key: str) -> asyncio.Future | None:
        """Return the live in-flight request for key, if any.

        A future that has already settled is never handed out for joining.
        """
        future = self._pending.get(key)
        if future is None:
            return None
        if future.done():
            del self._pending[key]
            return None
        return future

    def add_pending(self, key: str, future: asyncio.Future) -> None:
        if self.get_pending(key) is not None:
            raise RuntimeError(f"A request for {key} is already in flight")
        self._pending[key] = future
        future.add_done_callback(lambda settled: self._discard_pending(key, settled))

    def _discard_pending(self, key: str, future: asyncio.Future) -> None:
        if self._pending.get(key) is future:
            del self._pending[key]

    def invalidate(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    def invalidate_matching(self, pattern: str) -> int:
        """Remove entries whose key matches pattern (``*`` matches anything)."""
        regex = re.compile("^" + ".*".join(re.escape(part) for part in pattern.split("*")) + "$")
        matched = [key for key in self._entries if regex.match(key)]
        for key in matched:
            del self._entries[key]
        return len(matched)

    def size(self) -> int:
        return len(self._entries)

    def pending_count(self) -> int:
        return sum(1 for future in self._pending.values() if not future.done())

    def clear(self) -> None:
        """Drop every cache entry. In-flight requests stay registered until they settle."""
        self._entries.clear()

    def stats(self) -> dict:
        fresh = sum(1 for entry in self._entries.values() if self.is_fresh(entry))
        return {
            "type": "memory",
            "entries": len(self._entries),
            "fresh": fresh,
            "stale": len(self._entries) - fresh,
            "pending": self.pending_count(),
            "ttl_seconds": self._ttl,
        }

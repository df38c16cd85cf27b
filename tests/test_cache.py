import asyncio

import pytest

from services.cache import FetchCache


def test_entry_is_fresh_until_ttl(clock):
    cache = FetchCache(ttl_seconds=120, clock=clock)
    cache.store("/api/degrees", [1, 2])

    clock.advance(119.999)
    assert cache.get_fresh("/api/degrees").payload == [1, 2]

    clock.advance(0.001)
    assert cache.get_fresh("/api/degrees") is None


def test_stale_entry_is_kept_until_overwritten(clock):
    cache = FetchCache(ttl_seconds=120, clock=clock)
    cache.store("/api/degrees", ["old"])
    clock.advance(500)

    assert cache.get_fresh("/api/degrees") is None
    assert cache.entry("/api/degrees").payload == ["old"]
    assert cache.size() == 1

    cache.store("/api/degrees", ["new"])
    assert cache.get_fresh("/api/degrees").payload == ["new"]
    assert cache.size() == 1


def test_cached_none_payload_is_a_hit(clock):
    cache = FetchCache(clock=clock)
    cache.store("/api/user/me", None)
    entry = cache.get_fresh("/api/user/me")
    assert entry is not None
    assert entry.payload is None


@pytest.mark.asyncio
async def test_pending_is_removed_when_future_settles():
    cache = FetchCache()
    future = asyncio.get_running_loop().create_future()
    cache.add_pending("/api/colleges", future)
    assert cache.get_pending("/api/colleges") is future
    assert cache.pending_count() == 1

    future.set_result([])
    # A settled future is never handed out, even before its done callback ran
    assert cache.get_pending("/api/colleges") is None

    await asyncio.sleep(0)
    assert cache.pending_count() == 0


@pytest.mark.asyncio
async def test_only_one_live_pending_request_per_key():
    cache = FetchCache()
    loop = asyncio.get_running_loop()
    first = loop.create_future()
    cache.add_pending("/api/colleges", first)

    with pytest.raises(RuntimeError):
        cache.add_pending("/api/colleges", loop.create_future())

    first.cancel()
    replacement = loop.create_future()
    cache.add_pending("/api/colleges", replacement)
    assert cache.get_pending("/api/colleges") is replacement

    # The cancelled future's done callback must not drop the replacement
    await asyncio.sleep(0)
    assert cache.get_pending("/api/colleges") is replacement
    replacement.cancel()


def test_invalidate_matching(clock):
    cache = FetchCache(clock=clock)
    cache.store("/api/universities?page=1", [])
    cache.store("/api/universities?page=2", [])
    cache.store("/api/degrees", [])

    assert cache.invalidate_matching("/api/universities*") == 2
    assert cache.entry("/api/degrees") is not None
    assert cache.invalidate("/api/degrees") is True
    assert cache.invalidate("/api/degrees") is False
    assert cache.size() == 0


def test_pattern_characters_are_literal(clock):
    cache = FetchCache(clock=clock)
    cache.store("/api/degrees?page=1", [])
    cache.store("/api/degreesXpage=1", [])

    assert cache.invalidate_matching("/api/degrees?page=1") == 1
    assert cache.entry("/api/degreesXpage=1") is not None


def test_stats_and_clear(clock):
    cache = FetchCache(ttl_seconds=120, clock=clock)
    cache.store("/a", 1)
    clock.advance(200)
    cache.store("/b", 2)

    stats = cache.stats()
    assert stats["entries"] == 2
    assert stats["fresh"] == 1
    assert stats["stale"] == 1
    assert stats["pending"] == 0
    assert stats["ttl_seconds"] == 120

    cache.clear()
    assert cache.size() == 0


@pytest.mark.asyncio
async def test_clear_drops_entries_but_not_in_flight_requests(clock):
    cache = FetchCache(clock=clock)
    cache.store("/api/degrees", [])
    future = asyncio.get_running_loop().create_future()
    cache.add_pending("/api/degrees", future)

    cache.clear()

    assert cache.size() == 0
    assert cache.get_pending("/api/degrees") is future
    future.set_result([])
    await asyncio.sleep(0)
    assert cache.pending_count() == 0

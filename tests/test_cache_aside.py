"""Tests for canonical cache keys and the cache-aside fetch helper."""

import asyncio
import logging
from unittest.mock import AsyncMock, Mock

import pytest

from gateway.adapters.cache.memory import InMemoryCacheStore
from gateway.core.config import CacheSettings
from gateway.core.errors import UpstreamAppError
from gateway.services.cache_aside import build_cache_key, cached_fetch
from gateway.services.cache_service import CacheService


class TestBuildCacheKey:
    def test_operation_without_params(self) -> None:
        assert build_cache_key("bus", "busstops") == "bus:busstops"

    def test_params_are_sorted(self) -> None:
        a = build_cache_key("lta", "busarrival", {"serviceNo": "95", "busStopCode": "16991"})
        b = build_cache_key("lta", "busarrival", {"busStopCode": "16991", "serviceNo": "95"})

        assert a == b == "lta:busarrival:busStopCode=16991:serviceNo=95"

    def test_empty_params_are_dropped(self) -> None:
        key = build_cache_key("lta", "busroutes", {"serviceNo": "95", "direction": None, "x": ""})

        assert key == "lta:busroutes:serviceNo=95"

    def test_nested_body_is_hashed_independent_of_key_order(self) -> None:
        body_a = {"origin": {"location": {"latLng": {"latitude": 1.3, "longitude": 103.7}}}, "travelMode": "WALK"}
        body_b = {"travelMode": "WALK", "origin": {"location": {"latLng": {"longitude": 103.7, "latitude": 1.3}}}}

        key_a = build_cache_key("routes", "compute", {"body": body_a})
        key_b = build_cache_key("routes", "compute", {"body": body_b})

        assert key_a == key_b
        assert key_a.startswith("routes:compute:body=")
        assert len(key_a.split("=", 1)[1]) == 64

    def test_different_bodies_get_different_keys(self) -> None:
        key_a = build_cache_key("routes", "compute", {"body": {"travelMode": "WALK"}})
        key_b = build_cache_key("routes", "compute", {"body": {"travelMode": "DRIVE"}})

        assert key_a != key_b

    def test_separator_characters_in_values_cannot_collide(self) -> None:
        smuggled = build_cache_key(
            "directions", "route", {"origin": "O", "destination": "D:language=en", "mode": "driving"}
        )
        genuine = build_cache_key(
            "directions", "route", {"origin": "O", "destination": "D", "language": "en", "mode": "driving"}
        )

        assert smuggled != genuine
        assert genuine == "directions:route:destination=D:language=en:mode=driving:origin=O"
        assert smuggled == "directions:route:destination=D%3Alanguage%3Den:mode=driving:origin=O"


@pytest.mark.asyncio
async def test_reference_data_is_fetched_once_per_ttl() -> None:
    clock = Mock(return_value=1000.0)
    cache = CacheService(CacheSettings(), local_store=InMemoryCacheStore(clock=clock))
    fetch = AsyncMock(return_value={"BusStopsResult": {"busstops": [{"name": "COM3"}]}})

    first = await cached_fetch(cache, "bus:busstops", 86400, fetch)
    clock.return_value = 1000.0 + 86399
    second = await cached_fetch(cache, "bus:busstops", 86400, fetch)

    assert first == second
    assert fetch.await_count == 1

    clock.return_value = 1000.0 + 86400
    await cached_fetch(cache, "bus:busstops", 86400, fetch)
    assert fetch.await_count == 2


@pytest.mark.asyncio
async def test_value_is_cached_before_result_is_returned() -> None:
    cache = CacheService(CacheSettings())

    await cached_fetch(cache, "k", 60, AsyncMock(return_value=[1, 2, 3]))

    assert await cache.get("k") == [1, 2, 3]


@pytest.mark.asyncio
async def test_upstream_error_propagates_and_is_not_cached() -> None:
    cache = CacheService(CacheSettings())
    error = UpstreamAppError(code="upstream_timeout", message="timeout", service="lta", reason="timeout")
    fetch = AsyncMock(side_effect=error)

    with pytest.raises(UpstreamAppError) as exc_info:
        await cached_fetch(cache, "k", 60, fetch)

    assert exc_info.value is error
    assert await cache.get("k") is None


@pytest.mark.asyncio
async def test_cancelled_caller_does_not_abort_fetch_or_cache_write() -> None:
    cache = CacheService(CacheSettings())
    started = asyncio.Event()
    release = asyncio.Event()

    async def slow_fetch() -> dict:
        started.set()
        await release.wait()
        return {"ok": True}

    caller = asyncio.ensure_future(cached_fetch(cache, "k", 60, slow_fetch))
    await started.wait()
    caller.cancel()
    with pytest.raises(asyncio.CancelledError):
        await caller

    release.set()
    for _ in range(10):
        await asyncio.sleep(0)

    assert await cache.get("k") == {"ok": True}


@pytest.mark.asyncio
async def test_value_with_separators_does_not_serve_another_request() -> None:
    cache = CacheService(CacheSettings())
    crafted = build_cache_key("directions", "route", {"origin": "O", "destination": "D:language=en"})
    await cached_fetch(cache, crafted, 60, AsyncMock(return_value={"routes": ["crafted"]}))

    genuine = build_cache_key("directions", "route", {"origin": "O", "destination": "D", "language": "en"})
    fetch = AsyncMock(return_value={"routes": ["genuine"]})

    assert await cached_fetch(cache, genuine, 60, fetch) == {"routes": ["genuine"]}
    fetch.assert_awaited_once()


@pytest.mark.asyncio
async def test_failure_after_caller_cancelled_is_logged_and_not_cached(
    caplog: pytest.LogCaptureFixture,
) -> None:
    cache = CacheService(CacheSettings())
    started = asyncio.Event()
    release = asyncio.Event()

    async def failing_fetch() -> dict:
        started.set()
        await release.wait()
        raise UpstreamAppError(code="upstream_timeout", message="timeout", service="lta", reason="timeout")

    caller = asyncio.ensure_future(cached_fetch(cache, "k", 60, failing_fetch))
    await started.wait()
    caller.cancel()
    with pytest.raises(asyncio.CancelledError):
        await caller

    with caplog.at_level(logging.DEBUG, logger="gateway.services.cache_aside"):
        release.set()
        for _ in range(10):
            await asyncio.sleep(0)

    failures = [r for r in caplog.records if r.getMessage() == "cache_aside.fetch_failed"]
    assert len(failures) == 1
    assert failures[0].error_type == "UpstreamAppError"
    assert await cache.get("k") is None

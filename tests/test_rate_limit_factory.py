"""Tests for backend selection and route-group isolation in the limiter factory."""

from unittest.mock import Mock

import pytest

from gateway.adapters.cache.redis_store import RedisCacheStore
from gateway.adapters.rate_limit.in_memory import InMemoryFixedWindowRateLimiter
from gateway.adapters.rate_limit.passthrough import PassThroughRateLimiter
from gateway.adapters.rate_limit.redis_window import RedisFixedWindowRateLimiter
from gateway.core.config import RateLimitSettings
from gateway.core.rate_limit import GLOBAL_ROUTE_GROUP, RateLimiterFactory


def test_disabled_limiting_builds_pass_through() -> None:
    factory = RateLimiterFactory(RateLimitSettings(enabled=False))

    assert factory.backend == "disabled"
    assert isinstance(factory.create_global(), PassThroughRateLimiter)


@pytest.mark.asyncio
async def test_disabled_limiting_admits_unbounded_requests() -> None:
    limiter = RateLimiterFactory(RateLimitSettings(enabled=False, max_requests=1)).create_global()

    for _ in range(500):
        assert (await limiter.check("1.2.3.4")).admitted is True


def test_no_shared_store_builds_in_memory() -> None:
    factory = RateLimiterFactory(RateLimitSettings())

    assert factory.backend == "memory"
    assert isinstance(factory.create("routes", 60_000, 30), InMemoryFixedWindowRateLimiter)


def test_shared_store_builds_redis_limiter(redis_store: RedisCacheStore) -> None:
    factory = RateLimiterFactory(RateLimitSettings(), redis_store)

    assert factory.backend == "redis"
    assert isinstance(factory.create("routes", 60_000, 30), RedisFixedWindowRateLimiter)


def test_create_all_includes_global_and_tiers() -> None:
    limiters = RateLimiterFactory(RateLimitSettings()).create_all()

    assert set(limiters) == {GLOBAL_ROUTE_GROUP, "routes", "directions", "places", "lta"}
    assert limiters["routes"].max_requests == 30
    assert limiters["lta"].max_requests == 800
    assert limiters[GLOBAL_ROUTE_GROUP].window_ms == 60_000


@pytest.mark.asyncio
async def test_exhausting_one_tier_leaves_another_untouched() -> None:
    clock = Mock(return_value=1000.0)
    limiters = RateLimiterFactory(RateLimitSettings(), clock=clock).create_all()

    for _ in range(30):
        assert (await limiters["routes"].check("1.2.3.4")).admitted is True
    assert (await limiters["routes"].check("1.2.3.4")).admitted is False

    for _ in range(800):
        assert (await limiters["lta"].check("1.2.3.4")).admitted is True
    assert (await limiters["lta"].check("1.2.3.4")).admitted is False

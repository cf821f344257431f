"""Tests for the Redis store adapter, run against an in-test async Redis double."""

from unittest.mock import MagicMock, Mock, patch

import pytest

from conftest import FakeRedis
from gateway.adapters.cache.redis_store import RedisCacheStore


@pytest.mark.asyncio
async def test_set_then_get(redis_store: RedisCacheStore) -> None:
    await redis_store.set("bus:busstops", '{"ok": true}', 60)

    assert await redis_store.get("bus:busstops") == '{"ok": true}'
    assert await redis_store.get("bus:missing") is None


@pytest.mark.asyncio
async def test_set_uses_seconds_expiry(fake_redis: FakeRedis, redis_store: RedisCacheStore) -> None:
    await redis_store.set("k", "v", 30)

    ttl_ms = fake_redis.pttl("k")
    assert 29_000 < ttl_ms <= 30_000


@pytest.mark.asyncio
async def test_delete_by_prefix_scans_and_deletes(redis_store: RedisCacheStore) -> None:
    await redis_store.set("places:details:place_id=a", "1", 60)
    await redis_store.set("places:details:place_id=b", "2", 60)
    await redis_store.set("directions:route:origin=x", "3", 60)

    removed = await redis_store.delete_by_prefix("places:*")

    assert removed == 2
    assert await redis_store.get("directions:route:origin=x") == "3"


@pytest.mark.asyncio
async def test_delete_by_prefix_without_matches_returns_zero(redis_store: RedisCacheStore) -> None:
    assert await redis_store.delete_by_prefix("nothing:*") == 0


@pytest.mark.asyncio
async def test_increment_window_counts_within_one_window() -> None:
    clock = Mock(return_value=1000.0)
    store = RedisCacheStore(FakeRedis(clock=clock))

    assert await store.increment_window("ratelimit:global:1.2.3.4", 60_000) == (1, 60_000)

    clock.return_value = 1030.0
    count, ttl_ms = await store.increment_window("ratelimit:global:1.2.3.4", 60_000)
    assert count == 2
    # expiry set by the first hit is kept
    assert ttl_ms == 30_000


@pytest.mark.asyncio
async def test_increment_window_starts_over_after_expiry() -> None:
    clock = Mock(return_value=1000.0)
    store = RedisCacheStore(FakeRedis(clock=clock))
    await store.increment_window("k", 1_000)
    await store.increment_window("k", 1_000)

    clock.return_value = 1001.0

    assert await store.increment_window("k", 1_000) == (1, 1_000)


@pytest.mark.asyncio
async def test_close_closes_client(fake_redis: FakeRedis, redis_store: RedisCacheStore) -> None:
    await redis_store.close()

    assert fake_redis.closed is True


def test_from_url_upgrades_to_tls_when_requested() -> None:
    client = MagicMock()
    with patch("gateway.adapters.cache.redis_store.redis.from_url", return_value=client) as from_url:
        RedisCacheStore.from_url("redis://cache.internal:6379/0", password="pw", tls=True, socket_timeout=2.0)

    url = from_url.call_args.args[0]
    kwargs = from_url.call_args.kwargs
    assert url == "rediss://cache.internal:6379/0"
    assert kwargs["password"] == "pw"
    assert kwargs["decode_responses"] is True
    assert kwargs["socket_timeout"] == 2.0
    client.register_script.assert_called_once()


def test_from_url_keeps_plain_url_without_tls() -> None:
    with patch("gateway.adapters.cache.redis_store.redis.from_url", return_value=MagicMock()) as from_url:
        RedisCacheStore.from_url("redis://localhost:6379")

    assert from_url.call_args.args[0] == "redis://localhost:6379"
    assert from_url.call_args.kwargs["password"] is None

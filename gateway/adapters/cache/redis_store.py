"""Redis-backed store shared by every gateway instance.

Besides plain get/set/delete this adapter exposes the one atomic primitive
the rate limiter needs: a windowed counter increment (see
``increment_window``). Errors from redis-py propagate to the caller.
"""

from __future__ import annotations

import logging

import redis.asyncio as redis

from gateway.adapters.cache.base import AbstractCacheStore

logger = logging.getLogger(__name__)


# INCR the counter; the first increment of a window attaches the window
# expiry. A counter found without an expiry (e.g. written by an old client)
# gets one too, so a key can never lock a client out forever.
# Returns {count, remaining_window_ms}.
INCREMENT_WINDOW_LUA = """
local count = redis.call('INCR', KEYS[1])
if count == 1 then
    redis.call('PEXPIRE', KEYS[1], ARGV[1])
end
local ttl = redis.call('PTTL', KEYS[1])
if ttl < 0 then
    redis.call('PEXPIRE', KEYS[1], ARGV[1])
    ttl = tonumber(ARGV[1])
end
return {count, ttl}
"""

_SCAN_BATCH = 500


class RedisCacheStore(AbstractCacheStore):
    """Thin async wrapper around a ``redis.asyncio.Redis`` client."""

    name = "redis"

    def __init__(self, client: redis.Redis) -> None:
        self._client = client
        self._increment_script = client.register_script(INCREMENT_WINDOW_LUA)

    @classmethod
    def from_url(
        cls,
        url: str,
        *,
        password: str | None = None,
        tls: bool = False,
        socket_timeout: float = 5.0,
    ) -> "RedisCacheStore":
        """Build the client eagerly; no network round trip happens here.

        Args:
            url: ``redis://`` or ``rediss://`` connection string.
            password: Password used when ``url`` does not carry one.
            tls: Force TLS by upgrading a ``redis://`` URL to ``rediss://``.
            socket_timeout: Connect and per-command socket timeout in seconds.

        Raises:
            ValueError: If the URL is malformed or uses an unknown scheme.
        """
        if tls and url.startswith("redis://"):
            url = "rediss://" + url[len("redis://"):]

        client = redis.from_url(
            url,
            password=password or None,
            decode_responses=True,
            socket_connect_timeout=socket_timeout,
            socket_timeout=socket_timeout,
            retry_on_timeout=True,
            health_check_interval=30,
        )
        return cls(client)

    @property
    def client(self) -> redis.Redis:
        return self._client

    async def ping(self) -> None:
        await self._client.ping()

    async def get(self, key: str) -> str | None:
        return await self._client.get(key)

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        await self._client.set(key, value, ex=ttl_seconds)

    async def delete(self, key: str) -> None:
        await self._client.delete(key)

    async def delete_by_prefix(self, pattern: str) -> int:
        # SCAN instead of KEYS so a large keyspace never blocks the server
        keys = [key async for key in self._client.scan_iter(match=pattern, count=_SCAN_BATCH)]
        if not keys:
            return 0
        deleted = await self._client.delete(*keys)
        logger.debug(
            "cache.redis.prefix_deleted",
            extra={"pattern": pattern, "count": len(keys)},
        )
        return int(deleted)

    async def increment_window(self, key: str, window_ms: int) -> tuple[int, int]:
        """Atomically count one hit in the fixed window stored at ``key``.

        Args:
            key: Counter key (one per route group and client).
            window_ms: Window length; applied as the key's expiry on the
                first increment of each window.

        Returns:
            Tuple of (count_after_increment, remaining_window_ms).
        """
        count, ttl_ms = await self._increment_script(keys=[key], args=[window_ms])
        return int(count), int(ttl_ms)

    async def close(self) -> None:
        await self._client.aclose()

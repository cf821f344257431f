"""Redis-backed fixed-window rate limiter.

Counters live in the shared store, so every gateway instance enforces the
same budget. One key per (route group, client) is incremented atomically;
its expiry, set on the first increment, is the window.

When the store call fails the limiter cannot know the real count. It logs
``rate_limit.backend_error`` at warning level and applies the configured
policy: fail-open (admit, the default) keeps the gateway usable during a
store outage at the cost of abuse protection; fail-closed rejects.
"""

from __future__ import annotations

import logging
import math
import time
from typing import Callable

from redis.exceptions import RedisError

from gateway.adapters.cache.redis_store import RedisCacheStore
from gateway.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult

logger = logging.getLogger(__name__)

KEY_PREFIX = "ratelimit"


class RedisFixedWindowRateLimiter(AbstractRateLimiter):
    """Fixed-window limiter counting in Redis."""

    def __init__(
        self,
        store: RedisCacheStore,
        *,
        route_group: str,
        window_ms: int,
        max_requests: int,
        fail_open: bool = True,
        clock: Callable[[], float] = time.time,
    ) -> None:
        super().__init__(route_group=route_group, window_ms=window_ms, max_requests=max_requests)
        self._store = store
        self._fail_open = fail_open
        self._clock = clock

    def key_for(self, client_id: str) -> str:
        return f"{KEY_PREFIX}:{self.route_group}:{client_id}"

    async def check(self, client_id: str) -> RateLimitResult:
        if not client_id:
            raise ValueError("client_id must be a non-empty string")

        now_ms = int(self._clock() * 1000)
        try:
            count, ttl_ms = await self._store.increment_window(self.key_for(client_id), self.window_ms)
        except (RedisError, OSError) as exc:
            logger.warning(
                "rate_limit.backend_error",
                extra={
                    "route_group": self.route_group,
                    "policy": "fail_open" if self._fail_open else "fail_closed",
                    "error_type": type(exc).__name__,
                    "error_msg": str(exc),
                },
            )
            reset_at = math.ceil((now_ms + self.window_ms) / 1000)
            if self._fail_open:
                return self._admitted(count=0, reset_at=reset_at, degraded=True)
            return self._rejected(reset_at=reset_at, degraded=True)

        reset_at = math.ceil((now_ms + max(ttl_ms, 0)) / 1000)
        if count <= self.max_requests:
            return self._admitted(count=count, reset_at=reset_at)
        return self._rejected(reset_at=reset_at)

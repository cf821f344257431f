"""Rate limiting wiring for FastAPI routes.

``RateLimiterFactory`` builds one limiter per route group, choosing the
backend once: pass-through when limiting is disabled, Redis when the cache
service kept a shared store, in process otherwise. ``enforce_rate_limit``
turns a route group into a FastAPI dependency.

Route groups:
- ``global`` guards every ``/api`` route.
- ``routes``, ``directions``, ``places`` and ``lta`` are stricter tiers
  stacked on top of the global gate for upstreams where one user action
  triggers many calls.
"""

from __future__ import annotations

import hashlib
import logging
import time
from typing import Awaitable, Callable

from fastapi import Request

from gateway.adapters.cache.redis_store import RedisCacheStore
from gateway.adapters.rate_limit.base import AbstractRateLimiter
from gateway.adapters.rate_limit.in_memory import InMemoryFixedWindowRateLimiter
from gateway.adapters.rate_limit.passthrough import PassThroughRateLimiter
from gateway.adapters.rate_limit.redis_window import RedisFixedWindowRateLimiter
from gateway.core.config import RateLimitSettings
from gateway.core.errors import RateLimitAppError

logger = logging.getLogger(__name__)

GLOBAL_ROUTE_GROUP = "global"


class RateLimiterFactory:
    """Builds fixed-window limiters that share one backend decision."""

    def __init__(
        self,
        rate_limit_settings: RateLimitSettings,
        shared_store: RedisCacheStore | None = None,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the factory.

        Args:
            rate_limit_settings: Global switch, global window and tiers.
            shared_store: Store for cross-instance counters; None keeps
                counters in process.
            clock: Time source returning UNIX time in seconds.
        """
        self._settings = rate_limit_settings
        self._shared_store = shared_store
        self._clock = clock

        if not rate_limit_settings.enabled:
            logger.warning("rate_limit.disabled")

    @property
    def backend(self) -> str:
        if not self._settings.enabled:
            return "disabled"
        return "redis" if self._shared_store is not None else "memory"

    def create(self, route_group: str, window_ms: int, max_requests: int) -> AbstractRateLimiter:
        """Build the limiter for one route group.

        Args:
            route_group: Identifier namespacing the counters.
            window_ms: Window length in milliseconds.
            max_requests: Requests admitted per client per window.

        Returns:
            AbstractRateLimiter for the selected backend.
        """
        if not self._settings.enabled:
            return PassThroughRateLimiter(
                route_group=route_group, window_ms=window_ms, max_requests=max_requests
            )

        if self._shared_store is not None:
            return RedisFixedWindowRateLimiter(
                self._shared_store,
                route_group=route_group,
                window_ms=window_ms,
                max_requests=max_requests,
                fail_open=self._settings.fail_open,
                clock=self._clock,
            )

        return InMemoryFixedWindowRateLimiter(
            route_group=route_group,
            window_ms=window_ms,
            max_requests=max_requests,
            clock=self._clock,
        )

    def create_global(self) -> AbstractRateLimiter:
        return self.create(GLOBAL_ROUTE_GROUP, self._settings.window_ms, self._settings.max_requests)

    def create_all(self) -> dict[str, AbstractRateLimiter]:
        """Return the global limiter plus every configured strict tier."""
        limiters = {GLOBAL_ROUTE_GROUP: self.create_global()}
        for route_group, (window_ms, max_requests) in self._settings.tiers().items():
            limiters[route_group] = self.create(route_group, window_ms, max_requests)

        logger.info(
            "rate_limit.configured",
            extra={
                "backend": self.backend,
                "route_groups": sorted(limiters),
            },
        )
        return limiters


def client_address(request: Request, *, trust_forwarded_for: bool = False) -> str:
    """Return the address used to identify the caller.

    Args:
        request: FastAPI request.
        trust_forwarded_for: Use the first ``X-Forwarded-For`` hop (only
            safe behind a proxy that overwrites the header).
    """
    if trust_forwarded_for:
        forwarded = request.headers.get("x-forwarded-for", "")
        first_hop = forwarded.split(",", 1)[0].strip()
        if first_hop:
            return first_hop

    return request.client.host if request.client else "unknown"


def _hash_client(client_id: str) -> str:
    """Hash the client address for logging."""
    return hashlib.sha256(client_id.encode()).hexdigest()[:16]


def enforce_rate_limit(route_group: str) -> Callable[[Request], Awaitable[None]]:
    """Build a FastAPI dependency gating requests through ``route_group``.

    The limiter itself is looked up on ``app.state.rate_limiters`` at request
    time; it is created during application startup.

    Usage:
        router = APIRouter(dependencies=[Depends(enforce_rate_limit("routes"))])

    Raises:
        RateLimitAppError: From the dependency when the client's window for
            this route group is exhausted.
    """

    async def _dependency(request: Request) -> None:
        limiter: AbstractRateLimiter = request.app.state.rate_limiters[route_group]
        rl_settings: RateLimitSettings = request.app.state.settings.rate_limit
        client_id = client_address(request, trust_forwarded_for=rl_settings.trust_forwarded_for)

        result = await limiter.check(client_id)
        if result.admitted:
            return

        retry_after = result.retry_after_seconds or limiter.retry_after_seconds
        logger.warning(
            "rate_limit.exceeded",
            extra={
                "route_group": route_group,
                "client_hash": _hash_client(client_id),
                "path": request.url.path,
                "limit": result.limit,
                "window_ms": limiter.window_ms,
                "retry_after_s": retry_after,
                "degraded": result.degraded,
            },
        )

        if route_group == GLOBAL_ROUTE_GROUP:
            message = "Too many requests from this IP, please try again later."
        else:
            message = (
                f"Rate limit exceeded for this endpoint. Max {limiter.max_requests} "
                f"requests per {limiter.retry_after_seconds} seconds."
            )

        raise RateLimitAppError(
            code="rate_limit_exceeded",
            message=message,
            details={
                "route_group": route_group,
                "limit": result.limit,
                "retry_after": retry_after,
            },
            retry_after_seconds=retry_after,
            limit=result.limit,
            remaining=result.remaining,
            reset_at=result.reset_at,
        )

    _dependency.__name__ = f"enforce_rate_limit_{route_group}"
    return _dependency

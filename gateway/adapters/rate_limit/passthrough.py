"""Limiter used when rate limiting is switched off."""

from __future__ import annotations

from gateway.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult


class PassThroughRateLimiter(AbstractRateLimiter):
    """Admits everything and keeps no state."""

    async def check(self, client_id: str) -> RateLimitResult:
        return RateLimitResult(
            admitted=True,
            limit=self.max_requests,
            remaining=self.max_requests,
            reset_at=0,
            retry_after_seconds=None,
        )

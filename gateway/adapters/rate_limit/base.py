"""Rate limiter interfaces.

Routes depend on this abstraction, not on a storage backend, so the same
gate works on Redis or in process.
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class RateLimitResult:
    """Outcome of one rate limit check.

    Attributes:
        admitted: Whether the request may proceed.
        limit: Max requests per window.
        remaining: Requests left in the current window (0 when blocked).
        reset_at: UNIX epoch seconds when the current window ends.
        retry_after_seconds: Wait hint when blocked, None when admitted.
        degraded: True when the decision was made without consulting the
            counter store (store error under the fail-open/closed policy).
    """

    admitted: bool
    limit: int
    remaining: int
    reset_at: int
    retry_after_seconds: int | None
    degraded: bool = False


class AbstractRateLimiter(ABC):
    """Fixed-window limiter bound to one route group."""

    def __init__(self, *, route_group: str, window_ms: int, max_requests: int) -> None:
        """Validate and store the window configuration.

        Raises:
            ValueError: If max_requests or window_ms is below 1.
        """
        if max_requests < 1:
            raise ValueError("max_requests must be >= 1")
        if window_ms < 1:
            raise ValueError("window_ms must be >= 1")
        self.route_group = route_group
        self.window_ms = window_ms
        self.max_requests = max_requests

    @property
    def retry_after_seconds(self) -> int:
        """Wait hint sent with every rejection: the window length, rounded up."""
        return math.ceil(self.window_ms / 1000)

    def _admitted(self, *, count: int, reset_at: int, degraded: bool = False) -> RateLimitResult:
        return RateLimitResult(
            admitted=True,
            limit=self.max_requests,
            remaining=max(0, self.max_requests - count),
            reset_at=reset_at,
            retry_after_seconds=None,
            degraded=degraded,
        )

    def _rejected(self, *, reset_at: int, degraded: bool = False) -> RateLimitResult:
        return RateLimitResult(
            admitted=False,
            limit=self.max_requests,
            remaining=0,
            reset_at=reset_at,
            retry_after_seconds=self.retry_after_seconds,
            degraded=degraded,
        )

    @abstractmethod
    async def check(self, client_id: str) -> RateLimitResult:
        """Count one request for ``client_id`` and decide whether to admit it.

        Args:
            client_id: Client identity within this route group (an address).

        Returns:
            RateLimitResult describing the decision.
        """
        raise NotImplementedError

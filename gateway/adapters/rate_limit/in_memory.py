"""In-memory fixed-window rate limiter.

Notes:
- Per-process only: running multiple workers or instances multiplies the
  effective limit. Used when no shared store is available.
- Thread-safe: uses a lock around shared state.
"""

from __future__ import annotations

import math
import threading
import time
from dataclasses import dataclass
from typing import Callable

from gateway.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult

# Above this many tracked clients, ended windows are swept on the next check
_SWEEP_THRESHOLD = 10_000


@dataclass
class _WindowState:
    expires_at_ms: int
    count: int


class InMemoryFixedWindowRateLimiter(AbstractRateLimiter):
    """Fixed window per client, opened by the client's first request.

    A window lasts ``window_ms`` from the request that opened it. Every
    attempt is counted, including rejected ones, and nothing is decremented;
    the count only resets when the window expires. Expired windows are
    detected lazily on the next request from the same client.
    """

    def __init__(
        self,
        *,
        route_group: str,
        window_ms: int,
        max_requests: int,
        clock: Callable[[], float] = time.time,
        sweep_threshold: int = _SWEEP_THRESHOLD,
    ) -> None:
        """Initialize the limiter.

        Args:
            route_group: Name of the route group this limiter guards.
            window_ms: Window length in milliseconds.
            max_requests: Requests admitted per window.
            clock: Time source returning UNIX time in seconds.
            sweep_threshold: Tracked-client count that triggers a sweep of
                ended windows.
        """
        super().__init__(route_group=route_group, window_ms=window_ms, max_requests=max_requests)
        self._clock = clock
        self._sweep_threshold = sweep_threshold
        self._lock = threading.RLock()
        self._state_by_client: dict[str, _WindowState] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._state_by_client)

    def consume(self, client_id: str) -> RateLimitResult:
        """Count one request and decide synchronously.

        Raises:
            ValueError: If client_id is empty.
        """
        if not client_id:
            raise ValueError("client_id must be a non-empty string")

        now_ms = int(self._clock() * 1000)
        with self._lock:
            if len(self._state_by_client) >= self._sweep_threshold:
                self._sweep_locked(now_ms)

            state = self._state_by_client.get(client_id)
            if state is None or state.expires_at_ms <= now_ms:
                state = _WindowState(expires_at_ms=now_ms + self.window_ms, count=0)
                self._state_by_client[client_id] = state
            state.count += 1
            count = state.count
            reset_at = math.ceil(state.expires_at_ms / 1000)

        if count <= self.max_requests:
            return self._admitted(count=count, reset_at=reset_at)
        return self._rejected(reset_at=reset_at)

    async def check(self, client_id: str) -> RateLimitResult:
        return self.consume(client_id)

    def _sweep_locked(self, now_ms: int) -> None:
        expired = [k for k, s in self._state_by_client.items() if s.expires_at_ms <= now_ms]
        for key in expired:
            del self._state_by_client[key]

"""In-process TTL store used when no shared store is available.

Notes:
- Per-process only: every worker keeps its own copy.
- Thread-safe: a lock guards the mapping, so handlers running on the event
  loop and in threadpool workers can share one instance.
- Expiry is lazy: an expired entry is dropped when it is next read (or
  swept by a prefix delete); there is no background reaper.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable

from gateway.adapters.cache.base import AbstractCacheStore

logger = logging.getLogger(__name__)


@dataclass
class _Entry:
    value: str
    expires_at: float


class InMemoryCacheStore(AbstractCacheStore):
    """Dictionary-backed store with per-entry expiry."""

    name = "memory"

    def __init__(self, *, clock: Callable[[], float] = time.time) -> None:
        """Initialize the store.

        Args:
            clock: Time source returning UNIX time in seconds.
        """
        self._clock = clock
        self._lock = threading.RLock()
        self._entries: dict[str, _Entry] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return f"InMemoryCacheStore(entries={len(self)})"

    async def get(self, key: str) -> str | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.expires_at <= self._clock():
                del self._entries[key]
                return None
            return entry.value

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be > 0")
        with self._lock:
            self._entries[key] = _Entry(value=value, expires_at=self._clock() + ttl_seconds)

    async def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    async def delete_by_prefix(self, pattern: str) -> int:
        # No key index: scan every key. Fine for a few thousand entries.
        prefix = pattern.split("*", 1)[0]
        with self._lock:
            doomed = [k for k in self._entries if k.startswith(prefix)]
            for key in doomed:
                del self._entries[key]
        logger.debug(
            "cache.memory.prefix_deleted",
            extra={"pattern": pattern, "count": len(doomed)},
        )
        return len(doomed)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    async def close(self) -> None:
        self.clear()

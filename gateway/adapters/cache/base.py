"""Cache store interface.

Stores deal in already-serialized strings; JSON encoding and the error
swallowing contract live in the cache service above them.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class AbstractCacheStore(ABC):
    """Interface for TTL-capable key-value stores."""

    name: str = "abstract"

    @abstractmethod
    async def get(self, key: str) -> str | None:
        """Return the stored value, or None when absent or expired."""
        raise NotImplementedError

    @abstractmethod
    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        """Store ``value`` under ``key`` for ``ttl_seconds`` (must be > 0)."""
        raise NotImplementedError

    @abstractmethod
    async def delete(self, key: str) -> None:
        raise NotImplementedError

    @abstractmethod
    async def delete_by_prefix(self, pattern: str) -> int:
        """Delete every key matching a glob-style prefix pattern (``bus:*``).

        Returns:
            Number of keys removed.
        """
        raise NotImplementedError

    @abstractmethod
    async def close(self) -> None:
        raise NotImplementedError

"""Response cache shared by every proxied endpoint.

The service hides which backend is in use (shared Redis store or the
in-process fallback) and guarantees that a cache problem never fails a
request: every read error is a miss, every write or delete error is a
logged no-op.

Backend choice is made once. If Redis is configured, its client is built in
the constructor and probed once by ``start()``; if either step fails the
service uses the in-process store for the rest of the process lifetime,
even if Redis later becomes reachable again.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

from gateway.adapters.cache.base import AbstractCacheStore
from gateway.adapters.cache.memory import InMemoryCacheStore
from gateway.adapters.cache.redis_store import RedisCacheStore
from gateway.core.config import CacheSettings

logger = logging.getLogger(__name__)


class CacheService:
    """JSON cache over a Redis store with an in-process fallback.

    Attributes:
        backend: Name of the active backend, ``"redis"`` or ``"memory"``.
    """

    def __init__(
        self,
        cache_settings: CacheSettings,
        *,
        shared_store: RedisCacheStore | None = None,
        local_store: InMemoryCacheStore | None = None,
    ) -> None:
        """Select and construct the backend.

        Args:
            cache_settings: Cache configuration.
            shared_store: Prebuilt shared store; when omitted it is built from
                ``cache_settings.redis_url`` (if set).
            local_store: Prebuilt fallback store (mainly for tests).
        """
        self._settings = cache_settings
        self._local = local_store if local_store is not None else InMemoryCacheStore()
        self._shared: RedisCacheStore | None = shared_store

        if self._shared is None and cache_settings.redis_url:
            try:
                self._shared = RedisCacheStore.from_url(
                    cache_settings.redis_url,
                    password=cache_settings.redis_password,
                    tls=cache_settings.redis_tls,
                    socket_timeout=cache_settings.redis_socket_timeout_seconds,
                )
            except Exception as exc:
                logger.warning(
                    "cache.backend.redis_init_failed",
                    extra={"error_type": type(exc).__name__, "error_msg": str(exc)},
                )
                self._shared = None
        elif self._shared is None:
            logger.warning(
                "cache.backend.memory_only",
                extra={"reason": "redis_url_not_configured"},
            )

    @property
    def enabled(self) -> bool:
        return self._settings.enabled

    @property
    def backend(self) -> str:
        return "redis" if self._shared is not None else "memory"

    @property
    def shared_store(self) -> RedisCacheStore | None:
        """The shared store, or None once the service runs on the fallback."""
        return self._shared

    @property
    def _store(self) -> AbstractCacheStore:
        return self._shared if self._shared is not None else self._local

    async def start(self) -> None:
        """Probe the shared store once; fall back permanently if unreachable."""

        if self._shared is None:
            logger.info("cache.started", extra={"backend": self.backend})
            return

        try:
            await asyncio.wait_for(
                self._shared.ping(),
                timeout=self._settings.redis_socket_timeout_seconds,
            )
        except Exception as exc:
            logger.warning(
                "cache.backend.redis_unreachable",
                extra={
                    "error_type": type(exc).__name__,
                    "error_msg": str(exc),
                    "fallback": "memory",
                },
            )
            shared, self._shared = self._shared, None
            await self._close_shared(shared)

        logger.info("cache.started", extra={"backend": self.backend})

    async def get(self, key: str) -> Any | None:
        """Return the cached value for ``key``, or None.

        None covers: cache disabled, miss, expired entry, undecodable payload
        and any backend error.
        """

        if not self._settings.enabled:
            return None

        try:
            raw = await self._store.get(key)
            if raw is None:
                logger.debug("cache.miss", extra={"cache_key": key, "backend": self.backend})
                return None
            value = json.loads(raw)
        except Exception as exc:
            logger.error(
                "cache.get_failed",
                extra={
                    "cache_key": key,
                    "backend": self.backend,
                    "error_type": type(exc).__name__,
                    "error_msg": str(exc),
                },
            )
            return None

        logger.debug("cache.hit", extra={"cache_key": key, "backend": self.backend})
        return value

    async def set(self, key: str, value: Any, ttl_seconds: int | None = None) -> None:
        """Serialize ``value`` and store it.

        Args:
            key: Cache key.
            value: JSON-serializable value.
            ttl_seconds: Lifetime in seconds; ``None`` uses the configured
                default. ``0`` stores nothing.
        """

        if not self._settings.enabled:
            return

        ttl = self._settings.default_ttl_seconds if ttl_seconds is None else ttl_seconds
        if ttl < 0:
            logger.warning("cache.set_rejected", extra={"cache_key": key, "ttl_s": ttl})
            return
        if ttl == 0:
            return

        try:
            serialized = json.dumps(value)
            await self._store.set(key, serialized, ttl)
        except Exception as exc:
            logger.error(
                "cache.set_failed",
                extra={
                    "cache_key": key,
                    "backend": self.backend,
                    "error_type": type(exc).__name__,
                    "error_msg": str(exc),
                },
            )
            return

        logger.debug(
            "cache.set",
            extra={"cache_key": key, "backend": self.backend, "ttl_s": ttl},
        )

    async def delete(self, key: str) -> None:
        try:
            await self._store.delete(key)
        except Exception as exc:
            logger.error(
                "cache.delete_failed",
                extra={"cache_key": key, "backend": self.backend, "error_msg": str(exc)},
            )
            return
        logger.debug("cache.deleted", extra={"cache_key": key, "backend": self.backend})

    async def delete_by_prefix(self, pattern: str) -> None:
        """Best-effort removal of every key matching ``pattern`` (e.g. ``bus:*``)."""

        try:
            count = await self._store.delete_by_prefix(pattern)
        except Exception as exc:
            logger.error(
                "cache.delete_failed",
                extra={"pattern": pattern, "backend": self.backend, "error_msg": str(exc)},
            )
            return
        logger.debug(
            "cache.deleted",
            extra={"pattern": pattern, "backend": self.backend, "count": count},
        )

    async def close(self) -> None:
        """Release the shared connection (bounded wait) and empty the local store."""

        if self._shared is not None:
            await self._close_shared(self._shared)
        self._local.clear()

    async def _close_shared(self, store: RedisCacheStore) -> None:
        try:
            await asyncio.wait_for(store.close(), timeout=self._settings.close_timeout_seconds)
        except Exception as exc:
            logger.warning(
                "cache.close_failed",
                extra={"error_type": type(exc).__name__, "error_msg": str(exc)},
            )
            return
        logger.info("cache.closed", extra={"backend": "redis"})

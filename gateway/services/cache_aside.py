"""Cache-aside helpers used by every proxy handler.

A handler builds a canonical key for the upstream call it is about to make,
then hands the call to ``cached_fetch``: a hit is answered from the cache
without touching the upstream, a miss calls the upstream and stores the
result before the response is produced.
"""

from __future__ import annotations

import asyncio
import hashlib
import json
import logging
from typing import Any, Awaitable, Callable, Mapping, TypeVar
from urllib.parse import quote

from gateway.services.cache_service import CacheService

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _canonical_json(value: Any) -> str:
    return json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def _render(value: Any) -> str:
    if isinstance(value, (Mapping, list, tuple)):
        return hashlib.sha256(_canonical_json(value).encode("utf-8")).hexdigest()
    if isinstance(value, bool):
        return "true" if value else "false"
    return quote(str(value), safe="")


def build_cache_key(
    namespace: str,
    operation: str,
    params: Mapping[str, Any] | None = None,
) -> str:
    """Build a canonical cache key.

    Parameters that are None or empty strings are dropped and the rest are
    sorted by name, so the same request always maps to the same key whatever
    order the client sent its parameters in. Nested values (request bodies)
    are reduced to the SHA-256 of their canonical JSON. Names and scalar
    values are percent-encoded, so a value containing ``:`` or ``=`` can
    never produce the key of a different request.

    Example:
        >>> build_cache_key("lta", "busarrival", {"ServiceNo": "95", "BusStopCode": "16991"})
        'lta:busarrival:BusStopCode=16991:ServiceNo=95'
    """
    parts = [namespace, operation]
    for name in sorted(params or {}):
        value = params[name]
        if value is None or value == "":
            continue
        parts.append(f"{quote(str(name), safe='')}={_render(value)}")
    return ":".join(parts)


async def cached_fetch(
    cache: CacheService,
    key: str,
    ttl_seconds: int,
    fetch: Callable[[], Awaitable[T]],
) -> T:
    """Return the cached value for ``key`` or fetch, store and return it.

    The upstream call and the cache write run in one task shielded from
    cancellation: a client disconnecting mid-request does not abort an
    upstream call that is already in flight, and its result still lands in
    the cache. Upstream errors propagate unchanged and nothing is stored.
    """
    cached = await cache.get(key)
    if cached is not None:
        return cached

    async def _fetch_and_store() -> T:
        value = await fetch()
        await cache.set(key, value, ttl_seconds)
        return value

    task = asyncio.ensure_future(_fetch_and_store())
    task.add_done_callback(_consume_exception)
    return await asyncio.shield(task)


def _consume_exception(task: asyncio.Future) -> None:
    # The caller may have been cancelled; the shielded task still finishes alone
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.debug(
            "cache_aside.fetch_failed",
            extra={"error_type": type(exc).__name__, "error_msg": str(exc)},
        )

"""Request-scoped accessors for objects built during application startup."""

from __future__ import annotations

from fastapi import Request

from gateway.adapters.upstream import UpstreamClients
from gateway.services.cache_service import CacheService


def get_cache(request: Request) -> CacheService:
    return request.app.state.cache


def get_upstreams(request: Request) -> UpstreamClients:
    return request.app.state.upstreams

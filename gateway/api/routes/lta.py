"""Public transit open-data endpoints (``/api/lta``)."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query

from gateway.adapters.upstream import UpstreamClients
from gateway.api.dependencies import get_cache, get_upstreams
from gateway.core.rate_limit import enforce_rate_limit
from gateway.services.cache_aside import build_cache_key, cached_fetch
from gateway.services.cache_service import CacheService

router = APIRouter(
    prefix="/lta",
    tags=["Public transit"],
    dependencies=[Depends(enforce_rate_limit("lta"))],
)

TTL_BUS_STOPS = 86400
TTL_BUS_ROUTES = 86400
TTL_BUS_ARRIVAL = 10


@router.get("/busstops")
async def bus_stops(
    skip: int = Query(0, ge=0, description="Records to skip; pages hold 500 stops"),
    cache: CacheService = Depends(get_cache),
    upstreams: UpstreamClients = Depends(get_upstreams),
) -> Any:
    key = build_cache_key("lta", "busstops", {"skip": skip})
    return await cached_fetch(cache, key, TTL_BUS_STOPS, lambda: upstreams.lta.bus_stops(skip))


@router.get("/busroutes")
async def bus_routes(
    serviceNo: str | None = Query(None, description="Bus service number, e.g. 95"),
    direction: str | None = Query(None, description="1 or 2"),
    cache: CacheService = Depends(get_cache),
    upstreams: UpstreamClients = Depends(get_upstreams),
) -> Any:
    key = build_cache_key("lta", "busroutes", {"serviceNo": serviceNo, "direction": direction})
    return await cached_fetch(
        cache, key, TTL_BUS_ROUTES, lambda: upstreams.lta.bus_routes(serviceNo, direction)
    )


@router.get("/busarrival")
async def bus_arrival(
    busStopCode: str = Query(..., min_length=1, description="Five-digit bus stop code"),
    serviceNo: str | None = Query(None),
    cache: CacheService = Depends(get_cache),
    upstreams: UpstreamClients = Depends(get_upstreams),
) -> Any:
    """Real-time arrival estimates at one stop, optionally for one service."""
    key = build_cache_key("lta", "busarrival", {"busStopCode": busStopCode, "serviceNo": serviceNo})
    return await cached_fetch(
        cache, key, TTL_BUS_ARRIVAL, lambda: upstreams.lta.bus_arrival(busStopCode, serviceNo)
    )

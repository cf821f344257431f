"""Campus shuttle endpoints (``/api/bus``).

Each endpoint proxies one NextBus call through the response cache. TTLs
follow how fast the underlying data changes: stop and route metadata is
cached for a day, live arrival and location data for a few seconds.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query

from gateway.adapters.upstream import UpstreamClients
from gateway.api.dependencies import get_cache, get_upstreams
from gateway.services.cache_aside import build_cache_key, cached_fetch
from gateway.services.cache_service import CacheService

router = APIRouter(prefix="/bus", tags=["Campus shuttle"])

TTL_STATIC = 86400
TTL_SEMI_STATIC = 3600
TTL_LIVE = 5
TTL_VERY_LIVE = 2


@router.get("/publicity")
async def publicity(
    cache: CacheService = Depends(get_cache),
    upstreams: UpstreamClients = Depends(get_upstreams),
) -> Any:
    return await cached_fetch(
        cache, build_cache_key("bus", "publicity"), TTL_SEMI_STATIC, upstreams.nextbus.publicity
    )


@router.get("/busstops")
async def bus_stops(
    cache: CacheService = Depends(get_cache),
    upstreams: UpstreamClients = Depends(get_upstreams),
) -> Any:
    """All shuttle stops with coordinates."""
    return await cached_fetch(
        cache, build_cache_key("bus", "busstops"), TTL_STATIC, upstreams.nextbus.bus_stops
    )


@router.get("/pickuppoint")
async def pickup_points(
    route_code: str = Query(..., min_length=1, description="Shuttle route code, e.g. A1"),
    cache: CacheService = Depends(get_cache),
    upstreams: UpstreamClients = Depends(get_upstreams),
) -> Any:
    key = build_cache_key("bus", "pickuppoint", {"route_code": route_code})
    return await cached_fetch(
        cache, key, TTL_STATIC, lambda: upstreams.nextbus.pickup_points(route_code)
    )


@router.get("/shuttleservice")
async def shuttle_service(
    busstopname: str = Query(..., min_length=1, description="Stop name as returned by /busstops"),
    cache: CacheService = Depends(get_cache),
    upstreams: UpstreamClients = Depends(get_upstreams),
) -> Any:
    """Live arrival estimates for every shuttle serving a stop."""
    key = build_cache_key("bus", "shuttleservice", {"busstopname": busstopname})
    return await cached_fetch(
        cache, key, TTL_LIVE, lambda: upstreams.nextbus.shuttle_service(busstopname)
    )


@router.get("/activebus")
async def active_buses(
    route_code: str = Query(..., min_length=1),
    cache: CacheService = Depends(get_cache),
    upstreams: UpstreamClients = Depends(get_upstreams),
) -> Any:
    key = build_cache_key("bus", "activebus", {"route_code": route_code})
    return await cached_fetch(
        cache, key, TTL_LIVE, lambda: upstreams.nextbus.active_buses(route_code)
    )


@router.get("/buslocation")
async def bus_location(
    veh_plate: str = Query(..., min_length=1, description="Vehicle plate number"),
    cache: CacheService = Depends(get_cache),
    upstreams: UpstreamClients = Depends(get_upstreams),
) -> Any:
    key = build_cache_key("bus", "buslocation", {"veh_plate": veh_plate})
    return await cached_fetch(
        cache, key, TTL_VERY_LIVE, lambda: upstreams.nextbus.bus_location(veh_plate)
    )


@router.get("/routeminmaxtime")
async def route_min_max_time(
    route_code: str = Query(..., min_length=1),
    cache: CacheService = Depends(get_cache),
    upstreams: UpstreamClients = Depends(get_upstreams),
) -> Any:
    key = build_cache_key("bus", "routeminmaxtime", {"route_code": route_code})
    return await cached_fetch(
        cache, key, TTL_SEMI_STATIC, lambda: upstreams.nextbus.route_min_max_time(route_code)
    )


@router.get("/servicedescription")
async def service_description(
    cache: CacheService = Depends(get_cache),
    upstreams: UpstreamClients = Depends(get_upstreams),
) -> Any:
    return await cached_fetch(
        cache,
        build_cache_key("bus", "servicedescription"),
        TTL_STATIC,
        upstreams.nextbus.service_description,
    )


@router.get("/announcements")
async def announcements(
    cache: CacheService = Depends(get_cache),
    upstreams: UpstreamClients = Depends(get_upstreams),
) -> Any:
    return await cached_fetch(
        cache, build_cache_key("bus", "announcements"), TTL_SEMI_STATIC, upstreams.nextbus.announcements
    )


@router.get("/tickertapes")
async def ticker_tapes(
    cache: CacheService = Depends(get_cache),
    upstreams: UpstreamClients = Depends(get_upstreams),
) -> Any:
    return await cached_fetch(
        cache, build_cache_key("bus", "tickertapes"), TTL_SEMI_STATIC, upstreams.nextbus.ticker_tapes
    )


@router.get("/checkpoint")
async def checkpoints(
    route_code: str = Query(..., min_length=1),
    cache: CacheService = Depends(get_cache),
    upstreams: UpstreamClients = Depends(get_upstreams),
) -> Any:
    """Polyline checkpoints describing a route's path."""
    key = build_cache_key("bus", "checkpoint", {"route_code": route_code})
    return await cached_fetch(
        cache, key, TTL_STATIC, lambda: upstreams.nextbus.checkpoints(route_code)
    )

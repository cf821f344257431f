"""Directions endpoint (``/api/google/directions``)."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query

from gateway.adapters.upstream import UpstreamClients
from gateway.api.dependencies import get_cache, get_upstreams
from gateway.core.rate_limit import enforce_rate_limit
from gateway.services.cache_aside import build_cache_key, cached_fetch
from gateway.services.cache_service import CacheService

router = APIRouter(
    prefix="/google/directions",
    tags=["Directions"],
    dependencies=[Depends(enforce_rate_limit("directions"))],
)

TTL_DIRECTIONS = 300


@router.get("")
async def directions(
    origin: str = Query(..., min_length=1, description="'lat,lng' or an address"),
    destination: str = Query(..., min_length=1),
    mode: str = Query("driving", description="driving, walking, bicycling or transit"),
    departure_time: str | None = Query(None, description="Seconds since epoch or 'now'"),
    arrival_time: str | None = Query(None),
    alternatives: bool = Query(False),
    avoid: str | None = Query(None, description="tolls|highways|ferries"),
    units: str | None = Query(None),
    region: str | None = Query(None),
    language: str | None = Query(None),
    cache: CacheService = Depends(get_cache),
    upstreams: UpstreamClients = Depends(get_upstreams),
) -> Any:
    params = {
        "origin": origin,
        "destination": destination,
        "mode": mode,
        "departure_time": departure_time,
        "arrival_time": arrival_time,
        "alternatives": "true" if alternatives else None,
        "avoid": avoid,
        "units": units,
        "region": region,
        "language": language,
    }
    key = build_cache_key("directions", "route", params)
    return await cached_fetch(
        cache, key, TTL_DIRECTIONS, lambda: upstreams.directions.directions(params)
    )

"""Place search endpoints (``/api/google/places``)."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query

from gateway.adapters.upstream import UpstreamClients
from gateway.api.dependencies import get_cache, get_upstreams
from gateway.core.rate_limit import enforce_rate_limit
from gateway.services.cache_aside import build_cache_key, cached_fetch
from gateway.services.cache_service import CacheService

router = APIRouter(
    prefix="/google/places",
    tags=["Places"],
    dependencies=[Depends(enforce_rate_limit("places"))],
)

TTL_AUTOCOMPLETE = 300
TTL_DETAILS = 3600
TTL_FIND_PLACE = 3600


@router.get("/autocomplete")
async def autocomplete(
    input: str = Query(..., min_length=1, description="Text typed so far"),
    sessiontoken: str | None = Query(None),
    location: str | None = Query(None, description="Bias point as 'lat,lng'"),
    radius: int | None = Query(None, ge=1, description="Bias radius in meters"),
    cache: CacheService = Depends(get_cache),
    upstreams: UpstreamClients = Depends(get_upstreams),
) -> Any:
    # The session token only groups billing; it does not change results.
    key = build_cache_key(
        "places", "autocomplete", {"input": input, "location": location, "radius": radius}
    )
    return await cached_fetch(
        cache,
        key,
        TTL_AUTOCOMPLETE,
        lambda: upstreams.places.autocomplete(
            input, session_token=sessiontoken, location=location, radius=radius
        ),
    )


@router.get("/details")
async def details(
    place_id: str = Query(..., min_length=1),
    fields: str | None = Query(None, description="Comma-separated response fields"),
    cache: CacheService = Depends(get_cache),
    upstreams: UpstreamClients = Depends(get_upstreams),
) -> Any:
    key = build_cache_key("places", "details", {"place_id": place_id, "fields": fields})
    return await cached_fetch(
        cache, key, TTL_DETAILS, lambda: upstreams.places.details(place_id, fields=fields)
    )


@router.get("/findplace")
async def find_place(
    input: str = Query(..., min_length=1),
    inputtype: str = Query("textquery", description="'textquery' or 'phonenumber'"),
    fields: str | None = Query(None),
    locationbias: str | None = Query(None),
    cache: CacheService = Depends(get_cache),
    upstreams: UpstreamClients = Depends(get_upstreams),
) -> Any:
    key = build_cache_key(
        "places",
        "findplace",
        {"input": input, "inputtype": inputtype, "fields": fields, "locationbias": locationbias},
    )
    return await cached_fetch(
        cache,
        key,
        TTL_FIND_PLACE,
        lambda: upstreams.places.find_place(
            input, input_type=inputtype, fields=fields, location_bias=locationbias
        ),
    )

"""Route computation endpoint (``/api/routes``)."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends

from gateway.adapters.upstream import UpstreamClients
from gateway.adapters.upstream.google import DEFAULT_ROUTES_FIELD_MASK
from gateway.api.dependencies import get_cache, get_upstreams
from gateway.core.rate_limit import enforce_rate_limit
from gateway.schemas.routes import ComputeRoutesRequest
from gateway.services.cache_aside import build_cache_key, cached_fetch
from gateway.services.cache_service import CacheService

router = APIRouter(
    prefix="/routes",
    tags=["Routing"],
    dependencies=[Depends(enforce_rate_limit("routes"))],
)

TTL_COMPUTE_ROUTES = 300


@router.post("/compute")
async def compute_routes(
    payload: ComputeRoutesRequest,
    cache: CacheService = Depends(get_cache),
    upstreams: UpstreamClients = Depends(get_upstreams),
) -> Any:
    """Compute routes between two waypoints.

    The body is forwarded as-is (minus ``fieldMask``). Identical bodies share
    one cache entry regardless of key order.
    """
    body = payload.upstream_body()
    field_mask = payload.fieldMask or DEFAULT_ROUTES_FIELD_MASK
    key = build_cache_key("routes", "compute", {"body": body, "fieldMask": field_mask})
    return await cached_fetch(
        cache,
        key,
        TTL_COMPUTE_ROUTES,
        lambda: upstreams.routes.compute_routes(body, field_mask),
    )

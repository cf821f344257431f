from __future__ import annotations

import time
from datetime import datetime, timezone

from fastapi import APIRouter, Request

from gateway.schemas.health import HealthResponse

router = APIRouter(tags=["Health"])

_STARTED_AT = time.monotonic()


@router.get("/health", response_model=HealthResponse)
def health_check(request: Request) -> HealthResponse:
    """Health check endpoint.

    Reports liveness and which cache backend the process settled on. Used by
    load balancers and monitoring systems; not rate limited.
    """

    cache = getattr(request.app.state, "cache", None)
    return HealthResponse(
        status="ok",
        timestamp=datetime.now(timezone.utc).isoformat(),
        uptime_seconds=round(time.monotonic() - _STARTED_AT, 3),
        environment=request.app.state.settings.app.environment,
        cache_backend=cache.backend if cache is not None else "memory",
    )

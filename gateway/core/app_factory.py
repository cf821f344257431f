"""Application factory for FastAPI app.

Centralizes app construction (metadata, middleware, handlers, routers,
startup and shutdown) so tests can build isolated instances with their own
settings, cache and upstream doubles.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware

from gateway.adapters.upstream import UpstreamClients, build_upstream_clients
from gateway.api.routes import API_ROUTERS, health_router
from gateway.core.config import Settings, missing_credentials
from gateway.core.config import settings as default_settings
from gateway.core.errors import ValidationAppError
from gateway.core.exception_handlers import setup_exception_handlers
from gateway.core.logging import configure_logging
from gateway.core.middleware import access_log_middleware, request_id_middleware
from gateway.core.openapi import apply_openapi_customizations
from gateway.core.rate_limit import GLOBAL_ROUTE_GROUP, RateLimiterFactory, enforce_rate_limit
from gateway.services.cache_service import CacheService

logger = logging.getLogger(__name__)

API_PREFIX = "/api"
GZIP_MINIMUM_SIZE = 1000


def create_app(
    settings: Settings | None = None,
    *,
    cache: CacheService | None = None,
    upstreams: UpstreamClients | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        settings: Application settings; the process-wide instance if omitted.
        cache: Prebuilt cache service; built from ``settings.cache`` at
            startup if omitted.
        upstreams: Prebuilt upstream clients; built from settings at startup
            if omitted.

    Returns:
        Configured FastAPI app with middleware, handlers, routers and docs.
    """
    cfg = settings or default_settings

    # Logging first so subsequent init logs are formatted as desired
    configure_logging(cfg.log)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if cfg.app.validate_credentials:
            missing = missing_credentials(cfg)
            if missing:
                logger.error("startup.credentials_missing", extra={"missing": missing})
                raise ValidationAppError(
                    code="config_invalid",
                    message=f"Missing required configuration: {', '.join(missing)}",
                    details={"missing": missing},
                )

        cache_service = cache if cache is not None else CacheService(cfg.cache)
        await cache_service.start()

        factory = RateLimiterFactory(cfg.rate_limit, cache_service.shared_store)
        clients = upstreams if upstreams is not None else build_upstream_clients(cfg)

        app.state.cache = cache_service
        app.state.rate_limiters = factory.create_all()
        app.state.upstreams = clients

        logger.info(
            "startup.complete",
            extra={
                "environment": cfg.app.environment,
                "cache_backend": cache_service.backend,
                "rate_limit_backend": factory.backend,
            },
        )
        try:
            yield
        finally:
            await clients.aclose()
            await cache_service.close()
            logger.info("shutdown.complete")

    app = FastAPI(
        title="NUS NextBus Gateway",
        description=(
            "Caching, rate-limited gateway in front of the campus shuttle, public "
            "transit and mapping APIs. Upstream credentials stay on the server; "
            "clients call /api/* without keys."
        ),
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.settings = cfg

    # Middleware (last registered runs first)
    app.add_middleware(GZipMiddleware, minimum_size=GZIP_MINIMUM_SIZE)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cfg.app.cors_origins,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=[cfg.log.request_id_header, "Retry-After"],
    )
    app.middleware("http")(access_log_middleware)
    app.middleware("http")(request_id_middleware)

    # Exception handlers
    setup_exception_handlers(app)

    # Routers
    global_gate = [Depends(enforce_rate_limit(GLOBAL_ROUTE_GROUP))]
    for router in API_ROUTERS:
        app.include_router(router, prefix=API_PREFIX, dependencies=global_gate)
    app.include_router(health_router)

    # OpenAPI customizations (tags, error responses)
    apply_openapi_customizations(app)

    return app

from __future__ import annotations

from gateway.api.routes.bus import router as bus_router
from gateway.api.routes.google_directions import router as directions_router
from gateway.api.routes.google_places import router as places_router
from gateway.api.routes.google_routes import router as routes_router
from gateway.api.routes.health import router as health_router
from gateway.api.routes.lta import router as lta_router

API_ROUTERS = [bus_router, lta_router, routes_router, places_router, directions_router]

__all__ = [
    "API_ROUTERS",
    "bus_router",
    "directions_router",
    "health_router",
    "lta_router",
    "places_router",
    "routes_router",
]

"""Upstream API clients, one per external service."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass

import httpx

from gateway.adapters.upstream.base import UpstreamClient
from gateway.adapters.upstream.google import (
    GoogleDirectionsClient,
    GooglePlacesClient,
    GoogleRoutesClient,
)
from gateway.adapters.upstream.lta import LTAClient
from gateway.adapters.upstream.nextbus import NextBusClient
from gateway.core.config import Settings


@dataclass
class UpstreamClients:
    nextbus: NextBusClient
    lta: LTAClient
    routes: GoogleRoutesClient
    places: GooglePlacesClient
    directions: GoogleDirectionsClient

    def all(self) -> list[UpstreamClient]:
        return [self.nextbus, self.lta, self.routes, self.places, self.directions]

    async def aclose(self) -> None:
        await asyncio.gather(*(client.aclose() for client in self.all()))


def build_upstream_clients(
    settings: Settings,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> UpstreamClients:
    """Build every upstream client from settings.

    Args:
        settings: Application settings.
        transport: Shared transport override (tests pass ``httpx.MockTransport``).
    """
    return UpstreamClients(
        nextbus=NextBusClient(settings.nextbus, transport=transport),
        lta=LTAClient(settings.lta, transport=transport),
        routes=GoogleRoutesClient(settings.google, transport=transport),
        places=GooglePlacesClient(settings.google, transport=transport),
        directions=GoogleDirectionsClient(settings.google, transport=transport),
    )


__all__ = [
    "GoogleDirectionsClient",
    "GooglePlacesClient",
    "GoogleRoutesClient",
    "LTAClient",
    "NextBusClient",
    "UpstreamClient",
    "UpstreamClients",
    "build_upstream_clients",
]

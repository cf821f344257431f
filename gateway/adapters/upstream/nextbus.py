"""Campus shuttle (NUS NextBus) API client. Authenticates with HTTP basic auth."""

from __future__ import annotations

from typing import Any

import httpx

from gateway.adapters.upstream.base import UpstreamClient
from gateway.core.config import NextBusSettings


class NextBusClient(UpstreamClient):
    """Typed accessors for the shuttle endpoints the gateway exposes."""

    def __init__(
        self,
        cfg: NextBusSettings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(
            "nextbus",
            cfg.api_url,
            timeout_seconds=cfg.timeout_seconds,
            auth=(cfg.username, cfg.password),
            transport=transport,
        )

    async def publicity(self) -> Any:
        return await self.get_json("/publicity")

    async def bus_stops(self) -> Any:
        return await self.get_json("/BusStops")

    async def pickup_points(self, route_code: str) -> Any:
        return await self.get_json("/PickupPoint", params={"route_code": route_code})

    async def shuttle_service(self, bus_stop_name: str) -> Any:
        return await self.get_json("/ShuttleService", params={"busstopname": bus_stop_name})

    async def active_buses(self, route_code: str) -> Any:
        return await self.get_json("/ActiveBus", params={"route_code": route_code})

    async def bus_location(self, vehicle_plate: str) -> Any:
        return await self.get_json("/BusLocation", params={"veh_plate": vehicle_plate})

    async def route_min_max_time(self, route_code: str) -> Any:
        return await self.get_json("/RouteMinMaxTime", params={"route_code": route_code})

    async def service_description(self) -> Any:
        return await self.get_json("/ServiceDescription")

    async def announcements(self) -> Any:
        return await self.get_json("/Announcements")

    async def ticker_tapes(self) -> Any:
        return await self.get_json("/TickerTapes")

    async def checkpoints(self, route_code: str) -> Any:
        return await self.get_json("/CheckPoint", params={"route_code": route_code})

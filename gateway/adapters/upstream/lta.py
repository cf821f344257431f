"""Public transit open-data (LTA DataMall) client. Authenticates with an AccountKey header."""

from __future__ import annotations

from typing import Any

import httpx

from gateway.adapters.upstream.base import UpstreamClient
from gateway.core.config import LTASettings


class LTAClient(UpstreamClient):
    def __init__(
        self,
        cfg: LTASettings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(
            "lta",
            cfg.api_url,
            timeout_seconds=cfg.timeout_seconds,
            headers={"AccountKey": cfg.api_key},
            transport=transport,
        )

    async def bus_stops(self, skip: int = 0) -> Any:
        """One page (500 records) of bus stops starting at ``skip``."""
        return await self.get_json("/BusStops", params={"$skip": skip})

    async def bus_routes(self, service_no: str | None = None, direction: str | None = None) -> Any:
        return await self.get_json(
            "/BusRoutes",
            params={"ServiceNo": service_no or None, "Direction": direction or None},
        )

    async def bus_arrival(self, bus_stop_code: str, service_no: str | None = None) -> Any:
        return await self.get_json(
            "/BusArrivalv2",
            params={"BusStopCode": bus_stop_code, "ServiceNo": service_no or None},
        )

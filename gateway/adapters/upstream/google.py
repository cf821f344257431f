"""Google Maps Platform clients: Routes, Places and Directions.

Routes authenticates with the ``X-Goog-Api-Key`` header; the legacy Places
and Directions web services take the key as a ``key`` query parameter.
Places and Directions report failures inside a 200 body through a
``status`` field, which is checked here so callers only see good payloads.
"""

from __future__ import annotations

from typing import Any

import httpx

from gateway.adapters.upstream.base import UpstreamClient
from gateway.core.config import GoogleSettings
from gateway.core.errors import UpstreamAppError

DEFAULT_ROUTES_FIELD_MASK = ",".join(
    [
        "routes.duration",
        "routes.distanceMeters",
        "routes.polyline.encodedPolyline",
        "routes.legs.steps.distanceMeters",
        "routes.legs.steps.staticDuration",
        "routes.legs.steps.polyline",
        "routes.legs.steps.startLocation",
        "routes.legs.steps.endLocation",
        "routes.legs.steps.navigationInstruction",
        "routes.legs.steps.travelMode",
        "routes.legs.steps.transitDetails",
        "routes.legs.stepsOverview",
        "routes.travelAdvisory.transitFare",
        "routes.localizedValues",
        "routes.description",
    ]
)

DEFAULT_PLACE_DETAILS_FIELDS = "geometry,name,formatted_address,place_id"

_OK_OR_EMPTY = frozenset({"OK", "ZERO_RESULTS"})
_OK_ONLY = frozenset({"OK"})


def ensure_api_status(service: str, data: Any, accepted: frozenset[str] = _OK_OR_EMPTY) -> Any:
    """Raise when a Google web-service body carries a failure status.

    Raises:
        UpstreamAppError: ``reason="api_status"`` with the upstream status.
    """
    status = data.get("status") if isinstance(data, dict) else None
    if status in accepted:
        return data

    message = (data.get("error_message") if isinstance(data, dict) else None) or (
        f"API returned status: {status}"
    )
    raise UpstreamAppError(
        code="upstream_api_status",
        message=message,
        details={"upstream_api_status": str(status)},
        service=service,
        reason="api_status",
    )


class GoogleRoutesClient(UpstreamClient):
    def __init__(self, cfg: GoogleSettings, *, transport: httpx.AsyncBaseTransport | None = None) -> None:
        super().__init__(
            "google_routes",
            cfg.routes_api_url,
            timeout_seconds=cfg.routes_timeout_seconds,
            headers={"X-Goog-Api-Key": cfg.maps_api_key},
            transport=transport,
        )

    async def compute_routes(self, body: dict[str, Any], field_mask: str | None = None) -> Any:
        return await self.post_json(
            "/directions/v2:computeRoutes",
            body,
            headers={"X-Goog-FieldMask": field_mask or DEFAULT_ROUTES_FIELD_MASK},
        )


class GooglePlacesClient(UpstreamClient):
    def __init__(self, cfg: GoogleSettings, *, transport: httpx.AsyncBaseTransport | None = None) -> None:
        super().__init__(
            "google_places",
            cfg.places_api_url,
            timeout_seconds=cfg.places_timeout_seconds,
            params={"key": cfg.maps_api_key},
            transport=transport,
        )

    async def autocomplete(
        self,
        input_text: str,
        *,
        session_token: str | None = None,
        location: str | None = None,
        radius: int | None = None,
    ) -> Any:
        data = await self.get_json(
            "/autocomplete/json",
            params={
                "input": input_text,
                "sessiontoken": session_token,
                "location": location,
                "radius": radius,
            },
        )
        return ensure_api_status(self.name, data)

    async def details(self, place_id: str, *, fields: str | None = None) -> Any:
        data = await self.get_json(
            "/details/json",
            params={"place_id": place_id, "fields": fields or DEFAULT_PLACE_DETAILS_FIELDS},
        )
        return ensure_api_status(self.name, data, _OK_ONLY)

    async def find_place(
        self,
        input_text: str,
        *,
        input_type: str = "textquery",
        fields: str | None = None,
        location_bias: str | None = None,
    ) -> Any:
        data = await self.get_json(
            "/findplacefromtext/json",
            params={
                "input": input_text,
                "inputtype": input_type,
                "fields": fields,
                "locationbias": location_bias,
            },
        )
        return ensure_api_status(self.name, data)


class GoogleDirectionsClient(UpstreamClient):
    def __init__(self, cfg: GoogleSettings, *, transport: httpx.AsyncBaseTransport | None = None) -> None:
        super().__init__(
            "google_directions",
            cfg.directions_api_url,
            timeout_seconds=cfg.directions_timeout_seconds,
            params={"key": cfg.maps_api_key},
            transport=transport,
        )

    async def directions(self, params: dict[str, Any]) -> Any:
        data = await self.get_json("/json", params=params)
        return ensure_api_status(self.name, data)

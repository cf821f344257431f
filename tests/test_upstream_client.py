"""Tests for upstream clients: request shaping and failure classification."""

import json

import httpx
import pytest

from gateway.adapters.upstream import build_upstream_clients
from gateway.adapters.upstream.base import UpstreamClient
from gateway.core.config import Settings
from gateway.core.errors import UpstreamAppError


def _client(handler) -> UpstreamClient:
    return UpstreamClient("lta", "https://lta.test", transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_get_json_drops_none_params() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"value": []})

    client = _client(handler)
    data = await client.get_json("/BusArrivalv2", params={"BusStopCode": "16991", "ServiceNo": None})

    assert data == {"value": []}
    assert dict(seen[0].url.params) == {"BusStopCode": "16991"}
    assert seen[0].headers["User-Agent"] == "NUSNextBus-Gateway/1.0"
    await client.aclose()


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("response", "reason", "upstream_status"),
    [
        (httpx.Response(404, json={"message": "not found"}), "http_status", 404),
        (httpx.Response(503, text="maintenance"), "http_status", 503),
        (httpx.Response(200, text="<html>oops</html>"), "invalid_response", 200),
    ],
)
async def test_bad_responses_are_classified(response, reason, upstream_status) -> None:
    client = _client(lambda request: response)

    with pytest.raises(UpstreamAppError) as exc_info:
        await client.get_json("/BusStops")

    assert exc_info.value.reason == reason
    assert exc_info.value.upstream_status == upstream_status
    assert exc_info.value.service == "lta"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("exc_type", "reason"),
    [
        (httpx.ReadTimeout, "timeout"),
        (httpx.ConnectTimeout, "timeout"),
        (httpx.ConnectError, "connection"),
    ],
)
async def test_transport_failures_are_classified(exc_type, reason) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise exc_type("boom", request=request)

    client = _client(handler)

    with pytest.raises(UpstreamAppError) as exc_info:
        await client.get_json("/BusStops")

    assert exc_info.value.reason == reason
    assert exc_info.value.upstream_status is None


@pytest.mark.asyncio
async def test_clients_carry_their_credentials(gateway_settings: Settings, upstream_stub) -> None:
    upstream_stub.responses["/api/BusStops"] = {"BusStopsResult": {}}
    upstream_stub.responses["/ltaodataservice/BusStops"] = {"value": []}
    upstream_stub.responses["/maps/api/place/details/json"] = {"status": "OK", "result": {}}
    clients = build_upstream_clients(gateway_settings, transport=upstream_stub.transport)

    await clients.nextbus.bus_stops()
    await clients.lta.bus_stops(skip=500)
    await clients.places.details("abc")
    await clients.aclose()

    nextbus, lta, places = upstream_stub.requests
    assert nextbus.headers["Authorization"].startswith("Basic ")
    assert lta.headers["AccountKey"] == "test-lta-key"
    assert lta.url.params["$skip"] == "500"
    assert places.url.params["key"] == "test-google-key"
    assert places.url.params["fields"] == "geometry,name,formatted_address,place_id"


@pytest.mark.asyncio
async def test_compute_routes_sends_field_mask_header(gateway_settings: Settings, upstream_stub) -> None:
    upstream_stub.responses["/directions/v2:computeRoutes"] = {"routes": []}
    clients = build_upstream_clients(gateway_settings, transport=upstream_stub.transport)

    await clients.routes.compute_routes({"origin": {}, "destination": {}}, "routes.duration")
    await clients.aclose()

    request = upstream_stub.requests[0]
    assert request.method == "POST"
    assert request.headers["X-Goog-Api-Key"] == "test-google-key"
    assert request.headers["X-Goog-FieldMask"] == "routes.duration"
    assert json.loads(request.content) == {"origin": {}, "destination": {}}


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("status", "accepted"),
    [("OK", True), ("ZERO_RESULTS", True), ("REQUEST_DENIED", False), ("OVER_QUERY_LIMIT", False)],
)
async def test_directions_status_check(gateway_settings: Settings, upstream_stub, status, accepted) -> None:
    upstream_stub.responses["/maps/api/directions/json"] = {"status": status, "routes": []}
    clients = build_upstream_clients(gateway_settings, transport=upstream_stub.transport)

    if accepted:
        assert (await clients.directions.directions({"origin": "a", "destination": "b"}))["status"] == status
    else:
        with pytest.raises(UpstreamAppError) as exc_info:
            await clients.directions.directions({"origin": "a", "destination": "b"})
        assert exc_info.value.reason == "api_status"
        assert exc_info.value.message == f"API returned status: {status}"
    await clients.aclose()


@pytest.mark.asyncio
async def test_place_details_rejects_zero_results(gateway_settings: Settings, upstream_stub) -> None:
    upstream_stub.responses["/maps/api/place/details/json"] = {
        "status": "ZERO_RESULTS",
    }
    clients = build_upstream_clients(gateway_settings, transport=upstream_stub.transport)

    with pytest.raises(UpstreamAppError) as exc_info:
        await clients.places.details("missing")

    assert exc_info.value.reason == "api_status"
    await clients.aclose()

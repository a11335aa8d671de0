from __future__ import annotations

import asyncio
import json
from typing import Callable, List

import httpx
import pytest

from cli.client import ApiClient
from cli.config import CLIConfig
from exceptions import BackendError, EmptyResultError, NetworkError, NotFoundError, ValidationError
from models.records import Reading

READING = {
    "id": "Esp_353_1704110400000",
    "deviceId": "Esp_353",
    "timestamp": "2024-01-01T12:00:00Z",
    "aqi": 38,
    "co2": 612,
    "location": "Kitchen",
}


def _call(handler: Callable[[httpx.Request], httpx.Response], action):
    async def scenario():
        client = ApiClient(CLIConfig(base_url="http://api.test"), transport=httpx.MockTransport(handler))
        async with client:
            return await action(client)

    return asyncio.run(scenario())


def test_fetch_current_reading_sends_device_query() -> None:
    requests: List[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json={"success": True, "data": READING, "type": "current"})

    reading = _call(handler, lambda client: client.fetch_readings("Esp_353"))

    assert isinstance(reading, Reading)
    assert reading.aqi == 38.0
    assert reading.co2 == 612.0
    assert requests[0].url.path == "/sensors"
    assert dict(requests[0].url.params) == {"deviceId": "Esp_353"}


def test_fetch_historical_returns_list() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.params["historical"] == "true"
        return httpx.Response(200, json={"success": True, "data": [READING, READING], "type": "historical"})

    readings = _call(handler, lambda client: client.fetch_readings("Esp_353", historical=True))

    assert [reading.device_id for reading in readings] == ["Esp_353", "Esp_353"]


@pytest.mark.parametrize(
    "status_code, body, expected",
    [
        (404, {"success": False, "error": "No data found for device ghost"}, NotFoundError),
        (400, {"success": False, "error": "Missing required fields: deviceId, aqi"}, ValidationError),
        (500, {"success": False, "error": "Database query failed"}, BackendError),
        (502, None, BackendError),
    ],
)
def test_http_errors_map_to_typed_errors(status_code, body, expected) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if body is None:
            return httpx.Response(status_code, text="Bad gateway")
        return httpx.Response(status_code, json=body)

    with pytest.raises(expected) as excinfo:
        _call(handler, lambda client: client.fetch_readings("ghost"))

    if body is not None:
        assert excinfo.value.message == body["error"]
    else:
        assert excinfo.value.message == "HTTP error! status: 502"


def test_timeout_becomes_network_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    with pytest.raises(NetworkError) as excinfo:
        _call(handler, lambda client: client.fetch_readings("Esp_353"))

    assert excinfo.value.message == "Request timeout - Please check your connection"


def test_connection_failure_becomes_network_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(NetworkError):
        _call(handler, lambda client: client.list_devices())


def test_unsuccessful_or_empty_payload_raises_empty_result() -> None:
    responses = iter(
        [
            httpx.Response(200, json={"success": False, "error": "No sensor data found"}),
            httpx.Response(200, json={"success": True, "data": []}),
        ]
    )

    def handler(request: httpx.Request) -> httpx.Response:
        return next(responses)

    with pytest.raises(EmptyResultError) as first:
        _call(handler, lambda client: client.fetch_readings("Esp_353"))
    with pytest.raises(EmptyResultError) as second:
        _call(handler, lambda client: client.fetch_readings("Esp_353", historical=True))

    assert first.value.message == "No sensor data found"
    assert second.value.message == "No data received from API"


def test_malformed_reading_raises_backend_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"success": True, "data": {"deviceId": "Esp_353", "aqi": 5}})

    with pytest.raises(BackendError):
        _call(handler, lambda client: client.fetch_readings("Esp_353"))


def test_list_devices_parses_fallback_listing() -> None:
    body = {
        "success": True,
        "fallback": True,
        "message": "Using fallback device data due to database error",
        "data": [
            {
                "id": "Esp_353",
                "name": "Kitchen Sensor",
                "location": "Kitchen",
                "status": "offline",
                "lastSeen": "2024-01-01T11:15:00Z",
                "model": "ESP32-DevKit",
                "firmware": "v1.2.0",
                "lastAQI": 38.0,
            }
        ],
    }

    listing = _call(lambda request: httpx.Response(200, json=body), lambda client: client.list_devices())

    assert listing.fallback is True
    assert listing.message == body["message"]
    device = listing.devices[0]
    assert (device.id, device.status, device.last_aqi) == ("Esp_353", "offline", 38.0)
    assert device.last_temperature is None


def test_push_reading_posts_json_body() -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["method"] = request.method
        seen["body"] = json.loads(request.content)
        return httpx.Response(
            200, json={"success": True, "message": "Sensor data saved successfully", "id": "Esp_353_1"}
        )

    reading_id = _call(handler, lambda client: client.push_reading({"deviceId": "Esp_353", "aqi": 38}))

    assert reading_id == "Esp_353_1"
    assert seen == {"method": "POST", "body": {"deviceId": "Esp_353", "aqi": 38}}

from __future__ import annotations

from dataclasses import dataclass, field
from types import TracebackType
from typing import Any, Dict, List, Mapping, Optional, Type, Union

import httpx

from cli.config import CLIConfig
from exceptions import (
    AirQualityError,
    BackendError,
    EmptyResultError,
    NetworkError,
    NotFoundError,
    ValidationError,
)
from models.records import Device, Reading, parse_timestamp

ReadingData = Union[Reading, List[Reading]]


@dataclass
class DeviceListing:
    devices: List[Device] = field(default_factory=list)
    fallback: bool = False
    message: Optional[str] = None


def device_from_payload(payload: Mapping[str, Any]) -> Device:
    return Device(
        id=str(payload["id"]),
        name=str(payload.get("name") or payload["id"]),
        location=str(payload.get("location") or ""),
        status=str(payload.get("status") or "offline"),
        last_seen=parse_timestamp(payload.get("lastSeen")),
        model=str(payload.get("model") or "ESP32-DevKit"),
        firmware=str(payload.get("firmware") or "v1.2.0"),
        last_aqi=payload.get("lastAQI"),
        last_temperature=payload.get("lastTemperature"),
        last_humidity=payload.get("lastHumidity"),
    )


class ApiClient:
    """Async HTTP client for the air quality API.

    Every failure is raised as an :class:`exceptions.AirQualityError` subclass so
    that callers such as the live fetcher only have one family to handle.
    """

    def __init__(
        self,
        config: CLIConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._config = config
        self._client = httpx.AsyncClient(
            base_url=config.base_url,
            timeout=config.timeout,
            transport=transport,
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        await self.close()

    async def fetch_readings(self, device_id: str, historical: bool = False) -> ReadingData:
        params = {"deviceId": device_id}
        if historical:
            params["historical"] = "true"
        payload = await self._request("GET", "/sensors", params=params)

        data = payload.get("data")
        if not payload.get("success") or not data:
            raise EmptyResultError(payload.get("error") or "No data received from API")

        try:
            if isinstance(data, list):
                return [Reading.from_payload(item) for item in data]
            return Reading.from_payload(data)
        except (TypeError, ValueError) as exc:
            raise BackendError(f"Malformed reading in API response: {exc}") from exc

    async def list_devices(self) -> DeviceListing:
        payload = await self._request("GET", "/devices")
        if not payload.get("success"):
            raise BackendError(payload.get("error") or "Failed to fetch devices")
        try:
            devices = [device_from_payload(item) for item in payload.get("data") or []]
        except (KeyError, TypeError, ValueError) as exc:
            raise BackendError(f"Malformed device in API response: {exc}") from exc
        return DeviceListing(
            devices=devices,
            fallback=bool(payload.get("fallback")),
            message=payload.get("message"),
        )

    async def push_reading(self, reading: Mapping[str, Any]) -> str:
        payload = await self._request("POST", "/sensors", json=dict(reading))
        reading_id = payload.get("id")
        if not isinstance(reading_id, str):
            raise BackendError("Unexpected response payload when saving reading.")
        return reading_id

    async def _request(self, method: str, path: str, **kwargs: Any) -> Dict[str, Any]:
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.TimeoutException as exc:
            raise NetworkError("Request timeout - Please check your connection") from exc
        except httpx.HTTPError as exc:
            raise NetworkError(f"Network error - {exc}") from exc

        try:
            payload = response.json()
        except ValueError:
            payload = None

        if response.is_success:
            if not isinstance(payload, dict):
                raise BackendError(f"Malformed response from {path}.")
            return payload

        raise self._error_for(response.status_code, payload)

    @staticmethod
    def _error_for(status_code: int, payload: Any) -> AirQualityError:
        detail: Optional[str] = None
        if isinstance(payload, dict):
            detail = payload.get("error") or payload.get("detail")
            if not isinstance(detail, str):
                detail = None
        if status_code == 404:
            return NotFoundError(detail)
        if status_code in (400, 422):
            return ValidationError(detail)
        if status_code >= 500:
            return BackendError(detail or f"HTTP error! status: {status_code}")
        return BackendError(f"HTTP error! status: {status_code}")

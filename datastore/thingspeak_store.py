"""ThingSpeak channel backend.

A channel carries a single device, so reads stamp every feed entry with the
requested device id (or ``thingspeak_device`` when none is given).
"""

from __future__ import annotations

import logging
import math
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional

import httpx

from datastore.base import ReadingStore, newest_first
from exceptions import BackendError
from models.records import Reading, parse_timestamp

logger = logging.getLogger(__name__)

DEFAULT_DEVICE_ID = "thingspeak_device"

# ThingSpeak field number -> reading attribute.
FIELD_MAP = {
    "field1": "aqi",
    "field2": "co2",
    "field3": "pm25",
    "field4": "temperature",
    "field5": "humidity",
    "field6": "voc",
    "field7": "co",
    "field8": "no2",
}


def _as_float(value: Any) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return number if math.isfinite(number) else 0.0


class ThingSpeakReadingStore(ReadingStore):
    backend = "thingspeak"

    def __init__(
        self,
        channel_url: str,
        write_url: str = "https://api.thingspeak.com/update",
        api_key: Optional[str] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        now: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self.channel_url = channel_url
        self.write_url = write_url
        self._api_key = api_key
        self._timeout = timeout
        self._transport = transport
        self._now = now
        self._client: Optional[httpx.AsyncClient] = None

    async def connect(self) -> None:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout, transport=self._transport)

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def save(self, reading: Reading) -> str:
        if not self._api_key:
            raise BackendError("ThingSpeak writes require THINGSPEAK_API_KEY.")
        form = {"api_key": self._api_key}
        for field, attribute in FIELD_MAP.items():
            form[field] = str(getattr(reading, attribute))

        response = await self._send("POST", self.write_url, data=form)
        # ThingSpeak answers "0" when the update was rejected (e.g. rate limited).
        if response.text.strip() in {"", "0"}:
            raise BackendError("ThingSpeak rejected the channel update.")
        return reading.id

    async def recent(self, device_id: Optional[str] = None, limit: int = 100) -> List[Reading]:
        feeds = await self._feeds({"results": str(limit)})
        return newest_first(self._to_readings(feeds, device_id or DEFAULT_DEVICE_ID), limit)

    async def history(self, device_id: str, hours: float) -> List[Reading]:
        start = self._now() - timedelta(hours=hours)
        feeds = await self._feeds({"start": start.strftime("%Y-%m-%d %H:%M:%S")})
        readings = [
            reading for reading in self._to_readings(feeds, device_id) if reading.timestamp >= start
        ]
        return sorted(readings, key=lambda reading: reading.timestamp)

    async def _feeds(self, params: Dict[str, str]) -> List[Dict[str, Any]]:
        response = await self._send("GET", self.channel_url, params=params)
        try:
            feeds = response.json().get("feeds")
        except (ValueError, AttributeError) as exc:
            raise BackendError("ThingSpeak returned a malformed channel feed.") from exc
        return feeds or []

    async def _send(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        if self._client is None:
            raise BackendError("ThingSpeak store is not connected.")
        try:
            response = await self._client.request(method, url, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise BackendError(
                f"ThingSpeak returned status {exc.response.status_code}."
            ) from exc
        except httpx.HTTPError as exc:
            raise BackendError(f"Unable to reach ThingSpeak: {exc}") from exc
        return response

    @staticmethod
    def _to_readings(feeds: List[Dict[str, Any]], device_id: str) -> List[Reading]:
        readings: List[Reading] = []
        for feed in feeds:
            try:
                timestamp = parse_timestamp(feed.get("created_at"))
            except ValueError as exc:
                logger.warning(
                    "Skipping ThingSpeak entry without a usable timestamp",
                    extra={"device_id": device_id, "reason": str(exc)},
                )
                continue
            values = {attribute: _as_float(feed.get(field)) for field, attribute in FIELD_MAP.items()}
            readings.append(
                Reading(
                    id=f"thingspeak_{feed.get('entry_id')}",
                    device_id=device_id,
                    timestamp=timestamp,
                    location="ThingSpeak Device",
                    **values,
                )
            )
        return readings

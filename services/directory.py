"""Device list derived from the most recent readings."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Iterable, List, Optional

from datastore.base import ReadingStore
from exceptions import AirQualityError
from models.records import Device, Reading, display_device_id

logger = logging.getLogger(__name__)

FALLBACK_MESSAGE = "Using fallback device data due to database error"
EMPTY_MESSAGE = "No devices found in database; using placeholder devices"

# (id, name, location, minutes since last seen, aqi, temperature, humidity)
_PLACEHOLDERS = (
    ("esp32_001", "Living Room Sensor", "Living Room", 30, 45.0, 22.5, 55.0),
    ("Esp_353", "Kitchen Sensor", "Kitchen", 45, 38.0, 24.0, 48.0),
    ("Esp_355", "Bedroom Sensor", "Bedroom", 20, 32.0, 21.8, 52.0),
)


@dataclass(frozen=True)
class DirectoryResult:
    devices: List[Device]
    fallback: bool = False
    message: Optional[str] = None


def placeholder_devices(now: datetime) -> List[Device]:
    devices = [
        Device(
            id=device_id,
            name=name,
            location=location,
            status="offline",
            last_seen=now - timedelta(minutes=minutes),
            last_aqi=aqi,
            last_temperature=temperature,
            last_humidity=humidity,
        )
        for device_id, name, location, minutes, aqi, temperature, humidity in _PLACEHOLDERS
    ]
    return sorted(devices, key=lambda device: device.id)


def latest_per_device(readings: Iterable[Reading]) -> Dict[str, Reading]:
    """Keep the newest reading per device; equal timestamps fall back to the greater id."""
    latest: Dict[str, Reading] = {}
    for reading in readings:
        current = latest.get(reading.device_id)
        if current is None or (reading.timestamp, reading.id) > (current.timestamp, current.id):
            latest[reading.device_id] = reading
    return latest


class DeviceDirectory:
    """Builds the device list, degrading to placeholders rather than failing."""

    def __init__(
        self,
        store: ReadingStore,
        sample_limit: int = 50,
        staleness: timedelta = timedelta(minutes=10),
        now: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self.store = store
        self.sample_limit = sample_limit
        self.staleness = staleness
        self._now = now

    def to_device(self, reading: Reading, now: datetime) -> Device:
        label = display_device_id(reading.device_id)
        status = "online" if now - reading.timestamp <= self.staleness else "offline"
        return Device(
            id=reading.device_id,
            name=reading.location or f"{label} Sensor",
            location=reading.location or f"{label} Location",
            status=status,
            last_seen=reading.timestamp,
            last_aqi=reading.aqi,
            last_temperature=reading.temperature,
            last_humidity=reading.humidity,
        )

    async def list_devices(self, now: Optional[datetime] = None) -> DirectoryResult:
        now = now or self._now()
        try:
            readings = await self.store.recent(None, self.sample_limit)
        except AirQualityError as exc:
            logger.warning(
                "Device lookup failed; returning placeholder devices",
                extra={"reason": exc.message, "fallback": True},
            )
            return DirectoryResult(placeholder_devices(now), fallback=True, message=FALLBACK_MESSAGE)
        except Exception:
            logger.exception("Unexpected error listing devices", extra={"fallback": True})
            return DirectoryResult(placeholder_devices(now), fallback=True, message=FALLBACK_MESSAGE)

        latest = latest_per_device(readings)
        if not latest:
            logger.info("No devices found in store", extra={"fallback": True})
            return DirectoryResult(placeholder_devices(now), fallback=True, message=EMPTY_MESSAGE)

        devices = sorted((self.to_device(reading, now) for reading in latest.values()), key=lambda d: d.id)
        logger.info("Returning devices", extra={"device_count": len(devices)})
        return DirectoryResult(devices)

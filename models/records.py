"""Domain models shared across services."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional

POLLUTANT_FIELDS = ("co2", "pm25", "voc", "co", "no2", "temperature", "humidity")


def parse_timestamp(value: Any) -> datetime:
    """Parse an ISO-8601 string (or datetime) into an aware UTC datetime."""
    if isinstance(value, datetime):
        parsed = value
    else:
        candidate = str(value or "").strip()
        if not candidate:
            raise ValueError("Timestamp is empty.")

        if candidate.endswith("Z"):
            candidate = candidate[:-1] + "+00:00"

        try:
            parsed = datetime.fromisoformat(candidate)
        except ValueError as exc:
            raise ValueError(f"Invalid timestamp format: {value!r}") from exc

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)

    return parsed.astimezone(timezone.utc)


def format_timestamp(value: datetime) -> str:
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def make_reading_id(device_id: str, timestamp: datetime) -> str:
    """Readings are keyed by device id plus epoch milliseconds."""
    return f"{device_id}_{int(timestamp.timestamp() * 1000)}"


def display_device_id(device_id: str) -> str:
    return device_id.replace("Esp_", "ESP32_")


def _as_float(value: Any) -> float:
    if value is None or value == "":
        return 0.0
    return float(value)


@dataclass(frozen=True, slots=True)
class Reading:
    """One sensor sample covering AQI plus the raw pollutant concentrations."""

    id: str
    device_id: str
    timestamp: datetime
    aqi: float
    co2: float = 0.0
    pm25: float = 0.0
    voc: float = 0.0
    co: float = 0.0
    no2: float = 0.0
    temperature: float = 0.0
    humidity: float = 0.0
    location: str = ""

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "Reading":
        """Build a reading from its stored/wire form (camelCase keys, ISO timestamp).

        Raises ``ValueError`` when the payload is missing the device id,
        timestamp or AQI, carries non-numeric values, or has an AQI that is
        negative or not finite.
        """
        device_id = str(payload.get("deviceId") or "").strip()
        if not device_id:
            raise ValueError("Reading payload is missing deviceId.")
        if payload.get("aqi") is None:
            raise ValueError("Reading payload is missing aqi.")

        timestamp = parse_timestamp(payload.get("timestamp"))
        try:
            values = {name: _as_float(payload.get(name)) for name in POLLUTANT_FIELDS}
            aqi = float(payload["aqi"])
        except (TypeError, ValueError) as exc:
            raise ValueError(f"Reading payload has non-numeric values: {exc}") from exc
        if not math.isfinite(aqi) or aqi < 0:
            raise ValueError(f"Reading payload has an out-of-range aqi: {aqi!r}")

        return cls(
            id=str(payload.get("id") or make_reading_id(device_id, timestamp)),
            device_id=device_id,
            timestamp=timestamp,
            aqi=aqi,
            location=str(payload.get("location") or ""),
            **values,
        )

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "id": self.id,
            "deviceId": self.device_id,
            "timestamp": format_timestamp(self.timestamp),
            "aqi": self.aqi,
        }
        for name in POLLUTANT_FIELDS:
            payload[name] = getattr(self, name)
        payload["location"] = self.location
        return payload


@dataclass(frozen=True, slots=True)
class Device:
    """A sensor endpoint derived from its most recent reading."""

    id: str
    name: str
    location: str
    status: str
    last_seen: datetime
    model: str = "ESP32-DevKit"
    firmware: str = "v1.2.0"
    last_aqi: Optional[float] = None
    last_temperature: Optional[float] = None
    last_humidity: Optional[float] = None

"""Read and write orchestration over a reading store."""

from __future__ import annotations

import logging
import math
from datetime import datetime, timezone
from typing import Any, Callable, List, Mapping

from datastore.base import ReadingStore
from exceptions import EmptyResultError, NotFoundError, ValidationError
from models.records import POLLUTANT_FIELDS, Reading, display_device_id, make_reading_id

logger = logging.getLogger(__name__)


def _coerce_number(payload: Mapping[str, Any], name: str) -> float:
    value = payload.get(name)
    if value is None or value == "":
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return number if math.isfinite(number) else 0.0


class ReadingService:
    """Coordinates validation, id generation and store access for readings."""

    def __init__(
        self,
        store: ReadingStore,
        now: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self.store = store
        self._now = now

    async def current(self, device_id: str) -> Reading:
        reading = await self.store.latest(device_id)
        if reading is None:
            logger.info("No data found for device", extra={"device_id": device_id})
            raise NotFoundError(f"No data found for device {device_id}")
        return reading

    async def history(self, device_id: str, hours: float = 24.0) -> List[Reading]:
        readings = await self.store.history(device_id, hours)
        if not readings:
            raise NotFoundError(f"No data found for device {device_id}")
        return readings

    async def recent(self, limit: int = 50) -> List[Reading]:
        readings = await self.store.recent(None, limit)
        if not readings:
            raise EmptyResultError()
        return readings

    async def record(self, payload: Any) -> str:
        """Validate an ingestion payload, stamp it and persist it."""
        if not isinstance(payload, Mapping):
            raise ValidationError("Request body must be a JSON object.")
        device_id = str(payload.get("deviceId") or "").strip()
        if not device_id or payload.get("aqi") is None:
            raise ValidationError("Missing required fields: deviceId, aqi")

        try:
            aqi = float(payload["aqi"])
        except (TypeError, ValueError) as exc:
            raise ValidationError("Field aqi must be numeric.") from exc
        if not math.isfinite(aqi):
            raise ValidationError("Field aqi must be a finite number.")
        if aqi < 0:
            raise ValidationError("Field aqi must not be negative.")

        timestamp = self._now()
        reading = Reading(
            id=make_reading_id(device_id, timestamp),
            device_id=device_id,
            timestamp=timestamp,
            aqi=aqi,
            location=str(payload.get("location") or f"{display_device_id(device_id)} Location"),
            **{name: _coerce_number(payload, name) for name in POLLUTANT_FIELDS},
        )
        reading_id = await self.store.save(reading)
        logger.info(
            "Sensor data saved",
            extra={"device_id": device_id, "reading_id": reading_id, "backend": self.store.backend},
        )
        return reading_id

"""Synthetic readings for the demo device and the realtime endpoint."""

from __future__ import annotations

import random
from datetime import datetime, timezone
from typing import Optional

from models.records import Reading, make_reading_id

DEMO_DEVICE_ID = "kitchen_sensor_demo"


def _between(rng: random.Random, low: float, high: float, digits: int = 0) -> float:
    return round(low + rng.random() * (high - low), digits)


def generate_demo_reading(
    now: Optional[datetime] = None,
    rng: Optional[random.Random] = None,
) -> Reading:
    """A kitchen reading in the good-to-moderate range."""
    rng = rng or random.Random()
    timestamp = now or datetime.now(timezone.utc)
    return Reading(
        id=make_reading_id(DEMO_DEVICE_ID, timestamp),
        device_id=DEMO_DEVICE_ID,
        timestamp=timestamp,
        aqi=_between(rng, 25, 55),
        temperature=_between(rng, 22, 30, 1),
        humidity=_between(rng, 45, 65),
        co2=_between(rng, 400, 600),
        pm25=_between(rng, 8, 20),
        voc=_between(rng, 0.2, 0.5, 2),
        co=_between(rng, 3, 7),
        no2=_between(rng, 20, 45),
        location="Smart Kitchen Monitor",
    )


def generate_realtime_reading(
    device_id: str,
    now: Optional[datetime] = None,
    rng: Optional[random.Random] = None,
) -> Reading:
    """A wider-ranging simulated reading used by ``/sensors/realtime``."""
    rng = rng or random.Random()
    timestamp = now or datetime.now(timezone.utc)
    return Reading(
        id=make_reading_id(device_id, timestamp),
        device_id=device_id,
        timestamp=timestamp,
        aqi=_between(rng, 50, 150),
        co2=_between(rng, 400, 1200),
        pm25=_between(rng, 5, 55),
        voc=_between(rng, 0.1, 0.9, 2),
        co=_between(rng, 2, 17),
        no2=_between(rng, 10, 110),
        temperature=_between(rng, 20, 35, 1),
        humidity=_between(rng, 30, 80),
        location="ESP32_Device_001",
    )

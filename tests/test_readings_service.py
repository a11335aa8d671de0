from __future__ import annotations

import asyncio
from datetime import datetime, timezone

import pytest

from datastore.local_store import LocalReadingStore
from exceptions import EmptyResultError, NotFoundError, ValidationError
from services.readings import ReadingService

NOW = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture()
def service() -> ReadingService:
    store = LocalReadingStore(now=lambda: NOW)
    return ReadingService(store, now=lambda: NOW)


def test_record_stamps_id_and_defaults(service: ReadingService) -> None:
    payload = {"deviceId": "Esp_353", "aqi": "38", "co2": "612", "voc": "n/a", "pm25": "inf"}
    reading_id = asyncio.run(service.record(payload))

    assert reading_id == "Esp_353_1704110400000"
    reading = asyncio.run(service.current("Esp_353"))
    assert reading.aqi == 38.0
    assert reading.co2 == 612.0
    assert reading.voc == 0.0
    assert reading.pm25 == 0.0
    assert reading.location == "ESP32_353 Location"
    assert reading.timestamp == NOW


@pytest.mark.parametrize(
    "payload",
    [
        {"aqi": 10},
        {"deviceId": "", "aqi": 10},
        {"deviceId": "Esp_353"},
        {"deviceId": "Esp_353", "aqi": "bad"},
        {"deviceId": "Esp_353", "aqi": -1},
        {"deviceId": "Esp_353", "aqi": "nan"},
        {"deviceId": "Esp_353", "aqi": "inf"},
        [{"deviceId": "Esp_353", "aqi": 10}],
    ],
)
def test_record_rejects_invalid_payloads(service: ReadingService, payload) -> None:
    with pytest.raises(ValidationError):
        asyncio.run(service.record(payload))


def test_current_unknown_device_raises_not_found(service: ReadingService) -> None:
    with pytest.raises(NotFoundError) as excinfo:
        asyncio.run(service.current("ghost"))

    assert "ghost" in excinfo.value.message


def test_history_and_recent(service: ReadingService) -> None:
    with pytest.raises(EmptyResultError):
        asyncio.run(service.recent())
    with pytest.raises(NotFoundError):
        asyncio.run(service.history("Esp_353"))

    asyncio.run(service.record({"deviceId": "Esp_353", "aqi": 20, "location": "Kitchen"}))

    history = asyncio.run(service.history("Esp_353", hours=1))
    assert [reading.location for reading in history] == ["Kitchen"]
    assert len(asyncio.run(service.recent())) == 1

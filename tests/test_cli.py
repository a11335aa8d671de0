from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

import pytest
from typer.testing import CliRunner

from cli.app import app
from cli.client import DeviceListing
from exceptions import AirQualityError, NotFoundError
from models.records import Device, Reading

NOW = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


class StubClient:
    def __init__(self, config, error: Optional[AirQualityError] = None) -> None:
        self.config = config
        self.error = error
        self.reading = Reading(
            id="Esp_353_1704110400000",
            device_id="Esp_353",
            timestamp=NOW,
            aqi=38.0,
            co2=1200.0,
            pm25=10.0,
            location="Kitchen",
        )
        self.fetch_calls: List[tuple[str, bool]] = []
        self.pushed: List[Dict[str, Any]] = []
        self.closed = False

    async def __aenter__(self) -> "StubClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        self.closed = True

    async def fetch_readings(self, device_id: str, historical: bool = False):
        self.fetch_calls.append((device_id, historical))
        if self.error is not None:
            raise self.error
        if historical:
            return [self.reading, self.reading]
        return self.reading

    async def list_devices(self) -> DeviceListing:
        if self.error is not None:
            raise self.error
        return DeviceListing(
            devices=[
                Device(
                    id="Esp_353",
                    name="Kitchen",
                    location="Kitchen",
                    status="online",
                    last_seen=NOW,
                    last_aqi=38.0,
                )
            ],
            fallback=True,
            message="Using fallback device data due to database error",
        )

    async def push_reading(self, payload: Mapping[str, Any]) -> str:
        self.pushed.append(dict(payload))
        return "Esp_353_1"


@pytest.fixture()
def runner() -> CliRunner:
    return CliRunner()


def _install_stub(monkeypatch, stub: StubClient) -> None:
    def factory(config):
        stub.config = config
        return stub

    monkeypatch.setattr("cli.app.ApiClient", factory)


def test_reading_renders_classification_and_pollutants(monkeypatch, runner: CliRunner) -> None:
    stub = StubClient(config=None)
    _install_stub(monkeypatch, stub)

    result = runner.invoke(app, ["--base-url", "http://api.test/", "reading", "Esp_353"])

    assert result.exit_code == 0, result.output
    assert "Reading Esp_353_1704110400000" in result.stdout
    assert "AQI 38: Good" in result.stdout
    assert "CO2: 1200 ppm (red)" in result.stdout
    assert "PM2.5: 10 ug/m3 (green)" in result.stdout
    assert stub.fetch_calls == [("Esp_353", False)]
    assert stub.config.base_url == "http://api.test"
    assert stub.closed is True


def test_reading_historical(monkeypatch, runner: CliRunner) -> None:
    stub = StubClient(config=None)
    _install_stub(monkeypatch, stub)

    result = runner.invoke(app, ["reading", "Esp_353", "--historical"])

    assert result.exit_code == 0, result.output
    assert "History (2 readings)" in result.stdout
    assert stub.fetch_calls == [("Esp_353", True)]


def test_reading_error_exits_non_zero(monkeypatch, runner: CliRunner) -> None:
    _install_stub(monkeypatch, StubClient(config=None, error=NotFoundError("No data found for device ghost")))

    result = runner.invoke(app, ["reading", "ghost"])

    assert result.exit_code == 1
    assert "No data found for device ghost" in result.output


def test_devices_lists_fallback_notice(monkeypatch, runner: CliRunner) -> None:
    _install_stub(monkeypatch, StubClient(config=None))

    result = runner.invoke(app, ["devices"])

    assert result.exit_code == 0, result.output
    assert "Devices (1)" in result.stdout
    assert "Using fallback device data due to database error" in result.stdout
    assert "Esp_353 (Kitchen, Kitchen): online" in result.stdout
    assert "AQI 38" in result.stdout


def test_push_sends_only_given_fields(monkeypatch, runner: CliRunner) -> None:
    stub = StubClient(config=None)
    _install_stub(monkeypatch, stub)

    result = runner.invoke(app, ["push", "Esp_353", "--aqi", "42", "--co2", "610", "--location", "Kitchen"])

    assert result.exit_code == 0, result.output
    assert "Reading saved. id=Esp_353_1" in result.stdout
    assert stub.pushed == [{"deviceId": "Esp_353", "aqi": 42.0, "co2": 610.0, "location": "Kitchen"}]


def test_watch_stops_after_count(monkeypatch, runner: CliRunner) -> None:
    stub = StubClient(config=None)
    _install_stub(monkeypatch, stub)

    result = runner.invoke(app, ["watch", "Esp_353", "--count", "1", "--interval", "5"])

    assert result.exit_code == 0, result.output
    assert "Watching Esp_353" in result.stdout
    assert "every 5s" in result.stdout
    assert "[Esp_353] connected" in result.stdout
    assert stub.fetch_calls == [("Esp_353", False)]
    assert stub.closed is True


def test_watch_reports_disconnect(monkeypatch, runner: CliRunner) -> None:
    _install_stub(monkeypatch, StubClient(config=None, error=NotFoundError("No data found for device ghost")))

    result = runner.invoke(app, ["watch", "ghost", "-n", "1"])

    assert result.exit_code == 0
    assert "[ghost] disconnected: No data found for device ghost" in result.output


def test_classify_command(runner: CliRunner) -> None:
    result = runner.invoke(app, ["classify", "320"])

    assert result.exit_code == 0, result.output
    assert "AQI 320: Hazardous" in result.stdout
    assert "bucket: hazardous" in result.stdout


def test_classify_rejects_nan(runner: CliRunner) -> None:
    result = runner.invoke(app, ["classify", "nan"])

    assert result.exit_code == 1

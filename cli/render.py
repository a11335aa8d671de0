from __future__ import annotations

from typing import Any, Iterable, List

import typer

from cli.client import DeviceListing
from cli.fetcher import FetcherSnapshot, FetchState
from models.records import Reading, format_timestamp
from services.classifier import THRESHOLDS, aqi_color, classify_aqi, classify_reading

_COLORS = {
    "green": typer.colors.GREEN,
    "yellow": typer.colors.YELLOW,
    "red": typer.colors.RED,
}


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def render_classification(aqi: float) -> None:
    result = classify_aqi(aqi)
    typer.secho(
        f"AQI {aqi:g}: {result.label}",
        fg=_COLORS[aqi_color(aqi).value],
        bold=True,
    )
    echo_key_values([("bucket", result.bucket.value), ("color", result.color)])
    typer.echo(result.health_message)


def render_reading(reading: Reading) -> None:
    echo_heading(f"Reading {reading.id}")
    echo_key_values(
        [
            ("device_id", reading.device_id),
            ("location", reading.location),
            ("timestamp", format_timestamp(reading.timestamp)),
        ]
    )
    render_classification(reading.aqi)

    typer.echo()
    echo_heading("Pollutants")
    levels = classify_reading(reading)
    for key, spec in THRESHOLDS.items():
        level = levels[key]
        typer.secho(
            f"  - {spec.name}: {getattr(reading, key):g} {spec.unit} ({level.value})",
            fg=_COLORS[level.value],
        )
    echo_key_values(
        [("temperature", f"{reading.temperature:g}"), ("humidity", f"{reading.humidity:g}")]
    )


def render_history(readings: List[Reading]) -> None:
    echo_heading(f"History ({len(readings)} readings)")
    if not readings:
        typer.echo("No readings available.")
        return
    for reading in readings:
        typer.secho(
            f"  {format_timestamp(reading.timestamp)}  AQI {reading.aqi:g}",
            fg=_COLORS[aqi_color(reading.aqi).value],
        )


def render_snapshot(snapshot: FetcherSnapshot) -> None:
    if snapshot.state is FetchState.error:
        typer.secho(
            f"[{snapshot.device_id}] disconnected: {snapshot.error}",
            fg=typer.colors.RED,
            err=True,
        )
        return
    if snapshot.state is not FetchState.ready or snapshot.data is None:
        return

    updated = format_timestamp(snapshot.last_updated) if snapshot.last_updated else "never"
    typer.echo(f"[{snapshot.device_id}] connected, last updated {updated}")
    if isinstance(snapshot.data, list):
        render_history(snapshot.data)
    else:
        render_reading(snapshot.data)
    typer.echo()


def render_devices(listing: DeviceListing) -> None:
    echo_heading(f"Devices ({len(listing.devices)})")
    if listing.fallback:
        typer.secho(listing.message or "Placeholder devices shown.", fg=typer.colors.YELLOW)
    for device in listing.devices:
        color = typer.colors.GREEN if device.status == "online" else typer.colors.RED
        aqi = "n/a" if device.last_aqi is None else f"{device.last_aqi:g}"
        typer.secho(
            f"  - {device.id} ({device.name}, {device.location}): {device.status}, "
            f"last seen {format_timestamp(device.last_seen)}, AQI {aqi}",
            fg=color,
        )

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Coroutine, Dict, Optional, TypeVar

import typer

from cli.client import ApiClient, DeviceListing, ReadingData
from cli.config import CLIConfig, load_config
from cli.fetcher import FetcherSnapshot, FetchState, LiveReadingFetcher
from cli.render import render_classification, render_devices, render_history, render_reading, render_snapshot
from exceptions import AirQualityError

T = TypeVar("T")


@dataclass
class CLIState:
    config: CLIConfig


app = typer.Typer(
    help="Utilities for reading and watching air quality sensors.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        raise typer.Exit(code=1, message="CLI state is uninitialized.")
    return state


def _run(coro: Coroutine[Any, Any, T]) -> T:
    try:
        return asyncio.run(coro)
    except AirQualityError as exc:
        typer.secho(f"{exc.message} ({exc.hint})", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="API base URL (defaults to API_BASE_URL env or http://localhost:8000).",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="Seconds before a request is abandoned.",
    ),
) -> None:
    """Entry point for the CLI."""
    ctx.obj = CLIState(config=load_config(base_url=base_url, timeout=timeout))


@app.command("reading")
def reading_command(
    ctx: typer.Context,
    device_id: str = typer.Argument(..., help="Device identifier, e.g. Esp_353."),
    historical: bool = typer.Option(False, "--historical/--current", help="Show the last 24h instead."),
) -> None:
    """Fetch the latest reading (or history) of a device once."""
    state = _get_state(ctx)

    async def fetch() -> ReadingData:
        async with ApiClient(state.config) as client:
            return await client.fetch_readings(device_id, historical=historical)

    data = _run(fetch())
    if isinstance(data, list):
        render_history(data)
    else:
        render_reading(data)


@app.command("watch")
def watch_command(
    ctx: typer.Context,
    device_id: str = typer.Argument(..., help="Device identifier to follow."),
    interval: Optional[float] = typer.Option(
        None,
        "--interval",
        "-i",
        help="Seconds between refreshes (defaults to CLI_REFRESH_INTERVAL or 10).",
    ),
    count: int = typer.Option(
        0,
        "--count",
        "-n",
        min=0,
        help="Stop after this many fetch attempts; 0 follows until interrupted.",
    ),
) -> None:
    """Poll a device and print every update until interrupted."""
    state = _get_state(ctx)
    refresh_interval = interval if interval is not None else state.config.refresh_interval

    async def follow() -> None:
        finished = asyncio.Event()
        attempts = 0

        def on_change(snapshot: FetcherSnapshot) -> None:
            nonlocal attempts
            if snapshot.state not in (FetchState.ready, FetchState.error):
                return
            attempts += 1
            render_snapshot(snapshot)
            if count and attempts >= count:
                finished.set()

        async with ApiClient(state.config) as client:
            fetcher = LiveReadingFetcher(
                client,
                device_id,
                refresh_interval=refresh_interval,
                on_change=on_change,
            )
            async with fetcher:
                await finished.wait()

    typer.echo(f"Watching {device_id} on {state.config.base_url} every {refresh_interval:g}s ...")
    try:
        _run(follow())
    except KeyboardInterrupt:
        typer.echo("Stopped.")


@app.command("devices")
def devices_command(ctx: typer.Context) -> None:
    """List known devices with their online/offline status."""
    state = _get_state(ctx)

    async def fetch() -> DeviceListing:
        async with ApiClient(state.config) as client:
            return await client.list_devices()

    render_devices(_run(fetch()))


@app.command("push")
def push_command(
    ctx: typer.Context,
    device_id: str = typer.Argument(..., help="Device identifier."),
    aqi: float = typer.Option(..., "--aqi", min=0, help="Air quality index."),
    co2: Optional[float] = typer.Option(None, "--co2"),
    pm25: Optional[float] = typer.Option(None, "--pm25"),
    voc: Optional[float] = typer.Option(None, "--voc"),
    co: Optional[float] = typer.Option(None, "--co"),
    no2: Optional[float] = typer.Option(None, "--no2"),
    temperature: Optional[float] = typer.Option(None, "--temperature"),
    humidity: Optional[float] = typer.Option(None, "--humidity"),
    location: Optional[str] = typer.Option(None, "--location"),
) -> None:
    """Submit a reading on behalf of a device."""
    state = _get_state(ctx)
    payload: Dict[str, Any] = {"deviceId": device_id, "aqi": aqi}
    optional = {
        "co2": co2,
        "pm25": pm25,
        "voc": voc,
        "co": co,
        "no2": no2,
        "temperature": temperature,
        "humidity": humidity,
        "location": location,
    }
    payload.update({key: value for key, value in optional.items() if value is not None})

    async def send() -> str:
        async with ApiClient(state.config) as client:
            return await client.push_reading(payload)

    reading_id = _run(send())
    typer.secho(f"Reading saved. id={reading_id}", fg=typer.colors.GREEN)


@app.command("classify")
def classify_command(
    aqi: float = typer.Argument(..., help="AQI value to classify."),
) -> None:
    """Show the AQI bucket, colour and health message for a value."""
    try:
        render_classification(aqi)
    except AirQualityError as exc:
        typer.secho(exc.message, fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

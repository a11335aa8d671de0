"""Polling controller that keeps the latest reading of one device fresh."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from enum import Enum
from types import TracebackType
from typing import Any, Awaitable, Callable, List, Optional, Protocol, Set, Type, Union

from exceptions import AirQualityError
from models.records import Reading

logger = logging.getLogger(__name__)

ReadingData = Union[Reading, List[Reading]]


class ReadingSource(Protocol):
    async def fetch_readings(self, device_id: str, historical: bool = False) -> ReadingData: ...


class FetchState(str, Enum):
    idle = "idle"
    loading = "loading"
    ready = "ready"
    error = "error"


@dataclass(frozen=True)
class FetcherSnapshot:
    """What consumers see after every state change."""

    device_id: str
    state: FetchState = FetchState.idle
    data: Optional[ReadingData] = None
    error: Optional[str] = None
    is_connected: bool = False
    last_updated: Optional[datetime] = None

    @property
    def loading(self) -> bool:
        return self.state is FetchState.loading


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class LiveReadingFetcher:
    """Fetches the current reading (or history window) of ``device_id`` on an interval.

    On failure the last good ``data`` is kept, ``is_connected`` drops to False and
    ``error`` carries a readable message. Responses are applied in the order they
    complete. Every request remembers the epoch it was issued in; :meth:`set_device`
    and :meth:`close` start a new epoch so responses that arrive afterwards are
    dropped instead of landing on the wrong device or a closed fetcher.
    """

    def __init__(
        self,
        source: ReadingSource,
        device_id: str,
        refresh_interval: float = 10.0,
        auto_refresh: bool = True,
        historical: bool = False,
        on_change: Optional[Callable[[FetcherSnapshot], Any]] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        now: Callable[[], datetime] = _utcnow,
    ) -> None:
        if refresh_interval <= 0:
            raise ValueError("refresh_interval must be positive.")
        self.source = source
        self.refresh_interval = refresh_interval
        self.auto_refresh = auto_refresh
        self.historical = historical
        self._on_change = on_change
        self._sleep = sleep
        self._now = now
        self._snapshot = FetcherSnapshot(device_id=device_id)
        self._epoch = 0
        self._started = False
        self._closed = False
        self._timer: Optional[asyncio.Task[None]] = None
        self._inflight: Set[asyncio.Task[None]] = set()

    @property
    def snapshot(self) -> FetcherSnapshot:
        return self._snapshot

    @property
    def device_id(self) -> str:
        return self._snapshot.device_id

    @property
    def closed(self) -> bool:
        return self._closed

    async def start(self) -> None:
        """Run the first fetch and, with ``auto_refresh``, schedule the repeating ones."""
        if self._started or self._closed:
            return
        self._started = True
        epoch = self._epoch
        await self._fetch()
        self._schedule(epoch)

    def refresh(self) -> Optional["asyncio.Task[None]"]:
        """Trigger an immediate fetch without waiting for the next tick.

        Safe to call while another fetch is still in flight. Returns the task so
        callers can await it, or ``None`` once the fetcher is closed.
        """
        if self._closed:
            return None
        task = asyncio.get_running_loop().create_task(self._fetch())
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)
        return task

    async def set_device(self, device_id: str) -> None:
        """Switch to another device, dropping any response still owed to the old one."""
        if self._closed or device_id == self.device_id:
            return
        self._epoch += 1
        epoch = self._epoch
        await self._cancel_tasks()
        if self._closed or epoch != self._epoch:
            return
        self._publish(FetcherSnapshot(device_id=device_id))
        if self._started:
            await self._fetch()
            self._schedule(epoch)

    async def close(self) -> None:
        """Tear down: stop the timer and make late responses no-ops."""
        if self._closed:
            return
        self._closed = True
        self._epoch += 1
        await self._cancel_tasks()
        logger.debug("Fetcher closed", extra={"device_id": self.device_id, "epoch": self._epoch})

    async def __aenter__(self) -> "LiveReadingFetcher":
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        await self.close()

    def _schedule(self, epoch: int) -> None:
        """Start the timer for ``epoch`` unless a newer epoch or teardown superseded it."""
        if not self.auto_refresh or self._closed or epoch != self._epoch:
            return
        if self._timer is not None and not self._timer.done():
            self._timer.cancel()
        self._timer = asyncio.get_running_loop().create_task(self._tick_forever())

    async def _tick_forever(self) -> None:
        epoch = self._epoch
        while not self._closed and epoch == self._epoch:
            await self._sleep(self.refresh_interval)
            if self._closed or epoch != self._epoch:
                return
            await self._fetch()

    async def _cancel_tasks(self) -> None:
        current = asyncio.current_task()
        tasks = [
            task
            for task in (self._timer, *self._inflight)
            if task is not None and task is not current and not task.done()
        ]
        self._timer = None
        self._inflight.clear()
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    async def _fetch(self) -> None:
        if self._closed:
            return
        epoch = self._epoch
        device_id = self.device_id

        if not device_id:
            self._apply(epoch, state=FetchState.idle)
            return

        self._apply(epoch, state=FetchState.loading)
        try:
            data = await self.source.fetch_readings(device_id, historical=self.historical)
        except AirQualityError as exc:
            self._fail(epoch, exc.message, type(exc).__name__)
            return
        except Exception as exc:
            logger.exception("Unexpected error fetching readings", extra={"device_id": device_id})
            self._fail(epoch, str(exc) or "Failed to fetch data", type(exc).__name__)
            return

        if not data:
            self._fail(epoch, "No data received from API", "EmptyResultError")
            return

        self._apply(
            epoch,
            state=FetchState.ready,
            data=data,
            error=None,
            is_connected=True,
            last_updated=self._now(),
        )

    def _fail(self, epoch: int, message: str, reason: str) -> None:
        if self._apply(epoch, state=FetchState.error, error=message, is_connected=False):
            logger.warning(
                "Error fetching sensor data: %s",
                message,
                extra={"device_id": self.device_id, "reason": reason},
            )

    def _apply(self, epoch: int, **changes: Any) -> bool:
        if self._closed or epoch != self._epoch:
            logger.debug(
                "Discarding stale fetch result",
                extra={"device_id": self.device_id, "epoch": epoch},
            )
            return False
        self._publish(replace(self._snapshot, **changes))
        return True

    def _publish(self, snapshot: FetcherSnapshot) -> None:
        self._snapshot = snapshot
        if self._on_change is None:
            return
        try:
            self._on_change(snapshot)
        except Exception:
            logger.exception(
                "on_change callback failed",
                extra={"device_id": snapshot.device_id, "status": snapshot.state.value},
            )

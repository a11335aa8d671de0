"""Common interface for reading storage backends."""

from __future__ import annotations

from abc import ABC, abstractmethod
from types import TracebackType
from typing import Iterable, List, Optional, Type

from models.records import Reading


class ReadingStore(ABC):
    """A backend holding readings per device.

    Instances are created by :func:`datastore.build_store` and owned by the
    application lifespan, which pairs :meth:`connect` with :meth:`close`.
    Backend failures surface as :class:`exceptions.BackendError`.
    """

    backend = "abstract"

    async def connect(self) -> None:
        return None

    async def close(self) -> None:
        return None

    async def __aenter__(self) -> "ReadingStore":
        await self.connect()
        return self

    async def __aexit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        await self.close()

    @abstractmethod
    async def save(self, reading: Reading) -> str:
        """Persist ``reading`` and return its id."""

    @abstractmethod
    async def recent(self, device_id: Optional[str] = None, limit: int = 100) -> List[Reading]:
        """Return up to ``limit`` readings, newest first."""

    @abstractmethod
    async def history(self, device_id: str, hours: float) -> List[Reading]:
        """Return readings of ``device_id`` from the last ``hours``, oldest first."""

    async def latest(self, device_id: str) -> Optional[Reading]:
        readings = await self.recent(device_id, limit=1)
        return readings[0] if readings else None


def newest_first(readings: Iterable[Reading], limit: Optional[int] = None) -> List[Reading]:
    ordered = sorted(readings, key=lambda reading: (reading.timestamp, reading.id), reverse=True)
    return ordered if limit is None else ordered[:limit]

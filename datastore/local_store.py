from __future__ import annotations

import json
import logging
from datetime import datetime, timedelta, timezone
from pathlib import Path
from threading import Lock
from typing import Callable, Dict, List, Optional

from datastore.base import ReadingStore, newest_first
from exceptions import BackendError
from models.records import Reading

logger = logging.getLogger(__name__)


class LocalReadingStore(ReadingStore):
    """In-process store laid out as ``{device_id: {reading_id: payload}}``.

    When ``persistence_path`` is set every write is flushed to a JSON file and
    the file is reloaded on :meth:`connect`.
    """

    backend = "local"

    def __init__(
        self,
        persistence_path: Optional[Path] = None,
        now: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self.persistence_path = persistence_path
        self._now = now
        self._items: Dict[str, Dict[str, Reading]] = {}
        self._lock = Lock()

    async def connect(self) -> None:
        if not self.persistence_path:
            return
        self.persistence_path.parent.mkdir(parents=True, exist_ok=True)
        with self._lock:
            self._load_from_disk()

    async def save(self, reading: Reading) -> str:
        with self._lock:
            self._items.setdefault(reading.device_id, {})[reading.id] = reading
            self._persist()
        return reading.id

    async def recent(self, device_id: Optional[str] = None, limit: int = 100) -> List[Reading]:
        with self._lock:
            if device_id is not None:
                readings = list(self._items.get(device_id, {}).values())
            else:
                readings = [
                    reading for bucket in self._items.values() for reading in bucket.values()
                ]
        return newest_first(readings, limit)

    async def history(self, device_id: str, hours: float) -> List[Reading]:
        start = self._now() - timedelta(hours=hours)
        with self._lock:
            readings = [
                reading
                for reading in self._items.get(device_id, {}).values()
                if reading.timestamp >= start
            ]
        return sorted(readings, key=lambda reading: reading.timestamp)

    def _persist(self) -> None:
        if not self.persistence_path:
            return
        payload = {
            device_id: {reading_id: item.to_payload() for reading_id, item in bucket.items()}
            for device_id, bucket in self._items.items()
        }
        try:
            self.persistence_path.write_text(json.dumps(payload, indent=2, sort_keys=True))
        except OSError as exc:
            raise BackendError(f"Unable to write {self.persistence_path}: {exc}") from exc

    def _load_from_disk(self) -> None:
        if not self.persistence_path or not self.persistence_path.exists():
            return

        try:
            data = json.loads(self.persistence_path.read_text() or "{}")
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning(
                "Ignoring unreadable store file %s",
                self.persistence_path,
                extra={"reason": str(exc), "backend": self.backend},
            )
            data = {}
        if not isinstance(data, dict):
            data = {}

        for device_id, bucket in data.items():
            if not isinstance(bucket, dict):
                continue
            for reading_id, payload in bucket.items():
                try:
                    reading = Reading.from_payload(payload)
                except (AttributeError, ValueError) as exc:
                    logger.warning(
                        "Skipping malformed stored reading",
                        extra={"device_id": device_id, "reading_id": reading_id, "reason": str(exc)},
                    )
                    continue
                self._items.setdefault(device_id, {})[reading_id] = reading

"""Firebase Realtime Database backend using the REST API."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional

import httpx

from datastore.base import ReadingStore, newest_first
from exceptions import BackendError
from models.records import Reading, format_timestamp

logger = logging.getLogger(__name__)


class FirebaseReadingStore(ReadingStore):
    """Readings live under ``sensors/<device_id>/<reading_id>``."""

    backend = "firebase"

    def __init__(
        self,
        database_url: str,
        api_key: Optional[str] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        now: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self.database_url = database_url.rstrip("/")
        self._api_key = api_key
        self._timeout = timeout
        self._transport = transport
        self._now = now
        self._client: Optional[httpx.AsyncClient] = None

    async def connect(self) -> None:
        if self._client is not None:
            return
        self._client = httpx.AsyncClient(
            base_url=self.database_url,
            timeout=self._timeout,
            transport=self._transport,
        )
        logger.info("Connected to Firebase Realtime Database %s", self.database_url)

    async def close(self) -> None:
        if self._client is None:
            return
        await self._client.aclose()
        self._client = None

    async def save(self, reading: Reading) -> str:
        await self._request(
            "PUT",
            f"/sensors/{reading.device_id}/{reading.id}.json",
            body=reading.to_payload(),
        )
        return reading.id

    async def recent(self, device_id: Optional[str] = None, limit: int = 100) -> List[Reading]:
        if device_id is not None:
            data = await self._request("GET", f"/sensors/{device_id}.json")
            payloads = (data or {}).values()
        else:
            data = await self._request("GET", "/sensors.json")
            payloads = (
                payload for bucket in (data or {}).values() for payload in (bucket or {}).values()
            )
        return newest_first(self._parse(payloads), limit)

    async def history(self, device_id: str, hours: float) -> List[Reading]:
        start = self._now() - timedelta(hours=hours)
        data = await self._request(
            "GET",
            f"/sensors/{device_id}.json",
            params={
                "orderBy": json.dumps("timestamp"),
                "startAt": json.dumps(format_timestamp(start)),
            },
        )
        readings = [
            reading for reading in self._parse((data or {}).values()) if reading.timestamp >= start
        ]
        return sorted(readings, key=lambda reading: reading.timestamp)

    async def _request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, str]] = None,
        body: Any = None,
    ) -> Any:
        if self._client is None:
            raise BackendError("Firebase store is not connected.")

        query = dict(params or {})
        if self._api_key:
            query["auth"] = self._api_key

        try:
            response = await self._client.request(method, path, params=query, json=body)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as exc:
            raise BackendError(
                f"Firebase returned status {exc.response.status_code} for {path}."
            ) from exc
        except httpx.HTTPError as exc:
            raise BackendError(f"Unable to reach Firebase: {exc}") from exc
        except ValueError as exc:
            raise BackendError(f"Firebase returned a malformed payload for {path}.") from exc

    @staticmethod
    def _parse(payloads: Iterable[Any]) -> List[Reading]:
        readings: List[Reading] = []
        for payload in payloads:
            if not isinstance(payload, dict):
                continue
            try:
                readings.append(Reading.from_payload(payload))
            except ValueError as exc:
                logger.warning("Skipping malformed Firebase reading", extra={"reason": str(exc)})
        return readings

from __future__ import annotations

from pathlib import Path
from typing import Optional

from datastore.base import ReadingStore
from datastore.firebase_store import FirebaseReadingStore
from datastore.local_store import LocalReadingStore
from datastore.thingspeak_store import ThingSpeakReadingStore
from exceptions import ValidationError
from settings import Settings, get_settings


def build_store(settings: Optional[Settings] = None) -> ReadingStore:
    """Construct (but do not connect) the backend named by ``DATABASE_TYPE``."""
    settings = settings or get_settings()

    if settings.database_type == "firebase":
        if not settings.firebase_url:
            raise ValidationError("DATABASE_TYPE=firebase requires FIREBASE_DATABASE_URL.")
        return FirebaseReadingStore(
            database_url=settings.firebase_url,
            api_key=settings.firebase_api_key,
            timeout=settings.store_timeout,
        )

    if settings.database_type == "thingspeak":
        if not settings.thingspeak_channel_url:
            raise ValidationError("DATABASE_TYPE=thingspeak requires THINGSPEAK_CHANNEL_URL.")
        return ThingSpeakReadingStore(
            channel_url=settings.thingspeak_channel_url,
            write_url=settings.thingspeak_write_url,
            api_key=settings.thingspeak_api_key,
            timeout=settings.store_timeout,
        )

    path = Path(settings.local_store_path) if settings.local_store_path else None
    return LocalReadingStore(persistence_path=path)

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional


_DATABASE_TYPE_ENV = "DATABASE_TYPE"
_LOCAL_STORE_PATH_ENV = "LOCAL_STORE_PATH"
_FIREBASE_URL_ENV = "FIREBASE_DATABASE_URL"
_FIREBASE_KEY_ENV = "FIREBASE_API_KEY"
_THINGSPEAK_CHANNEL_ENV = "THINGSPEAK_CHANNEL_URL"
_THINGSPEAK_WRITE_ENV = "THINGSPEAK_WRITE_URL"
_THINGSPEAK_KEY_ENV = "THINGSPEAK_API_KEY"
_SAMPLE_LIMIT_ENV = "DEVICE_SAMPLE_LIMIT"
_STALENESS_ENV = "DEVICE_STALENESS_MINUTES"
_STORE_TIMEOUT_ENV = "STORE_TIMEOUT_SECONDS"
_LOG_LEVEL_ENV = "LOG_LEVEL"

SUPPORTED_DATABASE_TYPES = ("local", "firebase", "thingspeak")
_LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


@dataclass(frozen=True)
class Settings:
    database_type: str
    local_store_path: Optional[str]
    firebase_url: Optional[str]
    firebase_api_key: Optional[str]
    thingspeak_channel_url: Optional[str]
    thingspeak_write_url: str
    thingspeak_api_key: Optional[str]
    device_sample_limit: int
    device_staleness_minutes: float
    store_timeout: float
    log_level: str


def read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def _read_optional_env(name: str, default: Optional[str]) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or None


def _read_positive_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = int(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def read_positive_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = float(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_database_type(default: str) -> str:
    candidate = read_str_env(_DATABASE_TYPE_ENV, default).lower()
    return candidate if candidate in SUPPORTED_DATABASE_TYPES else default


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    candidate = candidate.upper()
    return candidate if candidate in _LOG_LEVELS else default


@lru_cache
def get_settings() -> Settings:
    return Settings(
        database_type=_read_database_type("local"),
        local_store_path=_read_optional_env(_LOCAL_STORE_PATH_ENV, "./tmp/readings.json"),
        firebase_url=_read_optional_env(_FIREBASE_URL_ENV, None),
        firebase_api_key=_read_optional_env(_FIREBASE_KEY_ENV, None),
        thingspeak_channel_url=_read_optional_env(_THINGSPEAK_CHANNEL_ENV, None),
        thingspeak_write_url=read_str_env(
            _THINGSPEAK_WRITE_ENV, "https://api.thingspeak.com/update"
        ),
        thingspeak_api_key=_read_optional_env(_THINGSPEAK_KEY_ENV, None),
        device_sample_limit=_read_positive_int(_SAMPLE_LIMIT_ENV, 50),
        device_staleness_minutes=read_positive_float(_STALENESS_ENV, 10.0),
        store_timeout=read_positive_float(_STORE_TIMEOUT_ENV, 10.0),
        log_level=_read_log_level("INFO"),
    )

"""
Exception hierarchy shared by the API, storage backends, and the CLI fetcher.

Each error carries the HTTP status it maps to, a specific message and a
generic hint for the user, so callers can report it without inspecting the type.
"""

from __future__ import annotations


class AirQualityError(Exception):
    """Base exception for the air quality service."""

    status_code = 500
    default_message = "Internal server error"
    hint = "An unexpected error occurred. Please check server logs."

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class NetworkError(AirQualityError):
    """Transport failure or timeout talking to a remote endpoint."""

    status_code = 503
    default_message = "Network error"
    hint = "Network error - Please check your connection."


class NotFoundError(AirQualityError):
    """The requested device has no readings."""

    status_code = 404
    default_message = "Device not found"
    hint = "Device not found in database. Please ensure the device is sending data."


class BackendError(AirQualityError):
    """The storage backend failed or returned something unusable."""

    status_code = 500
    default_message = "Database query failed"
    hint = "Unable to fetch data from the database. Please check the database configuration."


class ValidationError(AirQualityError):
    """A request body or argument is malformed."""

    status_code = 400
    default_message = "Invalid request"
    hint = "The request body is invalid."


class EmptyResultError(AirQualityError):
    """The backend answered but holds no data yet."""

    status_code = 404
    default_message = "No sensor data found"
    hint = "No data found in database. Please ensure your devices are sending data."

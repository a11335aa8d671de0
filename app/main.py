from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.api import router
from app.schemas import ErrorResponse
from datastore.base import ReadingStore
from datastore.factory import build_store
from exceptions import AirQualityError, ValidationError
from logging_config import configure_logging

logger = logging.getLogger(__name__)


def _error_response(
    status_code: int, error: str, message: str, device_id: Optional[str]
) -> JSONResponse:
    body = ErrorResponse(error=error, message=message, device_id=device_id)
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(by_alias=True, exclude_none=True),
    )


async def handle_air_quality_error(request: Request, exc: AirQualityError) -> JSONResponse:
    device_id = request.query_params.get("deviceId")
    log = logger.error if exc.status_code >= 500 else logger.info
    log(
        "Request failed: %s",
        exc.message,
        extra={"device_id": device_id, "status": exc.status_code, "reason": type(exc).__name__},
    )
    return _error_response(exc.status_code, exc.message, exc.hint, device_id)


async def handle_request_validation_error(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    device_id = request.query_params.get("deviceId")
    details = "; ".join(
        f"{'.'.join(str(part) for part in error.get('loc', ()))}: {error.get('msg')}"
        for error in exc.errors()
    )
    logger.info(
        "Rejected malformed request: %s",
        details,
        extra={"device_id": device_id, "status": ValidationError.status_code},
    )
    return _error_response(
        ValidationError.status_code,
        details or ValidationError.default_message,
        ValidationError.hint,
        device_id,
    )


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    device_id = request.query_params.get("deviceId")
    logger.exception(
        "Unhandled error on %s",
        request.url.path,
        extra={"device_id": device_id, "reason": type(exc).__name__},
    )
    return _error_response(
        AirQualityError.status_code,
        AirQualityError.default_message,
        AirQualityError.hint,
        device_id,
    )


def create_app(store: Optional[ReadingStore] = None) -> FastAPI:
    """Build the API. ``store`` overrides the backend selected by ``DATABASE_TYPE``."""
    configure_logging()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        active = store if store is not None else build_store()
        await active.connect()
        app.state.store = active
        logger.info("Reading store ready", extra={"backend": active.backend})
        try:
            yield
        finally:
            await active.close()

    app = FastAPI(
        title="Air Quality Monitor",
        description="Sensor readings, AQI classification and device status for IoT air-quality monitors.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.add_exception_handler(AirQualityError, handle_air_quality_error)
    app.add_exception_handler(RequestValidationError, handle_request_validation_error)
    app.add_exception_handler(Exception, handle_unexpected_error)
    app.include_router(router)
    return app


app = create_app()

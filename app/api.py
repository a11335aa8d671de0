"""HTTP route definitions for the service."""

from __future__ import annotations

from datetime import timedelta
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, Query, Request, status

from app.schemas import (
    ClassificationOut,
    DeviceOut,
    DevicesResponse,
    ErrorResponse,
    ReadingOut,
    ResponseType,
    SaveResponse,
    SensorResponse,
    ThresholdOut,
)
from datastore.base import ReadingStore
from services.classifier import THRESHOLDS
from services.demo import DEMO_DEVICE_ID, generate_demo_reading, generate_realtime_reading
from services.directory import DeviceDirectory
from services.readings import ReadingService
from settings import get_settings

router = APIRouter()

_ERROR_RESPONSES: Dict[int | str, Dict[str, Any]] = {
    status.HTTP_404_NOT_FOUND: {"model": ErrorResponse},
    status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ErrorResponse},
}


def get_store(request: Request) -> ReadingStore:
    return request.app.state.store


def get_reading_service(store: ReadingStore = Depends(get_store)) -> ReadingService:
    return ReadingService(store)


def get_directory(store: ReadingStore = Depends(get_store)) -> DeviceDirectory:
    settings = get_settings()
    return DeviceDirectory(
        store,
        sample_limit=settings.device_sample_limit,
        staleness=timedelta(minutes=settings.device_staleness_minutes),
    )


@router.get(
    "/sensors",
    response_model=SensorResponse,
    response_model_exclude_none=True,
    responses=_ERROR_RESPONSES,
    summary="Latest reading for a device, its history, or recent readings across devices.",
)
async def get_sensors(
    device_id: Optional[str] = Query(None, alias="deviceId"),
    historical: bool = Query(False),
    hours: float = Query(24.0, gt=0, description="History window when historical=true."),
    service: ReadingService = Depends(get_reading_service),
) -> SensorResponse:
    if device_id == DEMO_DEVICE_ID:
        reading = generate_demo_reading()
        return SensorResponse(
            data=ReadingOut.from_reading(reading),
            type=ResponseType.current,
            device_id=device_id,
            source="mock",
            message="Mock data for demonstration",
            classification=ClassificationOut.for_aqi(reading.aqi),
        )

    if device_id and historical:
        readings = await service.history(device_id, hours)
        return SensorResponse(
            data=[ReadingOut.from_reading(reading) for reading in readings],
            type=ResponseType.historical,
            device_id=device_id,
        )

    if device_id:
        reading = await service.current(device_id)
        return SensorResponse(
            data=ReadingOut.from_reading(reading),
            type=ResponseType.current,
            device_id=device_id,
            classification=ClassificationOut.for_aqi(reading.aqi),
        )

    readings = await service.recent(limit=get_settings().device_sample_limit)
    return SensorResponse(
        data=[ReadingOut.from_reading(reading) for reading in readings],
        type=ResponseType.historical,
    )


@router.post(
    "/sensors",
    response_model=SaveResponse,
    responses={status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse}, **_ERROR_RESPONSES},
    summary="Store a reading pushed by a device.",
)
async def post_sensors(
    payload: Any = Body(..., description="Reading fields; deviceId and aqi are required."),
    service: ReadingService = Depends(get_reading_service),
) -> SaveResponse:
    reading_id = await service.record(payload)
    return SaveResponse(id=reading_id)


@router.get(
    "/sensors/realtime",
    response_model=SensorResponse,
    response_model_exclude_none=True,
    summary="Simulated realtime reading.",
)
async def get_realtime(
    device_id: Optional[str] = Query(None, alias="deviceId"),
) -> SensorResponse:
    target = device_id or "esp32_001"
    reading = generate_realtime_reading(target)
    return SensorResponse(
        data=ReadingOut.from_reading(reading),
        type=ResponseType.realtime,
        device_id=target,
        source="mock",
        classification=ClassificationOut.for_aqi(reading.aqi),
    )


@router.get(
    "/devices",
    response_model=DevicesResponse,
    response_model_exclude_none=True,
    summary="Known devices with online/offline status; falls back to placeholders.",
)
async def get_devices(directory: DeviceDirectory = Depends(get_directory)) -> DevicesResponse:
    result = await directory.list_devices()
    return DevicesResponse(
        data=[DeviceOut.from_device(device) for device in result.devices],
        fallback=result.fallback,
        message=result.message,
    )


@router.get(
    "/classify",
    response_model=ClassificationOut,
    responses={status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse}},
    summary="Classify an AQI value.",
)
async def classify(aqi: float = Query(...)) -> ClassificationOut:
    return ClassificationOut.for_aqi(aqi)


@router.get(
    "/thresholds",
    response_model=List[ThresholdOut],
    summary="Per-pollutant safe/danger levels and AQI weights.",
)
async def thresholds() -> List[ThresholdOut]:
    return [ThresholdOut.from_spec(spec) for spec in THRESHOLDS.values()]


@router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck(store: ReadingStore = Depends(get_store)) -> dict[str, str]:
    return {"status": "ok", "backend": store.backend}


@router.get(
    "/",
    summary="Root endpoint mirrors health information.",
    status_code=status.HTTP_200_OK,
)
async def root() -> dict[str, str]:
    return {"status": "ok", "detail": "See /health for service status."}

"""Pydantic schemas for the HTTP API layer."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from models.records import Device, Reading
from services.classifier import AqiBucket, Level, ThresholdSpec, aqi_color, classify_aqi


class ApiModel(BaseModel):
    """Base model emitting camelCase keys while accepting snake_case names."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ResponseType(str, Enum):
    current = "current"
    historical = "historical"
    realtime = "realtime"


class ReadingOut(ApiModel):
    id: str
    device_id: str
    timestamp: datetime
    aqi: float = Field(..., ge=0)
    co2: float
    pm25: float
    voc: float
    co: float
    no2: float
    temperature: float
    humidity: float
    location: str

    @classmethod
    def from_reading(cls, reading: Reading) -> "ReadingOut":
        return cls(
            id=reading.id,
            device_id=reading.device_id,
            timestamp=reading.timestamp,
            aqi=reading.aqi,
            co2=reading.co2,
            pm25=reading.pm25,
            voc=reading.voc,
            co=reading.co,
            no2=reading.no2,
            temperature=reading.temperature,
            humidity=reading.humidity,
            location=reading.location,
        )


class ClassificationOut(ApiModel):
    """Severity of an AQI value in both the detailed and coarse views."""

    aqi: float
    bucket: AqiBucket
    label: str
    color: str
    level: Level
    severity: int = Field(..., ge=0, le=5)
    health_message: str

    @classmethod
    def for_aqi(cls, aqi: float) -> "ClassificationOut":
        result = classify_aqi(aqi)
        return cls(
            aqi=aqi,
            bucket=result.bucket,
            label=result.label,
            color=result.color,
            level=aqi_color(aqi),
            severity=result.severity,
            health_message=result.health_message,
        )


class SensorResponse(ApiModel):
    success: bool = True
    data: Union[ReadingOut, List[ReadingOut]]
    type: ResponseType
    device_id: Optional[str] = None
    source: Optional[str] = None
    message: Optional[str] = None
    classification: Optional[ClassificationOut] = None


class SaveResponse(ApiModel):
    success: bool = True
    message: str = "Sensor data saved successfully"
    id: str


class DeviceOut(ApiModel):
    id: str
    name: str
    location: str
    status: str
    last_seen: datetime
    model: str
    firmware: str
    last_aqi: Optional[float] = Field(default=None, alias="lastAQI")
    last_temperature: Optional[float] = None
    last_humidity: Optional[float] = None

    @classmethod
    def from_device(cls, device: Device) -> "DeviceOut":
        return cls(
            id=device.id,
            name=device.name,
            location=device.location,
            status=device.status,
            last_seen=device.last_seen,
            model=device.model,
            firmware=device.firmware,
            last_aqi=device.last_aqi,
            last_temperature=device.last_temperature,
            last_humidity=device.last_humidity,
        )


class DevicesResponse(ApiModel):
    success: bool = True
    data: List[DeviceOut] = Field(default_factory=list)
    fallback: bool = False
    message: Optional[str] = None


class ThresholdOut(ApiModel):
    key: str
    name: str
    unit: str
    safe_level: float
    danger_level: float
    weight: float

    @classmethod
    def from_spec(cls, spec: ThresholdSpec) -> "ThresholdOut":
        return cls(
            key=spec.key,
            name=spec.name,
            unit=spec.unit,
            safe_level=spec.safe_level,
            danger_level=spec.danger_level,
            weight=spec.weight,
        )


class ErrorResponse(ApiModel):
    success: bool = False
    error: str
    message: str
    device_id: Optional[str] = None

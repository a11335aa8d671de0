"""AQI bucketing and per-pollutant threshold classification."""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Mapping, Tuple

from exceptions import ValidationError
from models.records import Reading


class AqiBucket(str, Enum):
    """Severity buckets ordered from safest to most severe."""

    good = "good"
    moderate = "moderate"
    unhealthy_sensitive = "unhealthy_sensitive"
    unhealthy = "unhealthy"
    very_unhealthy = "very_unhealthy"
    hazardous = "hazardous"


class Level(str, Enum):
    """Coarse three-colour view used for AQI cards and individual gases."""

    green = "green"
    yellow = "yellow"
    red = "red"


@dataclass(frozen=True)
class AqiClassification:
    bucket: AqiBucket
    label: str
    color: str
    severity: int
    health_message: str


@dataclass(frozen=True)
class ThresholdSpec:
    key: str
    name: str
    unit: str
    safe_level: float
    danger_level: float
    weight: float


# (upper bound inclusive, bucket, label, color, health message)
_AQI_LADDER: Tuple[Tuple[float, AqiBucket, str, str, str], ...] = (
    (
        50,
        AqiBucket.good,
        "Good",
        "green",
        "Air quality is considered satisfactory, and air pollution poses little or no risk.",
    ),
    (
        100,
        AqiBucket.moderate,
        "Moderate",
        "yellow",
        "Air quality is acceptable; however, there may be a moderate health concern "
        "for a very small number of people.",
    ),
    (
        150,
        AqiBucket.unhealthy_sensitive,
        "Unhealthy for Sensitive Groups",
        "orange",
        "Members of sensitive groups may experience health effects. "
        "The general public is not likely to be affected.",
    ),
    (
        200,
        AqiBucket.unhealthy,
        "Unhealthy",
        "red",
        "Everyone may begin to experience health effects; members of sensitive groups "
        "may experience more serious health effects.",
    ),
    (
        300,
        AqiBucket.very_unhealthy,
        "Very Unhealthy",
        "purple",
        "Health warnings of emergency conditions. The entire population is more likely to be affected.",
    ),
    (
        math.inf,
        AqiBucket.hazardous,
        "Hazardous",
        "maroon",
        "Health alert: everyone may experience more serious health effects.",
    ),
)

MODERATE_FRACTION = 0.7

THRESHOLDS: Dict[str, ThresholdSpec] = {
    spec.key: spec
    for spec in (
        ThresholdSpec("co2", "CO2", "ppm", safe_level=600, danger_level=1000, weight=0.30),
        ThresholdSpec("pm25", "PM2.5", "ug/m3", safe_level=12, danger_level=35, weight=0.25),
        ThresholdSpec("voc", "VOC", "mg/m3", safe_level=0.3, danger_level=0.5, weight=0.20),
        ThresholdSpec("co", "CO", "ppm", safe_level=9, danger_level=35, weight=0.15),
        ThresholdSpec("no2", "NO2", "ppb", safe_level=53, danger_level=100, weight=0.10),
    )
}


def check_weights(thresholds: Mapping[str, ThresholdSpec]) -> None:
    total = sum(spec.weight for spec in thresholds.values())
    if not math.isclose(total, 1.0):
        raise ValueError(f"Pollutant weights must sum to 1.0, got {total:g}.")


check_weights(THRESHOLDS)


def classify_aqi(aqi: float) -> AqiClassification:
    """Map an AQI value onto the six-bucket ladder.

    Breakpoints use ``<=`` so a value sitting on a breakpoint lands in the
    safer bucket; anything below zero is ``good``.
    """
    for severity, (upper, bucket, label, color, message) in enumerate(_AQI_LADDER):
        if aqi <= upper:
            return AqiClassification(bucket, label, color, severity, message)
    # NaN compares false against every bound.
    raise ValidationError(f"AQI value {aqi!r} is not a number.")


def aqi_color(aqi: float) -> Level:
    if aqi <= 50:
        return Level.green
    if aqi <= 100:
        return Level.yellow
    return Level.red


def classify_pollutant(value: float, safe_bound: float, danger_bound: float) -> Level:
    if value <= safe_bound:
        return Level.green
    if value <= danger_bound:
        return Level.yellow
    return Level.red


def pollutant_bounds(threshold: float) -> Tuple[float, float]:
    """Return ``(safe, danger)`` bounds with the moderate cut-off at 70% of ``threshold``."""
    return threshold * MODERATE_FRACTION, threshold


def classify_reading(reading: Reading) -> Dict[str, Level]:
    """Classify each weighted gas of a reading against its danger level."""
    levels: Dict[str, Level] = {}
    for key, spec in THRESHOLDS.items():
        safe, danger = pollutant_bounds(spec.danger_level)
        levels[key] = classify_pollutant(getattr(reading, key), safe, danger)
    return levels


def weighted_aqi(gas_scores: Mapping[str, float]) -> float:
    """Combine per-gas scores as ``sum(score_i * weight_i)``.

    Scores must already be normalized to the common 0-500 AQI scale; raw
    concentrations are not converted here.
    """
    missing = sorted(set(THRESHOLDS) - set(gas_scores))
    if missing:
        raise ValidationError(f"Missing gas scores: {', '.join(missing)}")
    return sum(float(gas_scores[key]) * spec.weight for key, spec in THRESHOLDS.items())

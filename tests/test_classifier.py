"""Unit tests for AQI and pollutant classification."""

from __future__ import annotations

import math
from datetime import datetime, timezone

import pytest

from exceptions import ValidationError
from models.records import Reading
from services.classifier import (
    THRESHOLDS,
    AqiBucket,
    Level,
    ThresholdSpec,
    aqi_color,
    check_weights,
    classify_aqi,
    classify_pollutant,
    classify_reading,
    pollutant_bounds,
    weighted_aqi,
)


@pytest.mark.parametrize(
    ("aqi", "bucket"),
    [
        (0, AqiBucket.good),
        (50, AqiBucket.good),
        (51, AqiBucket.moderate),
        (100, AqiBucket.moderate),
        (101, AqiBucket.unhealthy_sensitive),
        (150, AqiBucket.unhealthy_sensitive),
        (151, AqiBucket.unhealthy),
        (200, AqiBucket.unhealthy),
        (201, AqiBucket.very_unhealthy),
        (300, AqiBucket.very_unhealthy),
        (301, AqiBucket.hazardous),
        (10_000, AqiBucket.hazardous),
    ],
)
def test_classify_aqi_breakpoints_belong_to_safer_bucket(aqi: float, bucket: AqiBucket) -> None:
    assert classify_aqi(aqi).bucket is bucket


def test_classify_aqi_labels_and_colors() -> None:
    result = classify_aqi(120)

    assert result.label == "Unhealthy for Sensitive Groups"
    assert result.color == "orange"
    assert result.severity == 2
    assert "sensitive groups" in result.health_message


def test_negative_aqi_is_good() -> None:
    assert classify_aqi(-20).bucket is AqiBucket.good
    assert aqi_color(-20) is Level.green


def test_classify_aqi_severity_is_monotonic() -> None:
    values = [x / 2 for x in range(-20, 801)]
    severities = [classify_aqi(value).severity for value in values]

    assert severities == sorted(severities)
    assert severities[0] == 0
    assert severities[-1] == 5


def test_classify_aqi_rejects_nan() -> None:
    with pytest.raises(ValidationError):
        classify_aqi(math.nan)


def test_coarse_aqi_color() -> None:
    assert aqi_color(50) is Level.green
    assert aqi_color(50.5) is Level.yellow
    assert aqi_color(100) is Level.yellow
    assert aqi_color(100.1) is Level.red


def test_classify_pollutant_bounds() -> None:
    safe, danger = 12.0, 35.0

    assert classify_pollutant(safe, safe, danger) is Level.green
    assert classify_pollutant(safe + 0.01, safe, danger) is Level.yellow
    assert classify_pollutant(danger, safe, danger) is Level.yellow
    assert classify_pollutant(danger + 0.01, safe, danger) is Level.red


def test_pollutant_bounds_use_seventy_percent_cutoff() -> None:
    safe, danger = pollutant_bounds(1000)

    assert safe == pytest.approx(700)
    assert danger == 1000


def test_classify_reading_uses_danger_levels() -> None:
    reading = Reading(
        id="r-1",
        device_id="Esp_353",
        timestamp=datetime(2024, 1, 1, tzinfo=timezone.utc),
        aqi=40,
        co2=650,
        pm25=30,
        voc=0.6,
        co=3,
        no2=100,
    )

    levels = classify_reading(reading)

    assert levels == {
        "co2": Level.green,
        "pm25": Level.yellow,
        "voc": Level.red,
        "co": Level.green,
        "no2": Level.yellow,
    }


def test_threshold_weights_sum_to_one() -> None:
    assert sum(spec.weight for spec in THRESHOLDS.values()) == pytest.approx(1.0)


def test_unbalanced_weights_are_rejected() -> None:
    skewed = {"co2": ThresholdSpec("co2", "CO2", "ppm", safe_level=600, danger_level=1000, weight=0.5)}

    check_weights(THRESHOLDS)
    with pytest.raises(ValueError):
        check_weights(skewed)


def test_weighted_aqi_combines_scores() -> None:
    scores = {"co2": 100, "pm25": 200, "voc": 50, "co": 0, "no2": 10}

    assert weighted_aqi(scores) == pytest.approx(30 + 50 + 10 + 0 + 1)


def test_weighted_aqi_requires_every_gas() -> None:
    with pytest.raises(ValidationError) as excinfo:
        weighted_aqi({"co2": 10, "pm25": 10})

    assert "co, no2, voc" in str(excinfo.value)

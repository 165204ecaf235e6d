"""
Unit tests for the payload normalizer (defaulting policy).

Tests verify:
- A complete payload maps field for field.
- Every optional field gets its documented default.
- intensity-only payloads derive lightLevel.
- Invalid values are replaced by defaults instead of raising.
- A payload without a usable timestamp is rejected (returns None).

CHANGELOG:
- 2026-10-19: Cover servo default in a configured zone (STORY-115)
- 2026-10-15: Cover intensity-only payloads (STORY-106)
- 2026-10-13: Initial creation (STORY-105)

TODO:
- None
"""

from __future__ import annotations

from datetime import UTC, datetime
from zoneinfo import ZoneInfo

import pytest
from tracker.src.models import GpsPosition
from tracker.src.normalizer import normalize_payload

_NOON = "2026-10-15T12:00:00Z"


class TestCompletePayload:
    """Device-reported values are kept."""

    def test_maps_all_fields(self) -> None:
        reading = normalize_payload(
            {
                "timestamp": _NOON,
                "lightLevel": 3500,
                "distance": 12.5,
                "motionDetected": True,
                "servoAngle": 120,
                "ledOn": False,
                "isNight": False,
                "temperature": 22.0,
                "humidity": 55.0,
                "gps": {"lat": 51.5, "lng": -0.12},
            }
        )

        assert reading is not None
        assert reading.timestamp == datetime(2026, 10, 15, 12, 0, tzinfo=UTC)
        assert reading.light_level == 3500
        assert reading.distance == 12.5
        assert reading.motion_detected is True
        assert reading.servo_angle == 120
        assert reading.led_on is False
        assert reading.is_night is False
        assert reading.temperature == 22.0
        assert reading.humidity == 55.0
        assert reading.gps == GpsPosition(lat=51.5, lng=-0.12)


class TestDefaults:
    """Missing fields take their defaults."""

    def test_timestamp_only_payload(self) -> None:
        reading = normalize_payload({"timestamp": _NOON})

        assert reading is not None
        assert reading.light_level == 0
        assert reading.distance == 400.0
        assert reading.temperature == 25.0
        assert reading.humidity is None
        assert reading.gps is None
        assert reading.motion_detected is False
        assert reading.is_night is True
        assert reading.led_on is True
        assert reading.servo_angle == 90

    def test_motion_derived_from_distance(self) -> None:
        reading = normalize_payload({"timestamp": _NOON, "distance": 10})
        assert reading is not None
        assert reading.motion_detected is True

    def test_led_follows_reported_night_flag(self) -> None:
        reading = normalize_payload({"timestamp": _NOON, "lightLevel": 100, "isNight": False})
        assert reading is not None
        assert reading.is_night is False
        assert reading.led_on is False

    def test_servo_derived_from_light_in_daylight(self) -> None:
        reading = normalize_payload({"timestamp": _NOON, "lightLevel": 4095})
        assert reading is not None
        assert reading.servo_angle == 180

    def test_servo_uses_hour_in_given_zone(self) -> None:
        # 05:00 UTC is before daylight; 07:00 in Brussels is not.
        payload = {"timestamp": "2026-10-15T05:00:00Z", "lightLevel": 4095}

        utc_reading = normalize_payload(payload)
        local_reading = normalize_payload(payload, zone=ZoneInfo("Europe/Brussels"))

        assert utc_reading is not None
        assert local_reading is not None
        assert utc_reading.servo_angle == 90
        assert local_reading.servo_angle == 180
        assert local_reading.timestamp == utc_reading.timestamp

    def test_intensity_only_payload(self) -> None:
        reading = normalize_payload({"timestamp": _NOON, "intensity": 500})
        assert reading is not None
        assert reading.light_level == 2048

    def test_light_level_wins_over_intensity(self) -> None:
        reading = normalize_payload({"timestamp": _NOON, "lightLevel": 3500, "intensity": 10})
        assert reading is not None
        assert reading.light_level == 3500


class TestInvalidValues:
    """Garbage is replaced, never raised."""

    def test_boolean_light_level_is_ignored(self) -> None:
        reading = normalize_payload({"timestamp": _NOON, "lightLevel": True})
        assert reading is not None
        assert reading.light_level == 0

    def test_out_of_range_light_level_is_ignored(self) -> None:
        reading = normalize_payload({"timestamp": _NOON, "lightLevel": 5000})
        assert reading is not None
        assert reading.light_level == 0

    def test_numeric_string_is_accepted(self) -> None:
        reading = normalize_payload({"timestamp": _NOON, "temperature": "21.5"})
        assert reading is not None
        assert reading.temperature == 21.5

    @pytest.mark.parametrize("value", ["warm", "nan", [], {"c": 20}])
    def test_bad_temperature_falls_back(self, value: object) -> None:
        reading = normalize_payload({"timestamp": _NOON, "temperature": value})
        assert reading is not None
        assert reading.temperature == 25.0

    def test_negative_distance_falls_back(self) -> None:
        reading = normalize_payload({"timestamp": _NOON, "distance": -3})
        assert reading is not None
        assert reading.distance == 400.0

    def test_out_of_range_servo_is_derived(self) -> None:
        reading = normalize_payload({"timestamp": _NOON, "lightLevel": 4095, "servoAngle": 200})
        assert reading is not None
        assert reading.servo_angle == 180

    def test_out_of_range_humidity_is_dropped(self) -> None:
        reading = normalize_payload({"timestamp": _NOON, "humidity": 150})
        assert reading is not None
        assert reading.humidity is None

    def test_invalid_gps_is_dropped(self) -> None:
        reading = normalize_payload({"timestamp": _NOON, "gps": {"lat": 200, "lng": 0}})
        assert reading is not None
        assert reading.gps is None

    def test_non_boolean_flag_falls_back(self) -> None:
        reading = normalize_payload({"timestamp": _NOON, "lightLevel": 3500, "isNight": "yes"})
        assert reading is not None
        assert reading.is_night is False


class TestRejected:
    def test_missing_timestamp_returns_none(self) -> None:
        assert normalize_payload({"lightLevel": 3500}) is None

    def test_unparseable_timestamp_returns_none(self) -> None:
        assert normalize_payload({"timestamp": "soon"}) is None

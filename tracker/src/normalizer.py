"""
Pure normalizer that turns a fetched JSON payload into a TelemetryReading.

Applies the defaulting policy once, at the fetch boundary, so downstream
components never deal with missing fields:

==================  ==================================================
Wire key            Default when absent or invalid
==================  ==================================================
``lightLevel``      from ``intensity`` (lux) if present, else 0
``distance``        DEFAULT_DISTANCE_CM (nothing in front of the tracker)
``temperature``     DEFAULT_TEMPERATURE_C
``humidity``        None (variant does not report it)
``gps``             None (variant does not report it)
``motionDetected``  ``distance <= MOTION_THRESHOLD_CM``
``isNight``         ``lightLevel < DARKNESS_THRESHOLD_ADC``
``ledOn``           same as ``isNight``
``servoAngle``      sun-tracking rule from the physical model
==================  ==================================================

Invalid values (wrong type, out of range) are replaced with the default and
logged; only the timestamp is mandatory.

This is a pure function: no I/O, no clock.

CHANGELOG:
- 2026-10-19: Evaluate hour of day in the configured zone (STORY-115)
- 2026-10-15: Accept intensity-only payloads from older firmware (STORY-106)
- 2026-10-13: Initial creation (STORY-105)

TODO:
- None
"""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping
from datetime import tzinfo

from pydantic import ValidationError

from tracker.src import physics
from tracker.src.constants import (
    ADC_MAX,
    DEFAULT_DISTANCE_CM,
    DEFAULT_TEMPERATURE_C,
    SERVO_MAX_DEG,
    SERVO_MIN_DEG,
)
from tracker.src.freshness import parse_timestamp
from tracker.src.models import GpsPosition, TelemetryReading

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Field extraction helpers
# ---------------------------------------------------------------------------


def _number(payload: Mapping[str, object], key: str) -> float | None:
    """Return payload[key] as a float, or None if absent or not numeric."""
    value = payload.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        logger.warning("Field '%s': non-numeric value %r, using default", key, value)
        return None
    try:
        number = float(value)
    except ValueError:
        logger.warning("Field '%s': non-numeric value %r, using default", key, value)
        return None
    if not math.isfinite(number):
        logger.warning("Field '%s': non-finite value %r, using default", key, value)
        return None
    return number


def _flag(payload: Mapping[str, object], key: str) -> bool | None:
    """Return payload[key] as a bool, or None if absent or not boolean-like."""
    value = payload.get(key)
    if value is None:
        return None
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    logger.warning("Field '%s': non-boolean value %r, using default", key, value)
    return None


def _light_level(payload: Mapping[str, object]) -> int:
    level = _number(payload, "lightLevel")
    if level is not None:
        if 0 <= level <= ADC_MAX:
            return int(round(level))
        logger.warning("Field 'lightLevel': %s outside 0-%d, using default", level, ADC_MAX)

    intensity = _number(payload, "intensity")
    if intensity is not None and intensity >= 0:
        return physics.lux_to_adc(intensity)
    return 0


def _gps(payload: Mapping[str, object]) -> GpsPosition | None:
    value = payload.get("gps")
    if value is None:
        return None
    if not isinstance(value, Mapping):
        logger.warning("Field 'gps': expected an object, got %r", value)
        return None
    try:
        return GpsPosition.model_validate(dict(value))
    except ValidationError:
        logger.warning("Field 'gps': invalid position %r, ignoring", value)
        return None


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def normalize_payload(
    payload: Mapping[str, object],
    *,
    zone: tzinfo | None = None,
) -> TelemetryReading | None:
    """Apply the defaulting policy to a raw payload.

    Args:
        payload: Decoded JSON object from the telemetry source.
        zone: Zone the sun-tracking default reads the hour of day in;
            the payload's own offset when None.

    Returns:
        A fully populated :class:`TelemetryReading`, or None if the payload
        has no usable timestamp.
    """
    ts = parse_timestamp(payload.get("timestamp"))
    if ts is None:
        logger.warning("Payload has no usable timestamp, cannot normalize")
        return None

    light_level = _light_level(payload)

    distance = _number(payload, "distance")
    if distance is None or distance < 0:
        distance = DEFAULT_DISTANCE_CM

    temperature = _number(payload, "temperature")
    if temperature is None:
        temperature = DEFAULT_TEMPERATURE_C

    humidity = _number(payload, "humidity")
    if humidity is not None and not 0.0 <= humidity <= 100.0:
        logger.warning("Field 'humidity': %s outside 0-100, ignoring", humidity)
        humidity = None

    motion = _flag(payload, "motionDetected")
    if motion is None:
        motion = physics.motion_detected(distance)

    night = _flag(payload, "isNight")
    if night is None:
        night = physics.is_night(light_level)

    led_on = _flag(payload, "ledOn")
    if led_on is None:
        led_on = night

    servo = _number(payload, "servoAngle")
    if servo is None or not SERVO_MIN_DEG <= servo <= SERVO_MAX_DEG:
        if servo is not None:
            logger.warning("Field 'servoAngle': %s outside 0-180, using default", servo)
        servo = physics.servo_angle_for(light_level, physics.hour_of_day(ts, zone), night)

    return TelemetryReading(
        timestamp=ts,
        light_level=light_level,
        distance=distance,
        motion_detected=motion,
        servo_angle=int(round(servo)),
        led_on=led_on,
        is_night=night,
        temperature=temperature,
        humidity=humidity,
        gps=_gps(payload),
    )

"""
Pydantic models for solar tracker telemetry.

Defines the canonical Sample record shared by the live tick path, the
weekly backfill, the history store and the read API, together with the
intermediate TelemetryReading produced at the fetch boundary and the
EngineSnapshot published to presentation-layer consumers.

All models are frozen: once a sample has been derived it is never mutated.
On the wire every field uses its camelCase name (``lightLevel``,
``isDataAvailable``); Python code uses the snake_case attribute names.

CHANGELOG:
- 2026-10-19: Require timezone-aware timestamps (STORY-115)
- 2026-10-15: Add EngineSnapshot outbound contract (STORY-108)
- 2026-10-13: Add power field to Sample (STORY-103)
- 2026-10-12: Initial creation (STORY-101)

TODO:
- None
"""

from __future__ import annotations

from pydantic import AwareDatetime, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

_WIRE_CONFIG = ConfigDict(
    frozen=True,
    populate_by_name=True,
    alias_generator=to_camel,
)


class GpsPosition(BaseModel):
    """Latitude/longitude pair reported by GPS-equipped tracker variants."""

    model_config = _WIRE_CONFIG

    lat: float = Field(ge=-90.0, le=90.0)
    lng: float = Field(ge=-180.0, le=180.0)


class TelemetryReading(BaseModel):
    """A fetched payload after the defaulting policy has been applied.

    Every field is populated: values the device did not report have been
    filled in by :func:`~tracker.src.normalizer.normalize_payload`. Only the
    optional hardware sub-groups (humidity, gps) may be ``None``.

    Attributes:
        timestamp: Instant the device took the reading.
        light_level: Raw light sensor ADC reading (0-4095).
        distance: Proximity sensor distance in centimeters.
        motion_detected: True when something is within the motion threshold.
        servo_angle: Tracker servo position in degrees (0-180).
        led_on: Status LED state.
        is_night: True when the light level is below the darkness threshold.
        temperature: Ambient temperature in degrees Celsius.
        humidity: Relative humidity in percent, if the variant reports it.
        gps: GPS position, if the variant reports it.
    """

    model_config = _WIRE_CONFIG

    timestamp: AwareDatetime
    light_level: int = Field(ge=0, le=4095)
    distance: float = Field(ge=0.0)
    motion_detected: bool
    servo_angle: int = Field(ge=0, le=180)
    led_on: bool
    is_night: bool
    temperature: float
    humidity: float | None = None
    gps: GpsPosition | None = None


class Sample(BaseModel):
    """One telemetry record with all derived quantities filled in.

    Hardware-reported fields mirror :class:`TelemetryReading`; the derived
    group (intensity, power, energy, efficiency, battery) is computed once
    by the physical model and the battery integrator.

    Attributes:
        timestamp: Instant of the reading.
        light_level: Raw light sensor ADC reading (0-4095).
        intensity: Lux-equivalent light level (0-1000), derived from
            light_level.
        distance: Proximity sensor distance in centimeters.
        motion_detected: True when something is within the motion threshold.
        servo_angle: Tracker servo position in degrees (0-180).
        led_on: Status LED state.
        is_night: True when the light level is below the darkness threshold.
        temperature: Ambient temperature in degrees Celsius.
        humidity: Relative humidity in percent, if reported.
        gps: GPS position, if reported.
        power: Power generated by the panel in watts.
        energy: Energy produced over one 15-minute block (power / 4),
            rounded to one decimal.
        efficiency: Panel efficiency in percent, within the efficiency band.
        battery: Battery state of charge in percent (0-100).
    """

    model_config = _WIRE_CONFIG

    timestamp: AwareDatetime
    light_level: int = Field(ge=0, le=4095)
    intensity: float = Field(ge=0.0)
    distance: float = Field(ge=0.0)
    motion_detected: bool
    servo_angle: int = Field(ge=0, le=180)
    led_on: bool
    is_night: bool
    temperature: float
    humidity: float | None = None
    gps: GpsPosition | None = None
    power: float = Field(ge=0.0)
    energy: float = Field(ge=0.0)
    efficiency: float
    battery: float = Field(ge=0.0, le=100.0)

    def to_wire(self) -> dict:
        """Return the JSON-compatible camelCase representation."""
        return self.model_dump(mode="json", by_alias=True)


class EngineSnapshot(BaseModel):
    """Immutable view of engine state handed to presentation consumers.

    Attributes:
        latest_sample: Most recent derived sample, or ``None`` before the
            first successful tick.
        history: Retained history entries in chronological order.
        is_loading: True until the engine has completed its first tick.
        is_data_available: True when the last tick fetched a live sample.
    """

    model_config = _WIRE_CONFIG

    latest_sample: Sample | None = None
    history: tuple[Sample, ...] = ()
    is_loading: bool = True
    is_data_available: bool = False

    def to_wire(self) -> dict:
        """Return the JSON-compatible camelCase representation."""
        return self.model_dump(mode="json", by_alias=True)

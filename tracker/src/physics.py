"""
Pure physical model for the solar tracker panel.

Maps raw environmental inputs (light sensor ADC reading, temperature and
time of day) to the quantities the device does not report itself: lux
equivalent, panel efficiency, generated power, energy per 15-minute block,
night flag and sun-tracking servo angle. Also provides the system
consumption curve used by the battery model and the weather attenuation
used by the backfill.

Every function here is pure: no I/O, no clock, no randomness. The live tick
path and the weekly backfill call exactly the same functions.

The canonical light representation is the 12-bit ADC ``lightLevel``. The
lux-equivalent ``intensity`` is a linear mapping of it:
``lux = lightLevel / 4095 * 1000``.

CHANGELOG:
- 2026-10-19: Evaluate hour of day in the configured zone (STORY-115)
- 2026-10-14: Add consumption curve and weather attenuation (STORY-104)
- 2026-10-13: Initial creation (STORY-103)

TODO:
- None
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, tzinfo

from tracker.src.constants import (
    ADC_MAX,
    BASE_CONSUMPTION_W,
    COLD_BONUS_PCT_PER_C,
    COLD_THRESHOLD_C,
    DARKNESS_THRESHOLD_ADC,
    DAYLIGHT_END_HOUR,
    DAYLIGHT_START_HOUR,
    EFFICIENCY_BASE_PCT,
    EFFICIENCY_MAX_PCT,
    EFFICIENCY_MIN_PCT,
    ENERGY_BLOCKS_PER_HOUR,
    HIGH_LOAD_CONSUMPTION_W,
    HIGH_LOAD_WINDOWS,
    HOT_PENALTY_PCT_PER_C,
    HOT_THRESHOLD_C,
    LOW_LIGHT_LUX,
    LOW_LIGHT_MAX_PENALTY_PCT,
    MOTION_THRESHOLD_CM,
    PANEL_RATED_POWER_W,
    REFERENCE_LUX,
    SERVO_MAX_DEG,
    SERVO_MIN_DEG,
    SERVO_REST_DEG,
)


@dataclass(frozen=True)
class WeatherProfile:
    """Named weather condition used by the synthetic backfill.

    Attributes:
        name: Profile identifier (e.g. ``"overcast"``).
        attenuation: Multiplier applied to the clear-sky light reading.
        temp_low_c: Temperature at night / early morning.
        temp_high_c: Temperature at the afternoon peak.
    """

    name: str
    attenuation: float
    temp_low_c: float
    temp_high_c: float


@dataclass(frozen=True)
class PhysicalReading:
    """Derived quantities for one reading (output of :func:`evaluate`)."""

    lux: float
    efficiency: float
    power_w: float
    energy: float


# ---------------------------------------------------------------------------
# Light mapping
# ---------------------------------------------------------------------------


def clamp(value: float, low: float, high: float) -> float:
    """Clamp *value* to the closed interval [low, high]."""
    return max(low, min(high, value))


def adc_to_lux(light_level: int) -> float:
    """Convert a raw ADC light reading to the 0-1000 lux-equivalent scale."""
    level = clamp(light_level, 0, ADC_MAX)
    return level / ADC_MAX * REFERENCE_LUX


def lux_to_adc(lux: float) -> int:
    """Convert a lux-equivalent value back to the nearest ADC reading."""
    value = clamp(lux, 0.0, REFERENCE_LUX)
    return int(round(value / REFERENCE_LUX * ADC_MAX))


def attenuate(light_level: int, profile: WeatherProfile) -> int:
    """Apply a weather profile's attenuation to a clear-sky light reading."""
    return int(round(clamp(light_level * profile.attenuation, 0, ADC_MAX)))


def is_night(light_level: int) -> bool:
    """Return True when the light level is below the darkness threshold."""
    return light_level < DARKNESS_THRESHOLD_ADC


def motion_detected(distance_cm: float) -> bool:
    """Return True when an object is at or inside the motion threshold."""
    return distance_cm <= MOTION_THRESHOLD_CM


# ---------------------------------------------------------------------------
# Efficiency, power, energy
# ---------------------------------------------------------------------------


def efficiency_for(lux: float, temperature_c: float) -> float:
    """Empirical panel efficiency curve, clamped to the efficiency band.

    Starts at the base efficiency, loses a fixed amount per degree above
    the hot threshold, gains a smaller amount per degree below the cold
    threshold and loses up to LOW_LIGHT_MAX_PENALTY_PCT in dim (non-zero)
    light.

    Args:
        lux: Lux-equivalent light level (0-1000).
        temperature_c: Ambient temperature in degrees Celsius.

    Returns:
        Efficiency in percent, within [EFFICIENCY_MIN_PCT, EFFICIENCY_MAX_PCT].
    """
    efficiency = EFFICIENCY_BASE_PCT

    if temperature_c > HOT_THRESHOLD_C:
        efficiency -= (temperature_c - HOT_THRESHOLD_C) * HOT_PENALTY_PCT_PER_C
    elif temperature_c < COLD_THRESHOLD_C:
        efficiency += (COLD_THRESHOLD_C - temperature_c) * COLD_BONUS_PCT_PER_C

    if 0.0 < lux < LOW_LIGHT_LUX:
        efficiency -= LOW_LIGHT_MAX_PENALTY_PCT * (1.0 - lux / LOW_LIGHT_LUX)

    return clamp(efficiency, EFFICIENCY_MIN_PCT, EFFICIENCY_MAX_PCT)


def power_for(lux: float, efficiency: float) -> float:
    """Generated panel power in watts for a light level and efficiency."""
    fraction = clamp(lux, 0.0, REFERENCE_LUX) / REFERENCE_LUX
    return fraction * PANEL_RATED_POWER_W * (efficiency / 100.0)


def energy_for_block(power_w: float) -> float:
    """Energy produced over one 15-minute block, rounded to one decimal."""
    return round(max(power_w, 0.0) / ENERGY_BLOCKS_PER_HOUR, 1)


def evaluate(light_level: int, temperature_c: float) -> PhysicalReading:
    """Derive lux, efficiency, power and energy for one reading."""
    lux = adc_to_lux(light_level)
    efficiency = efficiency_for(lux, temperature_c)
    power_w = power_for(lux, efficiency)
    return PhysicalReading(
        lux=lux,
        efficiency=efficiency,
        power_w=power_w,
        energy=energy_for_block(power_w),
    )


# ---------------------------------------------------------------------------
# Servo and consumption
# ---------------------------------------------------------------------------


def is_daylight_hour(hour: float) -> bool:
    """Return True for hours inside the [start, end) daylight range."""
    return DAYLIGHT_START_HOUR <= hour < DAYLIGHT_END_HOUR


def servo_angle_for(light_level: int, hour: float, night: bool) -> int:
    """Sun-tracking servo angle.

    During daylight hours the angle is proportional to the light level
    across the full servo range; at night or outside daylight hours the
    servo rests at the center position.
    """
    if night or not is_daylight_hour(hour):
        return SERVO_REST_DEG
    angle = round(clamp(light_level, 0, ADC_MAX) / ADC_MAX * SERVO_MAX_DEG)
    return int(clamp(angle, SERVO_MIN_DEG, SERVO_MAX_DEG))


def consumption_for(hour: float) -> float:
    """System consumption in watts at a given local hour of day."""
    for start, end in HIGH_LOAD_WINDOWS:
        if start <= hour < end:
            return HIGH_LOAD_CONSUMPTION_W
    return BASE_CONSUMPTION_W


def hour_of_day(ts: datetime, zone: tzinfo | None = None) -> float:
    """Fractional hour of day of *ts*, seen in *zone* (its own offset if None)."""
    if zone is not None:
        ts = ts.astimezone(zone)
    return ts.hour + ts.minute / 60.0 + ts.second / 3600.0

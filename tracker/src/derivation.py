"""
Derivation of complete Samples from normalized readings.

Glues the pure physical model to the stateful battery integrator. Both the
live tick path and the weekly backfill build their Samples here, so the two
paths cannot drift apart.

CHANGELOG:
- 2026-10-19: Evaluate hour of day in the configured zone (STORY-115)
- 2026-10-14: Initial creation (STORY-104)

TODO:
- None
"""

from __future__ import annotations

from datetime import tzinfo

from tracker.src import physics
from tracker.src.battery import BatteryIntegrator
from tracker.src.constants import EFFICIENCY_MAX_PCT, EFFICIENCY_MIN_PCT
from tracker.src.models import Sample, TelemetryReading


def build_sample(
    reading: TelemetryReading,
    *,
    intensity: float,
    power_w: float,
    energy: float,
    efficiency: float,
    battery: float,
) -> Sample:
    """Combine a reading with its derived quantities into a Sample."""
    return Sample(
        timestamp=reading.timestamp,
        light_level=reading.light_level,
        intensity=round(intensity, 1),
        distance=reading.distance,
        motion_detected=reading.motion_detected,
        servo_angle=reading.servo_angle,
        led_on=reading.led_on,
        is_night=reading.is_night,
        temperature=reading.temperature,
        humidity=reading.humidity,
        gps=reading.gps,
        power=round(power_w, 2),
        energy=energy,
        efficiency=round(efficiency, 1),
        battery=round(battery, 1),
    )


def derive_sample(
    reading: TelemetryReading,
    integrator: BatteryIntegrator,
    *,
    zone: tzinfo | None = None,
    efficiency_override: float | None = None,
) -> Sample:
    """Derive power, energy, efficiency and battery for one reading.

    Runs the physical model, integrates the resulting net power (generation
    minus the consumption at the reading's hour of day) into the battery,
    and returns the finished Sample.

    Args:
        reading: Normalized reading with every field populated.
        integrator: The process-wide battery integrator; its state is
            advanced to the reading's timestamp.
        zone: Zone the consumption curve reads the hour of day in; the
            reading's own offset when None.
        efficiency_override: Force a specific efficiency (clamped to the
            efficiency band), used for scripted special conditions.

    Returns:
        The derived, immutable Sample.
    """
    derived = physics.evaluate(reading.light_level, reading.temperature)
    efficiency = derived.efficiency
    power_w = derived.power_w
    energy = derived.energy

    if efficiency_override is not None:
        efficiency = physics.clamp(efficiency_override, EFFICIENCY_MIN_PCT, EFFICIENCY_MAX_PCT)
        power_w = physics.power_for(derived.lux, efficiency)
        energy = physics.energy_for_block(power_w)

    hour = physics.hour_of_day(reading.timestamp, zone)
    net_power_w = power_w - physics.consumption_for(hour)
    battery = integrator.integrate(net_power_w, reading.timestamp)

    return build_sample(
        reading,
        intensity=derived.lux,
        power_w=power_w,
        energy=energy,
        efficiency=efficiency,
        battery=battery,
    )

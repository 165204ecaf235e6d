"""
Synthetic weekly history used when no persisted history exists.

Generates one sample every 15 minutes from the most recent week start
(Sunday 00:00 in the timezone of ``now``) up to ``now``. Each day of the
week is assigned a named weather profile that attenuates the clear-sky
light curve and sets the temperature range. Each synthetic payload runs
through the same normalizer, physical model and battery integrator as a
live tick, so the battery level carries over sample to sample exactly as
it would live.

Scripted anomaly: on Wednesday the tracker is offline from 11:00 to 15:00.
No samples are emitted strictly inside that window. A single compensating
drain sample is emitted at 11:00 with no generation and the battery drained
by system consumption across the unmonitored span, and the 15:00 sample
reflects the tracker coming back online (efficiency boosted to the band
maximum, servo reoriented to a fixed direction).

CHANGELOG:
- 2026-10-19: Step through the week in UTC across DST changes (STORY-115)
- 2026-10-16: Add Wednesday outage window (STORY-109)
- 2026-10-15: Initial creation (STORY-107)

TODO:
- None
"""

from __future__ import annotations

import logging
import math
import random
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta, tzinfo

from tracker.src import physics
from tracker.src.battery import BatteryIntegrator
from tracker.src.constants import BACKFILL_STEP, EFFICIENCY_MAX_PCT, SERVO_REORIENT_DEG
from tracker.src.derivation import build_sample, derive_sample
from tracker.src.models import Sample, TelemetryReading
from tracker.src.normalizer import normalize_payload
from tracker.src.physics import WeatherProfile

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Weather schedule
# ---------------------------------------------------------------------------

WEATHER_PROFILES: dict[str, WeatherProfile] = {
    "sunny": WeatherProfile("sunny", attenuation=1.0, temp_low_c=18.0, temp_high_c=31.0),
    "partly_cloudy": WeatherProfile(
        "partly_cloudy", attenuation=0.85, temp_low_c=16.0, temp_high_c=26.0
    ),
    "overcast": WeatherProfile("overcast", attenuation=0.65, temp_low_c=13.0, temp_high_c=20.0),
    "rainy": WeatherProfile("rainy", attenuation=0.45, temp_low_c=11.0, temp_high_c=16.0),
}

DAY_PROFILES: tuple[str, ...] = (
    "sunny",  # Sunday
    "partly_cloudy",  # Monday
    "overcast",  # Tuesday
    "sunny",  # Wednesday
    "rainy",  # Thursday
    "partly_cloudy",  # Friday
    "sunny",  # Saturday
)
"""Profile name per day of week, Sunday first."""

OUTAGE_DAY_INDEX: int = 3
"""Day of week (Sunday = 0) on which the scripted outage happens."""

OUTAGE_START_HOUR: int = 11
OUTAGE_END_HOUR: int = 15


@dataclass(frozen=True)
class OutageWindow:
    """Span during which the tracker was offline."""

    start: datetime
    end: datetime

    def contains(self, ts: datetime) -> bool:
        """True for instants strictly inside the window."""
        return self.start < ts < self.end


# ---------------------------------------------------------------------------
# Calendar helpers
# ---------------------------------------------------------------------------


def sunday_index(ts: datetime) -> int:
    """Day of week with Sunday = 0 (``datetime.weekday`` has Monday = 0)."""
    return (ts.weekday() + 1) % 7


def week_start(now: datetime) -> datetime:
    """Midnight of the most recent Sunday, in the timezone of *now*."""
    day = now - timedelta(days=sunday_index(now))
    return day.replace(hour=0, minute=0, second=0, microsecond=0)


def outage_window(start_of_week: datetime) -> OutageWindow:
    day = start_of_week + timedelta(days=OUTAGE_DAY_INDEX)
    return OutageWindow(
        start=day.replace(hour=OUTAGE_START_HOUR),
        end=day.replace(hour=OUTAGE_END_HOUR),
    )


def profile_for(ts: datetime) -> WeatherProfile:
    return WEATHER_PROFILES[DAY_PROFILES[sunday_index(ts)]]


# ---------------------------------------------------------------------------
# Synthetic environment
# ---------------------------------------------------------------------------


def _clear_sky_light(hour: float, rng: random.Random) -> int:
    """Clear-sky light reading following a half-sine daylight curve."""
    if not physics.is_daylight_hour(hour):
        return physics.lux_to_adc(rng.uniform(0.0, 15.0))
    elevation = math.sin(math.pi * (hour - 6.0) / 12.0)
    return physics.lux_to_adc(1000.0 * elevation * rng.uniform(0.92, 1.0))


def _temperature(profile: WeatherProfile, hour: float, rng: random.Random) -> float:
    # Peaks mid-afternoon, flat at the low end overnight.
    curve = max(0.0, math.sin(math.pi * (hour - 9.0) / 12.0))
    span = profile.temp_high_c - profile.temp_low_c
    return round(profile.temp_low_c + span * curve + rng.uniform(-0.8, 0.8), 1)


def _distance(rng: random.Random) -> float:
    if rng.random() < 0.05:
        return round(rng.uniform(5.0, 20.0), 1)
    return round(rng.uniform(40.0, 400.0), 1)


def _synthetic_payload(ts: datetime, rng: random.Random) -> dict[str, object]:
    hour = physics.hour_of_day(ts)
    profile = profile_for(ts)
    return {
        "timestamp": ts.isoformat(),
        "lightLevel": physics.attenuate(_clear_sky_light(hour, rng), profile),
        "temperature": _temperature(profile, hour, rng),
        "distance": _distance(rng),
    }


def _reading(payload: dict[str, object], zone: tzinfo | None = None) -> TelemetryReading:
    reading = normalize_payload(payload, zone=zone)
    if reading is None:
        raise ValueError(f"Synthetic payload has no usable timestamp: {payload!r}")
    return reading


def _drain_point(
    payload: dict[str, object],
    integrator: BatteryIntegrator,
    outage: OutageWindow,
    until: datetime,
) -> Sample:
    """Sample at the outage start carrying the unmonitored consumption."""
    reading = _reading(payload, outage.start.tzinfo)
    derived = physics.evaluate(reading.light_level, reading.temperature)
    drain_w = -physics.consumption_for(physics.hour_of_day(outage.start))
    battery = integrator.integrate(drain_w, until)
    return build_sample(
        reading,
        intensity=derived.lux,
        power_w=0.0,
        energy=0.0,
        efficiency=derived.efficiency,
        battery=battery,
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def generate_week_history(
    now: datetime,
    *,
    integrator: BatteryIntegrator | None = None,
    seed: int | None = None,
) -> list[Sample]:
    """Generate synthetic samples from the start of the week up to *now*.

    Args:
        now: Current time (aware); also fixes the timezone of the schedule.
        integrator: Battery integrator to advance. Pass the engine's own
            integrator so live integration continues from the last synthetic
            sample. A fresh one (starting at the default charge) is used
            when omitted.
        seed: Seed for the random generator; the same *now* and *seed*
            always produce the same history.

    Returns:
        Samples in chronological order.
    """
    if integrator is None:
        integrator = BatteryIntegrator()
    rng = random.Random(seed)

    start = week_start(now)
    outage = outage_window(start)
    samples: list[Sample] = []

    # Steps are 15 elapsed minutes, not 15 wall-clock minutes.
    zone = now.tzinfo
    instant = start.astimezone(UTC)
    end = now.astimezone(UTC)
    while instant <= end:
        ts = instant.astimezone(zone)
        instant += BACKFILL_STEP
        if outage.contains(ts):
            continue

        payload = _synthetic_payload(ts, rng)
        if ts == outage.start:
            samples.append(_drain_point(payload, integrator, outage, min(outage.end, now)))
        elif ts == outage.end:
            payload["servoAngle"] = SERVO_REORIENT_DEG
            samples.append(
                derive_sample(
                    _reading(payload, zone),
                    integrator,
                    zone=zone,
                    efficiency_override=EFFICIENCY_MAX_PCT,
                )
            )
        else:
            samples.append(derive_sample(_reading(payload, zone), integrator, zone=zone))

    logger.info(
        "Backfilled %d synthetic samples from %s to %s",
        len(samples),
        start.isoformat(),
        now.isoformat(),
    )
    return samples

"""
Fixed tuning constants for the solar tracker telemetry engine.

These values describe the hardware (panel, battery, light sensor) and the
timing policy of the engine. They are module-level constants, not settings:
changing them changes the meaning of stored history.

CHANGELOG:
- 2026-10-14: Add consumption windows for the battery model (STORY-104)
- 2026-10-12: Initial creation (STORY-101)

TODO:
- None
"""

from __future__ import annotations

from datetime import timedelta

# ---------------------------------------------------------------------------
# Timing policy
# ---------------------------------------------------------------------------

TICK_INTERVAL_S: float = 2.0
"""Seconds between scheduler ticks while live."""

FRESHNESS_THRESHOLD_MS: int = 10_000
"""A fetched sample is live only if its age is strictly below this."""

HISTORY_THROTTLE_S: float = 60.0
"""Minimum spacing (strictly greater than) between history appends."""

RETENTION_WINDOW: timedelta = timedelta(days=7)
"""Maximum age of history entries; older entries are dropped for good."""

BACKFILL_STEP: timedelta = timedelta(minutes=15)
"""Spacing of synthetic samples produced by the weekly backfill."""

# ---------------------------------------------------------------------------
# Light sensor
# ---------------------------------------------------------------------------

ADC_MAX: int = 4095
"""Full-scale reading of the 12-bit light sensor ADC."""

REFERENCE_LUX: float = 1000.0
"""Lux-equivalent value of a full-scale ADC reading."""

DARKNESS_THRESHOLD_ADC: int = 3000
"""Light readings strictly below this count as night."""

LOW_LIGHT_LUX: float = 200.0
"""Below this (and above zero) the panel suffers a dim-light penalty."""

# ---------------------------------------------------------------------------
# Proximity sensor and servo
# ---------------------------------------------------------------------------

MOTION_THRESHOLD_CM: float = 20.0
"""Distances at or below this count as motion in front of the tracker."""

SERVO_MIN_DEG: int = 0
SERVO_MAX_DEG: int = 180

SERVO_REST_DEG: int = 90
"""Center position used at night and outside daylight hours."""

SERVO_REORIENT_DEG: int = 45
"""Fixed direction used when the tracker reorients after an outage."""

DAYLIGHT_START_HOUR: int = 6
DAYLIGHT_END_HOUR: int = 18

# ---------------------------------------------------------------------------
# Panel efficiency curve
# ---------------------------------------------------------------------------

EFFICIENCY_BASE_PCT: float = 97.5
EFFICIENCY_MIN_PCT: float = 80.0
EFFICIENCY_MAX_PCT: float = 99.0

HOT_THRESHOLD_C: float = 25.0
HOT_PENALTY_PCT_PER_C: float = 0.3

COLD_THRESHOLD_C: float = 20.0
COLD_BONUS_PCT_PER_C: float = 0.1

LOW_LIGHT_MAX_PENALTY_PCT: float = 4.0

# ---------------------------------------------------------------------------
# Power and battery
# ---------------------------------------------------------------------------

PANEL_RATED_POWER_W: float = 20.0
"""Panel output in watts at REFERENCE_LUX and 100 % efficiency."""

ENERGY_BLOCKS_PER_HOUR: float = 4.0
"""Energy per sample is reported for a 15-minute block."""

BATTERY_CAPACITY_WH: float = 74.0
DEFAULT_BATTERY_PERCENT: float = 75.0

BASE_CONSUMPTION_W: float = 2.0
"""System draw (ESP32, sensors, idle servo)."""

HIGH_LOAD_CONSUMPTION_W: float = 4.5
"""System draw while the LED and servo are busy."""

HIGH_LOAD_WINDOWS: tuple[tuple[int, int], ...] = ((7, 9), (18, 21))
"""Half-open [start, end) local hour ranges using HIGH_LOAD_CONSUMPTION_W."""

# ---------------------------------------------------------------------------
# Payload defaults and persistence
# ---------------------------------------------------------------------------

DEFAULT_DISTANCE_CM: float = 400.0
DEFAULT_TEMPERATURE_C: float = 25.0

HISTORY_STORAGE_KEY: str = "solar-tracker-history"
HISTORY_SCHEMA_VERSION: int = 1

"""
Shared test fixtures for tracker engine tests.

Provides environment isolation for TrackerSettings tests, a fixed clock
and small builders for payloads and samples used across the suite.

CHANGELOG:
- 2026-10-16: Add sample/payload builders (STORY-108)
- 2026-10-12: Initial creation (STORY-101)

TODO:
- None
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest
from tracker.src.models import Sample

# All TrackerSettings environment variable names, used for cleanup.
_ALL_TRACKER_ENV_VARS = (
    "TELEMETRY_URL",
    "TELEMETRY_TIMEOUT_S",
    "HISTORY_DB_PATH",
    "HEALTH_PATH",
    "API_HOST",
    "API_PORT",
    "START_LIVE",
    "BACKFILL_SEED",
    "LOG_LEVEL",
    "TIMEZONE",
)

FIXED_NOW = datetime(2026, 10, 15, 12, 0, 0, tzinfo=UTC)
"""A Thursday noon in UTC, the reference "now" for most tests."""


@pytest.fixture(autouse=True)
def _clean_tracker_env(monkeypatch: pytest.MonkeyPatch, tmp_path: str) -> None:
    """Remove all tracker env vars and isolate from .env files before each test.

    Changes working directory to tmp_path so no .env file is accidentally
    loaded by Pydantic BaseSettings.
    """
    for var in _ALL_TRACKER_ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture()
def now() -> datetime:
    return FIXED_NOW


def _make_payload(
    ts: datetime = FIXED_NOW,
    *,
    age: timedelta = timedelta(0),
    **fields: object,
) -> dict[str, object]:
    """Return a raw device payload stamped ``age`` before ``ts``."""
    payload: dict[str, object] = {
        "timestamp": (ts - age).isoformat(),
        "lightLevel": 3500,
        "temperature": 22.0,
        "distance": 150.0,
    }
    payload.update(fields)
    return payload


def _make_sample(ts: datetime = FIXED_NOW, **overrides: object) -> Sample:
    """Create a valid Sample with sensible defaults."""
    fields: dict[str, object] = {
        "timestamp": ts,
        "light_level": 3500,
        "intensity": 854.7,
        "distance": 150.0,
        "motion_detected": False,
        "servo_angle": 154,
        "led_on": False,
        "is_night": False,
        "temperature": 22.0,
        "power": 16.6,
        "energy": 4.2,
        "efficiency": 97.5,
        "battery": 75.0,
    }
    fields.update(overrides)
    return Sample(**fields)


@pytest.fixture()
def make_payload():
    """Factory fixture for raw device payloads."""
    return _make_payload


@pytest.fixture()
def make_sample():
    """Factory fixture for derived samples."""
    return _make_sample

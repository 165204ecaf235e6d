"""
Tracker daemon configuration loaded from environment variables.

Uses Pydantic BaseSettings for automatic env var loading and validation.
Only deployment wiring lives here (where to fetch telemetry, where to keep
history, where to serve the API). Physical and timing constants are fixed
in :mod:`tracker.src.constants` and are not configurable.

CHANGELOG:
- 2026-10-16: Add BACKFILL_SEED and START_LIVE (STORY-111)
- 2026-10-12: Initial creation (STORY-101)

TODO:
- None
"""

import logging
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import field_validator
from pydantic_settings import BaseSettings


class TrackerSettings(BaseSettings):
    """Telemetry daemon configuration.

    All values are loaded from environment variables; every variable has a
    default so the daemon starts with the simulated device out of the box.

    Attributes:
        telemetry_url: URL of the JSON document the tracker publishes.
            Empty means "use the simulated device".
        telemetry_timeout_s: Timeout for a single telemetry GET.
        history_db_path: SQLite file holding persisted history.
        health_path: JSON health file path.
        api_host: Interface the read API binds to.
        api_port: Port the read API listens on.
        start_live: Start polling immediately (otherwise start paused).
        backfill_seed: Seed for the synthetic history; random when unset.
        log_level: Root log level name.
        timezone: IANA timezone for the synthetic week and day selection.
    """

    telemetry_url: str = ""
    telemetry_timeout_s: float = 5.0
    history_db_path: str = "/data/history.db"
    health_path: str = "/data/health.json"
    api_host: str = "0.0.0.0"
    api_port: int = 8080
    start_live: bool = True
    backfill_seed: int | None = None
    log_level: str = "INFO"
    timezone: str = "UTC"

    @field_validator("telemetry_url")
    @classmethod
    def telemetry_url_must_be_http(cls, v: str) -> str:
        """Validate that the telemetry URL (when set) is http or https."""
        if v and not v.lower().startswith(("http://", "https://")):
            raise ValueError(f"TELEMETRY_URL must be an http(s) URL (got: '{v[:20]}...')")
        return v

    @field_validator("telemetry_timeout_s")
    @classmethod
    def timeout_must_be_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("TELEMETRY_TIMEOUT_S must be > 0")
        return v

    @field_validator("api_port")
    @classmethod
    def api_port_must_be_valid(cls, v: int) -> int:
        """Validate API port is in valid range."""
        if v < 1 or v > 65535:
            raise ValueError("API_PORT must be between 1 and 65535")
        return v

    @field_validator("log_level")
    @classmethod
    def log_level_must_be_known(cls, v: str) -> str:
        """Validate the log level is a standard logging level name."""
        level = v.upper()
        if level not in logging.getLevelNamesMapping():
            raise ValueError(f"LOG_LEVEL must be a logging level name (got: '{v}')")
        return level

    @field_validator("timezone")
    @classmethod
    def timezone_must_exist(cls, v: str) -> str:
        """Validate the timezone is a known IANA zone name."""
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"TIMEZONE must be an IANA zone name (got: '{v}')") from exc
        return v

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

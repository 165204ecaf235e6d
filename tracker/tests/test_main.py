"""
Unit tests for the tracker daemon entrypoint.

Tests verify:
- configure_logging installs a single JSON handler on the root logger.
- Startup config summary is logged without the telemetry URL's path/query.
- build_source picks HTTP when TELEMETRY_URL is set, simulated otherwise.
- make_clock returns aware times in the configured zone.
- run_daemon initializes and starts; on a shutdown signal or server exit it
  stops the scheduler, stops the API server and flushes history.

CHANGELOG:
- 2026-10-17: Cover API server shutdown (STORY-113)
- 2026-10-16: Initial creation (STORY-111)

TODO:
- None
"""

from __future__ import annotations

import asyncio
import json
import logging
from unittest.mock import AsyncMock, MagicMock

import pytest
from tracker.src.config import TrackerSettings
from tracker.src.main import (
    _JsonFormatter,
    build_source,
    configure_logging,
    log_config_summary,
    make_clock,
    run_daemon,
)
from tracker.src.source import HttpTelemetrySource, SimulatedTelemetrySource

_SECRET_URL = "https://tracker.example.com/sensorData/latest.json?auth=secret-token-abc"


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------


class TestLogging:
    def test_configure_logging_installs_json_handler(self) -> None:
        root = logging.getLogger()
        saved_handlers, saved_level = root.handlers[:], root.level
        try:
            configure_logging("DEBUG")

            assert len(root.handlers) == 1
            assert isinstance(root.handlers[0].formatter, _JsonFormatter)
            assert root.level == logging.DEBUG
        finally:
            root.handlers[:] = saved_handlers
            root.setLevel(saved_level)

    def test_json_formatter_output(self) -> None:
        record = logging.LogRecord(
            "tracker.src.engine", logging.WARNING, __file__, 1, "feed %s", ("stale",), None
        )

        entry = json.loads(_JsonFormatter().format(record))

        assert entry["level"] == "WARNING"
        assert entry["logger"] == "tracker.src.engine"
        assert entry["msg"] == "feed stale"
        assert "ts" in entry


class TestStartupLogging:
    def test_summary_contains_host_not_token(
        self, monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture
    ) -> None:
        monkeypatch.setenv("TELEMETRY_URL", _SECRET_URL)
        settings = TrackerSettings()

        with caplog.at_level(logging.INFO, logger="tracker.src.main"):
            log_config_summary(settings)

        assert "https://tracker.example.com" in caplog.text
        assert "secret-token-abc" not in caplog.text

    def test_summary_marks_simulated_source(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.INFO, logger="tracker.src.main"):
            log_config_summary(TrackerSettings())

        assert "telemetry_source=simulated" in caplog.text


# ---------------------------------------------------------------------------
# Wiring
# ---------------------------------------------------------------------------


class TestWiring:
    def test_http_source_when_url_set(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("TELEMETRY_URL", _SECRET_URL)
        clock = make_clock("UTC")

        assert isinstance(build_source(TrackerSettings(), clock), HttpTelemetrySource)

    def test_simulated_source_without_url(self) -> None:
        clock = make_clock("UTC")

        assert isinstance(build_source(TrackerSettings(), clock), SimulatedTelemetrySource)

    def test_clock_uses_configured_zone(self) -> None:
        now = make_clock("Europe/London")()

        assert now.tzinfo is not None
        assert str(now.tzinfo) == "Europe/London"


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------


class TestRunDaemon:
    @pytest.mark.asyncio
    async def test_shutdown_sequence(self) -> None:
        engine = AsyncMock()
        scheduler = AsyncMock()
        server = MagicMock()
        server.serve = AsyncMock()
        shutdown_event = asyncio.Event()
        shutdown_event.set()

        await run_daemon(
            engine=engine,
            scheduler=scheduler,
            server=server,
            shutdown_event=shutdown_event,
            start_live=True,
        )

        engine.initialize.assert_awaited_once()
        scheduler.start.assert_awaited_once()
        scheduler.stop.assert_awaited_once()
        server.serve.assert_awaited_once()
        assert server.should_exit is True
        engine.flush.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_start_paused(self) -> None:
        engine = AsyncMock()
        scheduler = AsyncMock()
        server = MagicMock()
        server.serve = AsyncMock()
        shutdown_event = asyncio.Event()
        shutdown_event.set()

        await run_daemon(
            engine=engine,
            scheduler=scheduler,
            server=server,
            shutdown_event=shutdown_event,
            start_live=False,
        )

        scheduler.start.assert_not_awaited()
        engine.flush.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_server_exit_triggers_shutdown(self) -> None:
        engine = AsyncMock()
        scheduler = AsyncMock()
        server = MagicMock()
        server.serve = AsyncMock()

        await asyncio.wait_for(
            run_daemon(
                engine=engine,
                scheduler=scheduler,
                server=server,
                shutdown_event=asyncio.Event(),
                start_live=True,
            ),
            timeout=2.0,
        )

        scheduler.stop.assert_awaited_once()
        engine.flush.assert_awaited_once()

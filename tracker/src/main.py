"""
Daemon entrypoint for the solar tracker telemetry engine.

Wires the pieces together and runs them on one asyncio event loop:
1. **Engine**: restores persisted history (or backfills a synthetic week)
   and seeds the battery integrator.
2. **Scheduler**: ticks the engine every two seconds while live.
3. **API server**: uvicorn serving the FastAPI read API, including the
   live/paused toggle.

Graceful shutdown starts on SIGTERM/SIGINT or when the API server exits on
its own: the server is asked to exit, the scheduler is stopped and the
history is persisted one final time.

Structured JSON logging is used for all events. A HealthWriter subscribes
to engine snapshots and rewrites a JSON health file after every tick.

CHANGELOG:
- 2026-10-17: Serve the read API from the daemon process (STORY-113)
- 2026-10-16: Initial creation (STORY-111)

TODO:
- None
"""

from __future__ import annotations

import asyncio
import json
import logging
import signal
import sys
from collections.abc import Callable
from datetime import UTC, datetime
from zoneinfo import ZoneInfo

import uvicorn

from tracker.src.api import create_app
from tracker.src.config import TrackerSettings
from tracker.src.engine import TelemetryEngine
from tracker.src.health import HealthWriter
from tracker.src.history import HistoryStore
from tracker.src.scheduler import PollingScheduler
from tracker.src.source import HttpTelemetrySource, SimulatedTelemetrySource, TelemetrySource
from tracker.src.storage import SqliteHistoryRepository

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Structured JSON logging setup
# ---------------------------------------------------------------------------


class _JsonFormatter(logging.Formatter):
    """Minimal JSON log formatter."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info and record.exc_info[1] is not None:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry)


def configure_logging(level: str = "INFO") -> None:
    """Configure structured JSON logging for the daemon.

    Sets up the root logger with a JSON-formatted handler writing to stderr.
    """
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(_JsonFormatter())
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)


def log_config_summary(settings: TrackerSettings) -> None:
    """Log a config summary at startup.

    The telemetry URL may embed an access token in its query string, so
    only its scheme and host are logged.
    """
    logger.info(
        "Tracker daemon starting with config: "
        "telemetry_source=%s, telemetry_timeout_s=%s, history_db_path=%s, "
        "health_path=%s, api_host=%s, api_port=%s, start_live=%s, "
        "backfill_seed=%s, timezone=%s",
        _source_label(settings.telemetry_url),
        settings.telemetry_timeout_s,
        settings.history_db_path,
        settings.health_path,
        settings.api_host,
        settings.api_port,
        settings.start_live,
        settings.backfill_seed,
        settings.timezone,
    )


def _source_label(url: str) -> str:
    if not url:
        return "simulated"
    scheme, _, rest = url.partition("://")
    return f"{scheme}://{rest.split('/', 1)[0].split('?', 1)[0]}"


# ---------------------------------------------------------------------------
# Component wiring
# ---------------------------------------------------------------------------


def build_source(
    settings: TrackerSettings,
    clock: Callable[[], datetime],
) -> TelemetrySource:
    """HTTP source when TELEMETRY_URL is set, simulated device otherwise."""
    if settings.telemetry_url:
        return HttpTelemetrySource(
            settings.telemetry_url,
            timeout_s=settings.telemetry_timeout_s,
        )
    logger.warning("TELEMETRY_URL not set, using the simulated tracker")
    return SimulatedTelemetrySource(clock=clock)


def make_clock(timezone: str) -> Callable[[], datetime]:
    zone = ZoneInfo(timezone)
    return lambda: datetime.now(tz=zone)


async def run_daemon(
    *,
    engine: TelemetryEngine,
    scheduler: PollingScheduler,
    server: uvicorn.Server,
    shutdown_event: asyncio.Event,
    start_live: bool,
) -> None:
    """Run the engine, scheduler and API server until shutdown.

    Args:
        engine: Telemetry engine (not yet initialized).
        scheduler: Scheduler driving the engine.
        server: uvicorn server hosting the read API.
        shutdown_event: Event to signal graceful shutdown.
        start_live: Whether to start the scheduler immediately.
    """
    await engine.initialize()
    if start_live:
        await scheduler.start()

    server_task = asyncio.create_task(server.serve(), name="api-server")
    shutdown_task = asyncio.create_task(shutdown_event.wait(), name="shutdown-wait")
    try:
        # uvicorn may handle the signal itself and return first.
        await asyncio.wait(
            {server_task, shutdown_task},
            return_when=asyncio.FIRST_COMPLETED,
        )
    finally:
        server.should_exit = True
        shutdown_task.cancel()
        await scheduler.stop()
        await server_task
        logger.info("Persisting history before exit")
        await engine.flush()
        logger.info("Shutdown complete")


# ---------------------------------------------------------------------------
# Entrypoint
# ---------------------------------------------------------------------------


async def async_main() -> None:
    """Async entrypoint: load config, build components, run until signalled.

    Sets up SIGTERM/SIGINT handlers to trigger graceful shutdown.
    """
    settings = TrackerSettings()
    configure_logging(settings.log_level)
    log_config_summary(settings)

    shutdown_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, lambda: _handle_signal(shutdown_event))

    clock = make_clock(settings.timezone)

    async with SqliteHistoryRepository(settings.history_db_path) as repository:
        engine = TelemetryEngine(
            build_source(settings, clock),
            HistoryStore(repository),
            clock=clock,
            backfill_seed=settings.backfill_seed,
        )
        engine.subscribe(HealthWriter(settings.health_path))
        scheduler = PollingScheduler(engine)

        app = create_app(engine, scheduler, clock=clock)
        server = uvicorn.Server(
            uvicorn.Config(
                app,
                host=settings.api_host,
                port=settings.api_port,
                log_config=None,
            )
        )

        await run_daemon(
            engine=engine,
            scheduler=scheduler,
            server=server,
            shutdown_event=shutdown_event,
            start_live=settings.start_live,
        )


def _handle_signal(shutdown_event: asyncio.Event) -> None:
    """Handle SIGTERM/SIGINT by setting the shutdown event."""
    logger.info("Received shutdown signal, initiating graceful shutdown")
    shutdown_event.set()


def main() -> None:
    """Synchronous entrypoint for the tracker daemon."""
    asyncio.run(async_main())


if __name__ == "__main__":
    main()

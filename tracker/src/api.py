"""
FastAPI read API for the dashboard presentation layer.

Serves the engine's current snapshot (the ``{latestSample, history,
isLoading, isDataAvailable}`` contract), per-day history for the analytics
view, aggregated series, and the live/paused toggle. The engine and the
scheduler are injected through :func:`create_app` and kept on app.state.

Endpoints:
- GET  /health          liveness, no dependencies.
- GET  /v1/snapshot     current EngineSnapshot.
- GET  /v1/days         day names of the current week up to today.
- GET  /v1/history      samples of one day of the current week.
- GET  /v1/series       weekly / monthly / yearly aggregated buckets.
- POST /v1/live         switch polling on or off.

CHANGELOG:
- 2026-10-19: Bucket series in the clock's zone (STORY-115)
- 2026-10-17: Initial creation (STORY-113)

TODO:
- None
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Annotated, Literal

from fastapi import APIRouter, FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from tracker.src.aggregation import aggregate, available_days, samples_for_day
from tracker.src.engine import TelemetryEngine
from tracker.src.scheduler import PollingScheduler

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1", tags=["telemetry"])


class LiveToggle(BaseModel):
    """Request body for POST /v1/live."""

    live: bool


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _engine(request: Request) -> TelemetryEngine:
    return request.app.state.engine


def _now(request: Request) -> datetime:
    return request.app.state.clock()


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


@router.get("/snapshot")
async def snapshot(request: Request) -> dict:
    """Return the engine's most recently published snapshot."""
    return _engine(request).snapshot.to_wire()


@router.get("/days")
async def days(request: Request) -> dict[str, list[str]]:
    """Return the selectable days of the current week."""
    return {"days": available_days(_now(request))}


@router.get("/history")
async def history(
    request: Request,
    day: Annotated[str, Query()],
) -> list[dict]:
    """Return the retained samples of one day of the current week.

    Raises:
        HTTPException: 422 if the day is unknown or still in the future.
    """
    entries = _engine(request).snapshot.history
    try:
        selected = samples_for_day(entries, day, _now(request))
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return [sample.to_wire() for sample in selected]


@router.get("/series")
async def series(
    request: Request,
    timeframe: Annotated[Literal["weekly", "monthly", "yearly"], Query()] = "weekly",
) -> list[dict]:
    """Return total energy and average efficiency per bucket."""
    buckets = aggregate(
        _engine(request).snapshot.history,
        timeframe,
        _now(request).tzinfo,
    )
    return [
        {
            "name": bucket.name,
            "totalEnergy": bucket.total_energy,
            "avgEfficiency": bucket.avg_efficiency,
            "count": bucket.count,
        }
        for bucket in buckets
    ]


@router.post("/live")
async def live(request: Request, body: LiveToggle) -> dict[str, str]:
    """Switch the polling scheduler between running and stopped."""
    scheduler: PollingScheduler = request.app.state.scheduler
    state = await scheduler.set_live(body.live)
    logger.info("Live toggle set to %s via API", body.live)
    return {"state": state.value}


# ---------------------------------------------------------------------------
# Application factory
# ---------------------------------------------------------------------------


def create_app(
    engine: TelemetryEngine,
    scheduler: PollingScheduler,
    *,
    clock: Callable[[], datetime] | None = None,
    allow_origins: list[str] | None = None,
) -> FastAPI:
    """Build the FastAPI application around a running engine.

    Args:
        engine: Engine whose snapshots are served.
        scheduler: Scheduler controlled by the live toggle.
        clock: Current-time source for day selection; UTC now by default.
        allow_origins: CORS origins allowed to call the API.

    Returns:
        FastAPI: The configured application.
    """
    app = FastAPI(
        title="Solar Tracker Telemetry API",
        description="Live and historical telemetry of the solar tracker.",
        version="0.1.0",
    )
    app.state.engine = engine
    app.state.scheduler = scheduler
    app.state.clock = clock or (lambda: datetime.now(tz=UTC))

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allow_origins or ["*"],
        allow_methods=["GET", "POST"],
        allow_headers=["Content-Type"],
    )

    @app.get("/health", tags=["health"])
    async def health() -> dict[str, str]:
        """Return a simple health status."""
        return {"status": "ok"}

    app.include_router(router)
    return app

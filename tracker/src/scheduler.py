"""
Polling scheduler driving the engine on a fixed interval.

Two states, RUNNING and STOPPED, switched by the dashboard's live/paused
toggle:

- Entering RUNNING performs one immediate tick, then one tick every
  TICK_INTERVAL_S seconds. Ticks never overlap: a firing that finds a tick
  still in flight is skipped, and firings missed because a tick overran are
  dropped rather than queued.
- Entering STOPPED cancels the timer task. A generation counter is bumped
  first, so a tick that is still waiting on its fetch can no longer apply
  its result. Latest sample, history and battery stay as they were.

CHANGELOG:
- 2026-10-17: Guard in-flight ticks with a generation counter (STORY-112)
- 2026-10-16: Initial creation (STORY-108)

TODO:
- None
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from enum import Enum

from tracker.src.constants import TICK_INTERVAL_S
from tracker.src.engine import TelemetryEngine

logger = logging.getLogger(__name__)


class SchedulerState(str, Enum):
    RUNNING = "running"
    STOPPED = "stopped"


class PollingScheduler:
    """Runs engine ticks on a fixed interval while live.

    Args:
        engine: The telemetry engine whose ``tick`` is driven.
        interval_s: Seconds between tick firings.
    """

    def __init__(
        self,
        engine: TelemetryEngine,
        *,
        interval_s: float = TICK_INTERVAL_S,
    ) -> None:
        self._engine = engine
        self._interval_s = interval_s
        self._state = SchedulerState.STOPPED
        self._generation = 0
        self._lock = asyncio.Lock()
        self._task: asyncio.Task[None] | None = None

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state is SchedulerState.RUNNING

    # ------------------------------------------------------------------
    # Live / paused toggle
    # ------------------------------------------------------------------

    async def set_live(self, live: bool) -> SchedulerState:
        """Switch to RUNNING (``live=True``) or STOPPED (``live=False``)."""
        if live:
            await self.start()
        else:
            await self.stop()
        return self._state

    async def start(self) -> None:
        """Enter RUNNING; a no-op when already running."""
        if self._state is SchedulerState.RUNNING:
            return
        self._generation += 1
        self._state = SchedulerState.RUNNING
        self._task = asyncio.create_task(
            self._run(self._generation),
            name="polling-scheduler",
        )
        logger.info("Scheduler started (interval=%ss)", self._interval_s)

    async def stop(self) -> None:
        """Enter STOPPED and wait for the timer task to wind down."""
        if self._state is SchedulerState.STOPPED:
            return
        self._generation += 1
        self._state = SchedulerState.STOPPED
        task, self._task = self._task, None
        if task is not None:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        logger.info("Scheduler stopped")

    # ------------------------------------------------------------------
    # Ticks
    # ------------------------------------------------------------------

    async def tick_once(self, generation: int | None = None) -> bool:
        """Run one tick unless another is in flight.

        Args:
            generation: Generation the tick belongs to; defaults to the
                current one. A tick from an older generation is not run.

        Returns:
            True if a tick ran to completion (its result may still have
            been discarded by the engine if the scheduler stopped meanwhile).
        """
        gen = self._generation if generation is None else generation
        if self._lock.locked():
            logger.debug("Previous tick still in flight, skipping this firing")
            return False
        async with self._lock:
            if gen != self._generation:
                return False
            await self._engine.tick(is_current=lambda: gen == self._generation)
        return True

    async def _run(self, generation: int) -> None:
        loop = asyncio.get_running_loop()
        next_fire = loop.time()
        while generation == self._generation:
            try:
                await self.tick_once(generation)
            except Exception:
                logger.error("Tick failed", exc_info=True)

            next_fire += self._interval_s
            now = loop.time()
            if now > next_fire:
                missed = int((now - next_fire) // self._interval_s) + 1
                next_fire += missed * self._interval_s
                logger.debug("Tick overran, skipped %d firing(s)", missed)
            await asyncio.sleep(next_fire - now)

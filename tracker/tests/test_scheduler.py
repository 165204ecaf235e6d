"""
Unit tests for the polling scheduler.

Tests verify:
- Going live performs an immediate tick and reports RUNNING.
- Pausing cancels the timer and reports STOPPED.
- A tick still in flight when the scheduler stops is cancelled.
- Overlapping firings are skipped, never queued.
- A tick from a stale generation is not run.
- A failing tick does not stop the loop.

CHANGELOG:
- 2026-10-17: Cover generation guard (STORY-112)
- 2026-10-16: Initial creation (STORY-108)

TODO:
- None
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable

import pytest
from tracker.src.scheduler import PollingScheduler, SchedulerState

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class _FakeEngine:
    """Engine stand-in recording ticks; optionally blocks until released."""

    def __init__(self, *, block: bool = False, fail_first: bool = False) -> None:
        self.calls = 0
        self.completed: list[bool] = []
        self.started = asyncio.Event()
        self.release = asyncio.Event()
        self._block = block
        self._fail_first = fail_first
        if not block:
            self.release.set()

    async def tick(self, *, is_current: Callable[[], bool]) -> None:
        self.calls += 1
        self.started.set()
        if self._fail_first and self.calls == 1:
            raise RuntimeError("first tick fails")
        await self.release.wait()
        self.completed.append(is_current())


async def _wait_for(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    async def _poll() -> None:
        while not predicate():
            await asyncio.sleep(0.005)

    await asyncio.wait_for(_poll(), timeout)


# ---------------------------------------------------------------------------
# Live toggle
# ---------------------------------------------------------------------------


class TestLiveToggle:
    @pytest.mark.asyncio
    async def test_starts_stopped(self) -> None:
        scheduler = PollingScheduler(_FakeEngine())
        assert scheduler.state is SchedulerState.STOPPED
        assert scheduler.is_running is False

    @pytest.mark.asyncio
    async def test_going_live_ticks_immediately(self) -> None:
        engine = _FakeEngine()
        scheduler = PollingScheduler(engine, interval_s=60.0)

        state = await scheduler.set_live(True)
        await _wait_for(lambda: engine.calls == 1)

        assert state is SchedulerState.RUNNING
        assert engine.completed == [True]
        await scheduler.set_live(False)

    @pytest.mark.asyncio
    async def test_pausing_stops_ticks(self) -> None:
        engine = _FakeEngine()
        scheduler = PollingScheduler(engine, interval_s=0.01)
        await scheduler.set_live(True)
        await _wait_for(lambda: engine.calls >= 2)

        state = await scheduler.set_live(False)
        calls_at_stop = engine.calls
        await asyncio.sleep(0.05)

        assert state is SchedulerState.STOPPED
        assert engine.calls == calls_at_stop

    @pytest.mark.asyncio
    async def test_start_twice_is_noop(self) -> None:
        engine = _FakeEngine()
        scheduler = PollingScheduler(engine, interval_s=60.0)

        await scheduler.start()
        await scheduler.start()
        await _wait_for(lambda: engine.calls >= 1)
        await asyncio.sleep(0.02)

        assert engine.calls == 1
        await scheduler.stop()

    @pytest.mark.asyncio
    async def test_stop_when_stopped_is_noop(self) -> None:
        scheduler = PollingScheduler(_FakeEngine())
        assert await scheduler.set_live(False) is SchedulerState.STOPPED


# ---------------------------------------------------------------------------
# In-flight ticks
# ---------------------------------------------------------------------------


class TestInFlight:
    @pytest.mark.asyncio
    async def test_stop_cancels_in_flight_tick(self) -> None:
        engine = _FakeEngine(block=True)
        scheduler = PollingScheduler(engine, interval_s=60.0)
        await scheduler.start()
        await asyncio.wait_for(engine.started.wait(), 2.0)

        await scheduler.stop()
        engine.release.set()
        await asyncio.sleep(0.01)

        assert engine.completed == []
        assert scheduler.state is SchedulerState.STOPPED

    @pytest.mark.asyncio
    async def test_overlapping_firing_is_skipped(self) -> None:
        engine = _FakeEngine(block=True)
        scheduler = PollingScheduler(engine, interval_s=60.0)
        await scheduler.start()
        await asyncio.wait_for(engine.started.wait(), 2.0)

        assert await scheduler.tick_once() is False
        assert engine.calls == 1

        engine.release.set()
        await _wait_for(lambda: engine.completed == [True])
        await scheduler.stop()

    @pytest.mark.asyncio
    async def test_stale_generation_is_not_run(self) -> None:
        engine = _FakeEngine()
        scheduler = PollingScheduler(engine, interval_s=60.0)
        await scheduler.start()
        await _wait_for(lambda: engine.calls == 1)
        await scheduler.stop()

        assert await scheduler.tick_once(generation=1) is False
        assert engine.calls == 1

    @pytest.mark.asyncio
    async def test_failing_tick_does_not_stop_loop(self) -> None:
        engine = _FakeEngine(fail_first=True)
        scheduler = PollingScheduler(engine, interval_s=0.01)

        await scheduler.start()
        await _wait_for(lambda: engine.calls >= 2)

        assert scheduler.is_running is True
        await scheduler.stop()

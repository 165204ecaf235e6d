"""
Telemetry engine: the body of one tick and the state it owns.

The engine is the explicit state holder for the pipeline. It owns the
latest sample, the availability flags, the battery integrator and the
history store, and publishes an immutable EngineSnapshot to subscribers
after every tick. It has no timer of its own; the PollingScheduler decides
when ticks happen.

One tick:
1. fetch the latest raw payload from the telemetry source (the only step
   that waits on the network),
2. classify freshness; a stale or missing payload only flips
   ``is_data_available`` off and keeps the previous latest sample,
3. normalize the payload (defaulting policy),
4. derive power / efficiency / energy and integrate the battery,
5. publish the new latest sample,
6. append to history if the throttle allows, and persist.

A tick whose ``is_current`` guard turns false while it waits for the fetch
(the scheduler was stopped) is discarded without touching any state.

CHANGELOG:
- 2026-10-19: Read the hour of day in the clock's zone (STORY-115)
- 2026-10-17: Publish before persisting so readers never wait on disk (STORY-112)
- 2026-10-16: Initial creation (STORY-108)

TODO:
- None
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime

from tracker.src.backfill import generate_week_history
from tracker.src.battery import BatteryIntegrator
from tracker.src.derivation import derive_sample
from tracker.src.freshness import classify
from tracker.src.history import HistoryStore
from tracker.src.models import EngineSnapshot, Sample
from tracker.src.normalizer import normalize_payload
from tracker.src.source import TelemetrySource

logger = logging.getLogger(__name__)

SnapshotSubscriber = Callable[[EngineSnapshot], None]


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


def _always_current() -> bool:
    return True


class TelemetryEngine:
    """Owns the tick pipeline state and publishes snapshots.

    Args:
        source: Telemetry source to fetch raw payloads from.
        history: History store (already wired to its persistence).
        integrator: Battery integrator; a fresh default one when omitted.
        clock: Returns the current aware time.
        backfill_enabled: Generate a synthetic week of history when nothing
            is persisted.
        backfill_seed: Seed for the backfill random generator.
    """

    def __init__(
        self,
        source: TelemetrySource,
        history: HistoryStore,
        *,
        integrator: BatteryIntegrator | None = None,
        clock: Callable[[], datetime] = _utc_now,
        backfill_enabled: bool = True,
        backfill_seed: int | None = None,
    ) -> None:
        self._source = source
        self._history = history
        self._integrator = integrator if integrator is not None else BatteryIntegrator()
        self._clock = clock
        self._backfill_enabled = backfill_enabled
        self._backfill_seed = backfill_seed

        self._initialized = False
        self._latest: Sample | None = None
        self._is_loading = True
        self._is_data_available = False
        self._snapshot = EngineSnapshot()
        self._subscribers: list[SnapshotSubscriber] = []

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    @property
    def snapshot(self) -> EngineSnapshot:
        """The most recently published snapshot."""
        return self._snapshot

    @property
    def integrator(self) -> BatteryIntegrator:
        return self._integrator

    @property
    def history(self) -> HistoryStore:
        return self._history

    def subscribe(self, callback: SnapshotSubscriber) -> Callable[[], None]:
        """Register *callback* for every published snapshot.

        Returns:
            A function that removes the subscription.
        """
        self._subscribers.append(callback)

        def _unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return _unsubscribe

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def initialize(self) -> EngineSnapshot:
        """Restore history (or backfill it) and seed the battery.

        Safe to call more than once; only the first call does any work.
        """
        if self._initialized:
            return self._snapshot

        now = self._clock()
        restored = await self._history.load(now)
        if restored:
            last = restored[-1]
            self._integrator.seed(last.battery, last.timestamp)
            self._latest = last
        elif self._backfill_enabled:
            samples = generate_week_history(
                now,
                integrator=self._integrator,
                seed=self._backfill_seed,
            )
            self._history.seed(samples)
            await self._history.persist(now)
        else:
            logger.info("No persisted history and backfill disabled, starting empty")

        self._initialized = True
        return self._publish(now)

    async def flush(self) -> bool:
        """Persist the current history (used on shutdown)."""
        return await self._history.persist(self._clock())

    # ------------------------------------------------------------------
    # Tick
    # ------------------------------------------------------------------

    async def tick(
        self,
        *,
        is_current: Callable[[], bool] = _always_current,
    ) -> EngineSnapshot | None:
        """Run one fetch-classify-derive-integrate-store cycle.

        Args:
            is_current: Guard checked after the fetch; when it returns False
                the tick is abandoned and no state is changed.

        Returns:
            The published snapshot, or None if the tick was abandoned.
        """
        if not self._initialized:
            await self.initialize()

        try:
            payload = await self._source.fetch()
        except Exception:
            logger.error("Telemetry fetch raised", exc_info=True)
            payload = None

        if not is_current():
            logger.info("Discarding result of a tick that was cancelled in flight")
            return None

        now = self._clock()
        freshness = classify(payload, now)
        self._is_loading = False

        if payload is None or not freshness.available:
            if self._is_data_available:
                logger.warning(
                    "Telemetry feed unavailable (%s, age_ms=%s)",
                    freshness.reason,
                    freshness.age_ms,
                )
            self._is_data_available = False
            return self._publish(now)

        reading = normalize_payload(payload, zone=now.tzinfo)
        if reading is None:
            self._is_data_available = False
            return self._publish(now)

        sample = derive_sample(reading, self._integrator, zone=now.tzinfo)
        self._latest = sample
        self._is_data_available = True

        appended = self._history.append(sample, now)
        snapshot = self._publish(now)
        if appended:
            await self._history.persist(now)
        return snapshot

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _publish(self, now: datetime) -> EngineSnapshot:
        snapshot = EngineSnapshot(
            latest_sample=self._latest,
            history=self._history.snapshot(now),
            is_loading=self._is_loading,
            is_data_available=self._is_data_available,
        )
        self._snapshot = snapshot
        for callback in list(self._subscribers):
            try:
                callback(snapshot)
            except Exception:
                logger.error("Snapshot subscriber failed", exc_info=True)
        return snapshot

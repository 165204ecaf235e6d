"""
Bounded, throttled, time-windowed history of samples.

Keeps an in-memory chronological list of samples and mirrors it to a
persistence collaborator:

- append(sample, now): adds the sample only if more than HISTORY_THROTTLE_S
  seconds have passed since the previous append.
- persist(now): drops entries older than the retention window (for good,
  there is no archival tier) and writes the remainder.
- load(now): restores persisted entries at startup and seeds the throttle
  clock from the last one.
- snapshot(now): copy-on-read tuple restricted to the retention window.

Persistence failures are logged by the collaborator and treated as empty /
no-op; the in-memory history keeps working for the session.

CHANGELOG:
- 2026-10-16: Filter snapshots by the retention window (STORY-110)
- 2026-10-15: Initial creation (STORY-108)

TODO:
- None
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta

from tracker.src.constants import HISTORY_THROTTLE_S, RETENTION_WINDOW
from tracker.src.models import Sample
from tracker.src.storage import HistoryPersistence

logger = logging.getLogger(__name__)


class HistoryStore:
    """Append-only history with a sampling throttle and retention window.

    Args:
        persistence: Collaborator with async ``save`` / ``load``.
        throttle_s: Minimum spacing between appends, in seconds.
        retention: Maximum age of retained entries.
    """

    def __init__(
        self,
        persistence: HistoryPersistence,
        *,
        throttle_s: float = HISTORY_THROTTLE_S,
        retention: timedelta = RETENTION_WINDOW,
    ) -> None:
        self._persistence = persistence
        self._throttle = timedelta(seconds=throttle_s)
        self._retention = retention
        self._entries: list[Sample] = []
        self._last_append_at: datetime | None = None

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def last_append_at(self) -> datetime | None:
        return self._last_append_at

    @property
    def last(self) -> Sample | None:
        """Most recent entry, or None when empty."""
        return self._entries[-1] if self._entries else None

    def _within_retention(self, now: datetime) -> list[Sample]:
        cutoff = now - self._retention
        return [entry for entry in self._entries if entry.timestamp >= cutoff]

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def load(self, now: datetime) -> list[Sample]:
        """Restore persisted history.

        Entries outside the retention window are dropped. The throttle clock
        is seeded from the last entry's timestamp.

        Returns:
            The restored entries (possibly empty).
        """
        try:
            loaded = await self._persistence.load()
        except Exception:
            logger.error("Failed to load persisted history, starting empty", exc_info=True)
            loaded = []
        entries = sorted(loaded, key=lambda s: s.timestamp)
        self._entries = entries
        self._entries = self._within_retention(now)
        self._last_append_at = self._entries[-1].timestamp if self._entries else None
        logger.info(
            "Loaded %d persisted history entries (%d outside retention dropped)",
            len(self._entries),
            len(entries) - len(self._entries),
        )
        return list(self._entries)

    def seed(self, samples: list[Sample]) -> None:
        """Install a pre-built history (e.g. the synthetic backfill)."""
        self._entries = sorted(samples, key=lambda s: s.timestamp)
        self._last_append_at = self._entries[-1].timestamp if self._entries else None

    def append(self, sample: Sample, now: datetime) -> bool:
        """Append *sample* unless the previous append was too recent.

        Args:
            sample: Derived sample to record.
            now: Current wall-clock time used for the throttle.

        Returns:
            True if the sample was appended.
        """
        if self._last_append_at is not None and now - self._last_append_at <= self._throttle:
            return False
        self._entries.append(sample)
        self._last_append_at = now
        return True

    async def persist(self, now: datetime) -> bool:
        """Apply the retention window and write the history out.

        Returns:
            True if the persistence collaborator reported success.
        """
        before = len(self._entries)
        self._entries = self._within_retention(now)
        dropped = before - len(self._entries)
        if dropped:
            logger.info("Retention dropped %d history entries", dropped)
        try:
            return await self._persistence.save(list(self._entries))
        except Exception:
            logger.error("Failed to persist history", exc_info=True)
            return False

    def snapshot(self, now: datetime) -> tuple[Sample, ...]:
        """Immutable copy of the entries inside the retention window."""
        return tuple(self._within_retention(now))

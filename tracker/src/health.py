"""
Health file writer for the tracker telemetry daemon.

Writes a JSON health file at a configurable path with three fields:
- last_tick_ts: ISO timestamp of the most recent published snapshot.
- is_data_available: Whether the last tick saw a live sample.
- history_count: Number of retained history entries.

The file is rewritten after every snapshot, providing a simple liveness
signal that Docker HEALTHCHECK or monitoring can inspect. Used as an
engine subscriber.

CHANGELOG:
- 2026-10-17: Track snapshots instead of poll/upload events (STORY-114)
- 2026-10-12: Initial creation (STORY-101)

TODO:
- None
"""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from pathlib import Path

from tracker.src.models import EngineSnapshot

logger = logging.getLogger(__name__)


class HealthWriter:
    """Writes daemon health status to a JSON file.

    Args:
        path: Filesystem path for the health JSON file. Accepts str or Path.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._last_tick_ts: str | None = None
        self._is_data_available: bool = False
        self._history_count: int = 0

    def __call__(self, snapshot: EngineSnapshot) -> None:
        """Snapshot subscriber hook: record the snapshot."""
        self.record_snapshot(snapshot)

    def record_snapshot(self, snapshot: EngineSnapshot) -> None:
        """Record a published snapshot and write the health file."""
        self._last_tick_ts = datetime.now(tz=UTC).isoformat()
        self._is_data_available = snapshot.is_data_available
        self._history_count = len(snapshot.history)
        self._write()

    def _write(self) -> None:
        """Write the health JSON file with current state."""
        data = {
            "last_tick_ts": self._last_tick_ts,
            "is_data_available": self._is_data_available,
            "history_count": self._history_count,
        }
        try:
            self.path.write_text(json.dumps(data))
        except OSError:
            logger.warning("Failed to write health file %s", self.path, exc_info=True)

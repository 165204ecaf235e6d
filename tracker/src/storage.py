"""
Durable history persistence using async SQLite.

Stores the retained history as a single JSON document under a fixed storage
key, the same shape the dashboard historically kept in browser storage, but
with an explicit schema version next to it. A row written by a different
schema version is discarded on load instead of being misread.

Operations:
- save(samples): Replace the stored document with the given samples.
- load(): Return the stored samples (empty list when missing/incompatible).
- close(): Close the underlying database connection.

Failures never propagate: every operation logs and degrades to "nothing
stored" / "not saved" so live operation continues in memory.

Supports async context manager protocol for clean resource management.

CHANGELOG:
- 2026-10-16: Add schema_version column and per-entry validation (STORY-110)
- 2026-10-15: Initial creation (STORY-108)

TODO:
- None
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Protocol

import aiosqlite
from pydantic import ValidationError

from tracker.src.constants import HISTORY_SCHEMA_VERSION, HISTORY_STORAGE_KEY
from tracker.src.models import Sample

logger = logging.getLogger(__name__)

_CREATE_TABLE_SQL = """\
CREATE TABLE IF NOT EXISTS history (
    storage_key TEXT PRIMARY KEY,
    schema_version INTEGER NOT NULL,
    payload TEXT NOT NULL,
    updated_at TEXT NOT NULL DEFAULT (datetime('now'))
);
"""

_UPSERT_SQL = """\
INSERT INTO history (storage_key, schema_version, payload, updated_at)
VALUES (?, ?, ?, datetime('now'))
ON CONFLICT(storage_key) DO UPDATE SET
    schema_version = excluded.schema_version,
    payload = excluded.payload,
    updated_at = excluded.updated_at;
"""

_SELECT_SQL = """\
SELECT schema_version, payload
FROM history
WHERE storage_key = ?;
"""


class HistoryPersistence(Protocol):
    """Persistence collaborator used by the history store."""

    async def save(self, samples: list[Sample]) -> bool: ...

    async def load(self) -> list[Sample]: ...


class SqliteHistoryRepository:
    """History persistence backed by a SQLite database file.

    Uses WAL journal mode for crash durability. The connection is opened
    lazily on first use, so a missing or unwritable path only results in
    logged failures rather than a crash at startup.

    Args:
        path: Filesystem path for the SQLite database file.
              Accepts ``str`` or ``pathlib.Path``.
        storage_key: Key the history document is stored under.

    Usage::

        async with SqliteHistoryRepository("/data/history.db") as repo:
            await repo.save(samples)
            restored = await repo.load()
    """

    def __init__(
        self,
        path: str | Path,
        *,
        storage_key: str = HISTORY_STORAGE_KEY,
    ) -> None:
        self._path = Path(path)
        self._storage_key = storage_key
        self._db: aiosqlite.Connection | None = None

    async def open(self) -> None:
        """Open the SQLite connection and initialize the schema."""
        if self._db is not None:
            return
        db = await aiosqlite.connect(str(self._path))
        try:
            await db.execute("PRAGMA journal_mode=WAL;")
            await db.execute(_CREATE_TABLE_SQL)
            await db.commit()
        except Exception:
            await db.close()
            raise
        self._db = db

    async def close(self) -> None:
        """Close the underlying SQLite connection."""
        if self._db is not None:
            await self._db.close()
            self._db = None

    async def __aenter__(self) -> SqliteHistoryRepository:
        """Enter async context manager: open the database."""
        await self.open()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        """Exit async context manager: close the database."""
        await self.close()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def save(self, samples: list[Sample]) -> bool:
        """Replace the stored history with *samples*.

        Args:
            samples: Samples in chronological order.

        Returns:
            True if the history was written, False on any failure.
        """
        payload = json.dumps([sample.to_wire() for sample in samples])
        try:
            await self.open()
            assert self._db is not None
            await self._db.execute(
                _UPSERT_SQL,
                (self._storage_key, HISTORY_SCHEMA_VERSION, payload),
            )
            await self._db.commit()
        except Exception:
            logger.error("Failed to persist %d history entries", len(samples), exc_info=True)
            return False
        logger.debug("Persisted %d history entries", len(samples))
        return True

    async def load(self) -> list[Sample]:
        """Return the stored history, or an empty list.

        An empty list is returned when nothing is stored, when the stored
        schema version differs from HISTORY_SCHEMA_VERSION, or when the
        database cannot be read. Individual entries that fail validation are
        skipped.
        """
        try:
            await self.open()
            assert self._db is not None
            cursor = await self._db.execute(_SELECT_SQL, (self._storage_key,))
            row = await cursor.fetchone()
        except Exception:
            logger.error("Failed to read persisted history", exc_info=True)
            return []

        if row is None:
            return []

        schema_version, payload = row
        if schema_version != HISTORY_SCHEMA_VERSION:
            logger.warning(
                "Discarding persisted history with schema version %s (expected %s)",
                schema_version,
                HISTORY_SCHEMA_VERSION,
            )
            return []

        try:
            entries = json.loads(payload)
        except json.JSONDecodeError:
            logger.warning("Persisted history is not valid JSON, ignoring it")
            return []
        if not isinstance(entries, list):
            logger.warning("Persisted history is not a list, ignoring it")
            return []

        samples: list[Sample] = []
        for entry in entries:
            try:
                samples.append(Sample.model_validate(entry))
            except ValidationError:
                logger.warning("Skipping invalid persisted history entry")
        return samples

"""
Freshness classifier for fetched telemetry payloads.

Decides from a payload's embedded timestamp whether the feed is currently
live. The rule is independent of the polling interval:

- No payload            -> not available.
- No / bad timestamp    -> not available (age cannot be established).
- age < 10 000 ms       -> available.
- age >= 10 000 ms      -> not available (exactly 10 000 ms is stale).
- timestamp more than 10 000 ms in the future (clock skew) -> not available.

Timestamps may be ISO-8601 text (naive text is read as UTC) or epoch
milliseconds, as published by the device firmware.

CHANGELOG:
- 2026-10-15: Reject timestamps far in the future (STORY-106)
- 2026-10-13: Initial creation (STORY-105)

TODO:
- None
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import UTC, datetime

from tracker.src.constants import FRESHNESS_THRESHOLD_MS

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Freshness:
    """Outcome of classifying one payload.

    Attributes:
        available: True when the payload counts as live.
        age_ms: Age of the payload in milliseconds, or None when it could
            not be established.
        reason: Short machine-friendly reason (``live``, ``no_payload``,
            ``no_timestamp``, ``stale``, ``future``).
    """

    available: bool
    age_ms: float | None
    reason: str


def parse_timestamp(value: object) -> datetime | None:
    """Parse a wire timestamp into an aware datetime.

    Accepts ISO-8601 strings (a trailing ``Z`` is allowed; naive values are
    taken as UTC), aware/naive datetimes and epoch milliseconds. Returns
    None for anything else.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        ts = value
    elif isinstance(value, (int, float)):
        try:
            ts = datetime.fromtimestamp(value / 1000.0, tz=UTC)
        except (OverflowError, OSError, ValueError):
            return None
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            ts = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None

    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=UTC)
    return ts


def classify(payload: Mapping[str, object] | None, now: datetime) -> Freshness:
    """Classify a fetched payload as live or stale.

    Args:
        payload: Raw decoded payload, or None when nothing was fetched.
        now: Current wall-clock time (aware).

    Returns:
        A :class:`Freshness` describing the decision.
    """
    if payload is None:
        return Freshness(available=False, age_ms=None, reason="no_payload")

    ts = parse_timestamp(payload.get("timestamp"))
    if ts is None:
        logger.warning("Payload has no usable timestamp, treating feed as unavailable")
        return Freshness(available=False, age_ms=None, reason="no_timestamp")

    age_ms = (now - ts).total_seconds() * 1000.0
    if age_ms <= -FRESHNESS_THRESHOLD_MS:
        logger.warning("Payload timestamp is %.0fms in the future", -age_ms)
        return Freshness(available=False, age_ms=age_ms, reason="future")
    if age_ms < FRESHNESS_THRESHOLD_MS:
        return Freshness(available=True, age_ms=age_ms, reason="live")
    return Freshness(available=False, age_ms=age_ms, reason="stale")

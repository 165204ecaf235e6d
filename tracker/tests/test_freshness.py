"""
Unit tests for the freshness classifier.

Tests verify:
- Age strictly below 10 000 ms is live; exactly 10 000 ms is stale.
- Missing payload or timestamp is unavailable.
- Timestamps far in the future are unavailable.
- Timestamp parsing: ISO with Z, naive ISO, epoch milliseconds, garbage.

CHANGELOG:
- 2026-10-15: Add future timestamp cases (STORY-106)
- 2026-10-13: Initial creation (STORY-105)

TODO:
- None
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest
from tracker.src.freshness import classify, parse_timestamp

_NOW = datetime(2026, 10, 15, 12, 0, 0, tzinfo=UTC)


def _payload_aged(ms: int) -> dict[str, object]:
    return {"timestamp": (_NOW - timedelta(milliseconds=ms)).isoformat()}


class TestClassify:
    """Availability decision around the 10 s boundary."""

    def test_just_under_threshold_is_live(self) -> None:
        result = classify(_payload_aged(9_999), _NOW)
        assert result.available is True
        assert result.reason == "live"
        assert result.age_ms == pytest.approx(9_999)

    def test_exact_threshold_is_stale(self) -> None:
        result = classify(_payload_aged(10_000), _NOW)
        assert result.available is False
        assert result.reason == "stale"

    def test_just_over_threshold_is_stale(self) -> None:
        assert classify(_payload_aged(10_001), _NOW).available is False

    def test_fifteen_seconds_old_is_stale(self) -> None:
        assert classify(_payload_aged(15_000), _NOW).available is False

    def test_no_payload(self) -> None:
        result = classify(None, _NOW)
        assert result.available is False
        assert result.reason == "no_payload"
        assert result.age_ms is None

    def test_missing_timestamp(self) -> None:
        result = classify({"lightLevel": 3500}, _NOW)
        assert result.available is False
        assert result.reason == "no_timestamp"

    def test_unparseable_timestamp(self) -> None:
        assert classify({"timestamp": "yesterday"}, _NOW).reason == "no_timestamp"

    def test_slightly_future_timestamp_is_live(self) -> None:
        """Small clock skew ahead of us still counts as live."""
        assert classify(_payload_aged(-2_000), _NOW).available is True

    def test_far_future_timestamp_is_unavailable(self) -> None:
        result = classify(_payload_aged(-60_000), _NOW)
        assert result.available is False
        assert result.reason == "future"


class TestParseTimestamp:
    def test_iso_with_z_suffix(self) -> None:
        assert parse_timestamp("2026-10-15T12:00:00Z") == _NOW

    def test_naive_iso_is_utc(self) -> None:
        assert parse_timestamp("2026-10-15T12:00:00") == _NOW

    def test_epoch_milliseconds(self) -> None:
        assert parse_timestamp(int(_NOW.timestamp() * 1000)) == _NOW

    def test_aware_datetime_passthrough(self) -> None:
        assert parse_timestamp(_NOW) is _NOW

    @pytest.mark.parametrize("value", [None, "", "   ", "not a date", True, [], {}])
    def test_rejects_garbage(self, value: object) -> None:
        assert parse_timestamp(value) is None

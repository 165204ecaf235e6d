"""
Aggregation of history samples for the analytics views.

Two operations:
- samples_for_day: the samples of one day of the current (Sunday-first)
  week, as shown by the per-day analytics tab.
- aggregate: buckets samples by weekday, week of month or month and
  reports total energy and average efficiency per bucket.

The TIMEFRAME_CONFIG dict maps each timeframe to its bucket-key function.

CHANGELOG:
- 2026-10-19: Bucket samples in the configured zone (STORY-115)
- 2026-10-17: Initial creation (STORY-113)

TODO:
- None
"""

from __future__ import annotations

import math
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta, tzinfo

from tracker.src.backfill import sunday_index
from tracker.src.models import Sample

DAY_NAMES: tuple[str, ...] = (
    "Sunday",
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
)

_DAY_ABBR: tuple[str, ...] = ("Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat")
_MONTH_ABBR: tuple[str, ...] = (
    "Jan",
    "Feb",
    "Mar",
    "Apr",
    "May",
    "Jun",
    "Jul",
    "Aug",
    "Sep",
    "Oct",
    "Nov",
    "Dec",
)


@dataclass(frozen=True)
class Bucket:
    """One aggregated bucket.

    Attributes:
        name: Bucket label (``Mon``, ``W2``, ``Mar``).
        total_energy: Sum of sample energy, one decimal.
        avg_efficiency: Mean sample efficiency, one decimal.
        count: Number of samples in the bucket.
    """

    name: str
    total_energy: float
    avg_efficiency: float
    count: int


TIMEFRAME_CONFIG: dict[str, Callable[[datetime], str]] = {
    "weekly": lambda ts: _DAY_ABBR[sunday_index(ts)],
    "monthly": lambda ts: f"W{math.ceil(ts.day / 7)}",
    "yearly": lambda ts: _MONTH_ABBR[ts.month - 1],
}


def _in_zone(ts: datetime, zone: tzinfo | None) -> datetime:
    return ts if zone is None else ts.astimezone(zone)


def available_days(now: datetime) -> list[str]:
    """Day names of the current week up to and including today."""
    return list(DAY_NAMES[: sunday_index(now) + 1])


def samples_for_day(samples: Iterable[Sample], day_name: str, now: datetime) -> list[Sample]:
    """Samples whose timestamp falls on *day_name* of the current week.

    The day runs from 00:00:00 to 23:59:59.999999 in the timezone of *now*.

    Raises:
        ValueError: If *day_name* is unknown or later in the week than today.
    """
    if day_name not in DAY_NAMES:
        raise ValueError(f"Unknown day '{day_name}'")
    day_index = DAY_NAMES.index(day_name)
    today_index = sunday_index(now)
    if day_index > today_index:
        raise ValueError(f"'{day_name}' has not happened yet this week")

    target = now - timedelta(days=today_index - day_index)
    start = target.replace(hour=0, minute=0, second=0, microsecond=0)
    end = start + timedelta(days=1)
    return [sample for sample in samples if start <= sample.timestamp < end]


def aggregate(
    samples: Iterable[Sample],
    timeframe: str,
    zone: tzinfo | None = None,
) -> list[Bucket]:
    """Bucket *samples* for a timeframe (weekly, monthly or yearly).

    Buckets are returned in the order their first sample was seen. Bucket
    keys are read in *zone*; each sample's own offset when None.

    Raises:
        KeyError: If *timeframe* is not a TIMEFRAME_CONFIG key.
    """
    key_for = TIMEFRAME_CONFIG[timeframe]
    totals: dict[str, list[float]] = {}
    for sample in samples:
        key = key_for(_in_zone(sample.timestamp, zone))
        energy_eff_count = totals.setdefault(key, [0.0, 0.0, 0])
        energy_eff_count[0] += sample.energy
        energy_eff_count[1] += sample.efficiency
        energy_eff_count[2] += 1

    return [
        Bucket(
            name=name,
            total_energy=round(energy, 1),
            avg_efficiency=round(efficiency / count, 1),
            count=int(count),
        )
        for name, (energy, efficiency, count) in totals.items()
    ]

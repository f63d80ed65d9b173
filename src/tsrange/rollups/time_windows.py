"""Calendar bucket boundaries with DST awareness.

RedisTimeSeries aggregates into fixed-duration buckets only. To get one point
per calendar month or per local day, a range is cut into buckets whose
boundaries follow the calendar of a timezone; each bucket is then queried with
its own duration.

A local day may be 23, 24 or 25 hours long in UTC; a month 28 to 31 days.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

import pytz

from ..client.aggregation import CalendarUnit
from ..core.time import from_msec, is_dst_transition_day, to_msec
from ..observability import get_logger

__all__ = [
    "BoundarySequence",
    "Bucket",
    "compute_buckets",
    "compute_day_boundaries",
    "compute_day_buckets",
    "compute_month_boundaries",
    "compute_month_buckets",
    "next_month_start",
]

log = get_logger("planner")


@dataclass(frozen=True)
class Bucket:
    """Half-open span ``[start, end)`` in epoch milliseconds.

    Only a zero-length request produces a bucket with ``start == end``.
    """

    start: int
    end: int

    @property
    def duration(self) -> int:
        return self.end - self.start

    def contains(self, start: int, end: int) -> bool:
        """True if ``[start, end]`` lies wholly inside this bucket."""
        return self.start <= start and end <= max(self.end - 1, self.start)

    def __contains__(self, ts: int) -> bool:
        if self.start == self.end:
            return ts == self.start
        return self.start <= ts < self.end


BoundarySequence = tuple[Bucket, ...]


def next_month_start(local_dt: datetime, tz: pytz.BaseTzInfo) -> datetime:
    """First instant (local midnight) of the month after ``local_dt``.

    Parameters
    ----------
    local_dt
        Aware datetime in ``tz``
    tz
        pytz timezone

    Returns
    -------
    datetime
        Aware datetime in ``tz``
    """
    if local_dt.month == 12:
        naive = datetime(local_dt.year + 1, 1, 1)
    else:
        naive = datetime(local_dt.year, local_dt.month + 1, 1)
    return tz.normalize(tz.localize(naive))


def compute_month_buckets(start_ms: int, end_ms: int, timezone_str: str = "UTC") -> BoundarySequence:
    """Cut ``[start, end)`` at local month boundaries.

    The first bucket starts at ``start``; each later bucket starts at local
    midnight on the first of a month. The last bucket is clamped to ``end``.

    Parameters
    ----------
    start_ms
        Range start (epoch ms)
    end_ms
        Range end (epoch ms)
    timezone_str
        Timezone name (e.g., "Europe/Brussels")

    Returns
    -------
    BoundarySequence
        Gap-free, non-overlapping buckets covering the range

    Examples
    --------
    >>> jan, feb = compute_month_buckets(1704067200000, 1709251200000)
    >>> jan.duration == 31 * 86_400_000, feb.duration == 29 * 86_400_000
    (True, True)
    """
    _check_range(start_ms, end_ms)
    tz = pytz.timezone(timezone_str)

    buckets: list[Bucket] = []
    current_start = start_ms
    while True:
        local = from_msec(current_start).astimezone(tz)
        boundary = to_msec(next_month_start(local, tz))
        if boundary >= end_ms:
            buckets.append(Bucket(current_start, end_ms))
            break
        buckets.append(Bucket(current_start, boundary))
        current_start = boundary

    return tuple(buckets)


def compute_day_buckets(start_ms: int, end_ms: int, timezone_str: str = "UTC") -> BoundarySequence:
    """Cut ``[start, end)`` into local calendar days.

    Each bucket ends at the same wall-clock time one day later in
    ``timezone_str``, so a bucket containing a DST change lasts 23 hours
    (spring forward) or 25 hours (fall back). The last bucket is clamped to
    ``end``; at least one bucket is produced.

    Parameters
    ----------
    start_ms
        Range start (epoch ms)
    end_ms
        Range end (epoch ms)
    timezone_str
        Timezone name (e.g., "America/New_York")

    Returns
    -------
    BoundarySequence
        Gap-free, non-overlapping buckets covering the range
    """
    _check_range(start_ms, end_ms)
    tz = pytz.timezone(timezone_str)

    buckets: list[Bucket] = []
    current_start = start_ms
    while True:
        local = from_msec(current_start).astimezone(tz)
        next_local = tz.normalize(tz.localize(local.replace(tzinfo=None) + timedelta(days=1)))
        current_end = to_msec(next_local)

        if is_dst_transition_day(local, timezone_str):
            log.debug(
                f"DST transition on {local.date()} in {timezone_str}: "
                f"bucket lasts {(current_end - current_start) / 3_600_000:g}h"
            )

        if current_end >= end_ms:
            buckets.append(Bucket(current_start, end_ms))
            break
        buckets.append(Bucket(current_start, current_end))
        current_start = current_end

    return tuple(buckets)


def compute_buckets(
    start_ms: int,
    end_ms: int,
    unit: CalendarUnit | str,
    timezone_str: str = "UTC",
) -> BoundarySequence:
    """Compute calendar buckets for any supported unit.

    Convenience function that dispatches to the unit-specific functions.

    Raises
    ------
    ValueError
        If the unit is not a calendar unit
    """
    unit = CalendarUnit(unit)
    if unit is CalendarUnit.MONTH:
        return compute_month_buckets(start_ms, end_ms, timezone_str)
    elif unit is CalendarUnit.DAY:
        return compute_day_buckets(start_ms, end_ms, timezone_str)
    else:
        raise ValueError(f"Unknown calendar unit: {unit}")


def compute_day_boundaries(local_date: datetime, timezone_str: str = "UTC") -> tuple[int, int]:
    """Epoch-ms boundaries ``[start, end)`` of the local day containing ``local_date``.

    Examples
    --------
    >>> start, end = compute_day_boundaries(datetime(2025, 3, 9), "America/New_York")
    >>> (end - start) // 3_600_000  # spring forward
    23
    """
    tz = pytz.timezone(timezone_str)

    local_start = tz.localize(datetime(local_date.year, local_date.month, local_date.day))
    next_day = local_date + timedelta(days=1)
    local_end = tz.localize(datetime(next_day.year, next_day.month, next_day.day))

    return to_msec(local_start), to_msec(local_end)


def compute_month_boundaries(local_date: datetime, timezone_str: str = "UTC") -> tuple[int, int]:
    """Epoch-ms boundaries ``[start, end)`` of the local month containing ``local_date``."""
    tz = pytz.timezone(timezone_str)

    local_start = tz.localize(datetime(local_date.year, local_date.month, 1))
    local_end = next_month_start(local_start, tz)

    return to_msec(local_start), to_msec(local_end)


def _check_range(start_ms: int, end_ms: int) -> None:
    if end_ms < start_ms:
        raise ValueError(f"Range end {end_ms} is before start {start_ms}")

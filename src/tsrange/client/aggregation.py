"""Aggregation specifications for range queries and compaction rules.

An aggregation is a combination of a function (``avg``, ``sum``, ...) and a
bucket over which to apply it. RedisTimeSeries only understands fixed-duration
buckets in milliseconds; calendar units (month, day) are resolved by the query
planner into one fixed-duration aggregation per calendar bucket.
"""

from __future__ import annotations

from datetime import timedelta
from enum import Enum
from typing import Any, Union

from ..core.errors import AggregationError

__all__ = [
    "AGGREGATION_TYPES",
    "Aggregation",
    "CalendarUnit",
]

AGGREGATION_TYPES = (
    "avg",
    "count",
    "first",
    "last",
    "max",
    "min",
    "range",
    "std.p",
    "std.s",
    "sum",
    "var.p",
    "var.s",
    "twa",
)


class CalendarUnit(str, Enum):
    """Bucket sizes whose length depends on the calendar."""

    MONTH = "month"
    DAY = "day"


Duration = Union[int, timedelta, CalendarUnit]


class Aggregation:
    """Aggregation function plus bucket duration.

    Parameters
    ----------
    type
        One of :data:`AGGREGATION_TYPES` (case-insensitive)
    duration
        Bucket size: milliseconds, a ``timedelta``, or a calendar unit
        (``CalendarUnit`` or the strings ``"month"`` / ``"day"``)

    Raises
    ------
    AggregationError
        If the type is unknown or the duration is not usable

    Example
    -------
    >>> Aggregation("avg", 60_000).to_list()
    ['AGGREGATION', 'avg', 60000]
    >>> Aggregation("sum", "month").is_calendar
    True
    """

    def __init__(self, type: str, duration: Any) -> None:
        agg_type = str(type).lower()
        if agg_type not in AGGREGATION_TYPES:
            raise AggregationError(f"{agg_type} is not a valid aggregation type!")
        self.type = agg_type
        self.duration = self._parse_duration(duration)

    @classmethod
    def parse(cls, agg: Any) -> Aggregation | None:
        """Parse a method argument into an aggregation.

        Accepts ``None``, an :class:`Aggregation`, or a ``(type, duration)`` pair.

        Raises
        ------
        AggregationError
            When given an unparseable value
        """
        if agg is None:
            return None
        if isinstance(agg, cls):
            return agg
        if isinstance(agg, (list, tuple)) and len(agg) == 2:
            return cls(agg[0], agg[1])
        raise AggregationError(f"Couldn't parse {agg!r} into an aggregation rule!")

    @property
    def is_calendar(self) -> bool:
        return isinstance(self.duration, CalendarUnit)

    @property
    def calendar_unit(self) -> CalendarUnit | None:
        return self.duration if isinstance(self.duration, CalendarUnit) else None

    def with_duration(self, duration_ms: int) -> Aggregation:
        """Return a fixed-duration copy of this aggregation."""
        return Aggregation(self.type, duration_ms)

    def to_list(self) -> list[Any]:
        """Arguments for the AGGREGATION clause.

        Raises
        ------
        AggregationError
            For calendar aggregations, which have no single wire duration
        """
        if self.is_calendar:
            raise AggregationError(
                f"Calendar aggregation '{self.duration.value}' must be resolved into buckets before sending"
            )
        return ["AGGREGATION", self.type, self.duration]

    def __eq__(self, other: object) -> bool:
        try:
            parsed = self.parse(other)
        except AggregationError:
            return NotImplemented
        if parsed is None:
            return False
        return self.type == parsed.type and self.duration == parsed.duration

    def __hash__(self) -> int:
        return hash((self.type, self.duration))

    def __repr__(self) -> str:
        duration = self.duration.value if self.is_calendar else self.duration
        return f"Aggregation({self.type!r}, {duration!r})"

    def __str__(self) -> str:
        duration = self.duration.value if self.is_calendar else self.duration
        return f"AGGREGATION {self.type} {duration}"

    @staticmethod
    def _parse_duration(duration: Any) -> Duration:
        if isinstance(duration, CalendarUnit):
            return duration
        if isinstance(duration, str):
            try:
                return CalendarUnit(duration.lower())
            except ValueError:
                pass
            if not duration.isdigit():
                raise AggregationError(f"Couldn't parse duration {duration!r}")
            duration = int(duration)
        if isinstance(duration, timedelta):
            duration = int(duration.total_seconds() * 1000)
        if isinstance(duration, bool) or not isinstance(duration, int):
            raise AggregationError(f"Couldn't parse duration {duration!r}")
        if duration <= 0:
            raise AggregationError(f"Aggregation duration must be positive, got {duration}")
        return duration

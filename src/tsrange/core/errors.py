"""Error hierarchy for tsrange.

Every error raised by the library derives from :class:`TimeSeriesError`,
which itself derives from ``redis.exceptions.RedisError`` so callers can
catch time-series problems together with ordinary Redis command errors.
"""

from __future__ import annotations

from redis.exceptions import RedisError

__all__ = [
    "AggregationError",
    "CalculationError",
    "FilterError",
    "MalformedReplyError",
    "PipelineMismatchError",
    "TimeSeriesError",
    "UnknownPolicyError",
]


class TimeSeriesError(RedisError):
    """Base error for convenient ``except``-ing."""


class FilterError(TimeSeriesError):
    """Raised when label filters, timestamp filters or range filters are invalid."""


class AggregationError(TimeSeriesError):
    """Raised for an unknown aggregation type or an unparseable aggregation value."""


class UnknownPolicyError(TimeSeriesError):
    """Raised for an unknown duplicate policy."""


class CalculationError(TimeSeriesError):
    """Raised when a reduction runs on samples that were not produced by a merge."""


class MalformedReplyError(TimeSeriesError):
    """In-band marker for a reply row that is not a ``[timestamp, value]`` pair."""

    def __init__(self, row: object) -> None:
        super().__init__(f"Malformed reply row: {row!r}")
        self.row = row


class PipelineMismatchError(TimeSeriesError):
    """Raised when a pipeline returns a different number of replies than commands issued.

    Replies are matched to buckets by position, so this is never retried.
    """

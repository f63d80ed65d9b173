"""Core building blocks shared by the client and the query planner."""

from .errors import (
    AggregationError,
    CalculationError,
    FilterError,
    MalformedReplyError,
    PipelineMismatchError,
    TimeSeriesError,
    UnknownPolicyError,
)
from .time import (
    OPEN_END,
    OPEN_START,
    format_utc_iso8601,
    from_msec,
    get_current_msec,
    get_current_utc,
    is_dst_transition_day,
    parse_datetime,
    parse_utc_iso8601,
    to_msec,
)

__all__ = [
    # Errors
    "TimeSeriesError",
    "AggregationError",
    "CalculationError",
    "FilterError",
    "MalformedReplyError",
    "PipelineMismatchError",
    "UnknownPolicyError",
    # Time
    "OPEN_END",
    "OPEN_START",
    "format_utc_iso8601",
    "from_msec",
    "get_current_msec",
    "get_current_utc",
    "is_dst_transition_day",
    "parse_datetime",
    "parse_utc_iso8601",
    "to_msec",
]

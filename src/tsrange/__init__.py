"""tsrange - calendar-aware range queries and multi-series aggregation for RedisTimeSeries."""

from .client import Aggregation, CalendarUnit, RedisContext, TimeSeries
from .core.errors import TimeSeriesError
from .rollups import MergePolicy, RangeCommand, Sample, Samples

__version__ = "0.1.0"

__all__ = [
    "Aggregation",
    "CalendarUnit",
    "MergePolicy",
    "RangeCommand",
    "RedisContext",
    "Sample",
    "Samples",
    "TimeSeries",
    "TimeSeriesError",
    "__version__",
]

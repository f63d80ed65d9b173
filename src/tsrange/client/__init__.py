"""Thin wrappers over the RedisTimeSeries command set."""

from .aggregation import AGGREGATION_TYPES, Aggregation, CalendarUnit
from .connection import RedisContext, normalize_args
from .duplicate_policy import DuplicatePolicy
from .filters import Filters
from .info import Info, Rule
from .timeseries import SingleValue, TimeSeries, TimestampValuePairs, ValueInput, ValueList

__all__ = [
    "AGGREGATION_TYPES",
    "Aggregation",
    "CalendarUnit",
    "DuplicatePolicy",
    "Filters",
    "Info",
    "RedisContext",
    "Rule",
    "SingleValue",
    "TimeSeries",
    "TimestampValuePairs",
    "ValueInput",
    "ValueList",
    "normalize_args",
]

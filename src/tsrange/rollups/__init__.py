"""Calendar bucketing, range planning and multi-series aggregation."""

from .planner import (
    DEFAULT_FILTER_CHUNK_SIZE,
    QueryPlan,
    RangeCommand,
    RangeRequest,
    SubQuery,
    TimeRange,
    execute_plan,
    plan,
)
from .reconciler import reconcile
from .samples import NAN, CalculatedSample, MergePolicy, Sample, Samples, is_nan, parse_value
from .time_windows import (
    BoundarySequence,
    Bucket,
    compute_buckets,
    compute_day_boundaries,
    compute_day_buckets,
    compute_month_boundaries,
    compute_month_buckets,
)

__all__ = [
    # Planner
    "DEFAULT_FILTER_CHUNK_SIZE",
    "QueryPlan",
    "RangeCommand",
    "RangeRequest",
    "SubQuery",
    "TimeRange",
    "execute_plan",
    "plan",
    "reconcile",
    # Samples
    "NAN",
    "CalculatedSample",
    "MergePolicy",
    "Sample",
    "Samples",
    "is_nan",
    "parse_value",
    # Buckets
    "BoundarySequence",
    "Bucket",
    "compute_buckets",
    "compute_day_boundaries",
    "compute_day_buckets",
    "compute_month_boundaries",
    "compute_month_buckets",
]

"""Calendar-aware range query planning.

DATA FLOW
=========

    RangeCommand (builder)  ->  RangeRequest (immutable)
        -> plan()          cut the range into calendar buckets, apply filters,
                           emit one SubQuery per remote TS.RANGE call
        -> execute_plan()  send every SubQuery in ONE pipelined round trip
        -> reconcile()     map replies back to buckets, add NaN placeholders

WHAT IS A SUB-QUERY?
--------------------

A SubQuery = bucket index + a fully resolved RangeRequest whose aggregation
is a plain fixed duration the server understands.

EXAMPLE
-------

Monthly average from 2024-01-01 to 2024-04-01 (UTC):

    Bucket 0: [2024-01-01, 2024-02-01)  -> TS.RANGE key <jan1> <jan31 23:59:59.999>
                                           ALIGN <jan1> AGGREGATION avg 2678400000
    Bucket 1: [2024-02-01, 2024-03-01)  -> ... AGGREGATION avg 2505600000
    Bucket 2: [2024-03-01, 2024-04-01)  -> ... AGGREGATION avg 2678400000

FILTERS
-------

- FILTER_BY_TS values are chunked (128 per call by default): the server
  bounds the number of filter values per command.
- Sub-range filters apply only to buckets that wholly contain them; each
  contained sub-range becomes its own call aligned to the bucket start.

For calendar requests the range end is exclusive, like every bucket.
Requests are never mutated; each sub-query is a value copy.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import TYPE_CHECKING, Any, Union

from ..client.aggregation import Aggregation
from ..core.errors import AggregationError, FilterError, PipelineMismatchError
from ..core.time import OPEN_END, OPEN_START, to_msec
from ..observability import get_logger, timing_context
from .reconciler import reconcile
from .time_windows import BoundarySequence, Bucket, compute_buckets

if TYPE_CHECKING:
    from ..client.connection import RedisContext
    from .samples import Samples

__all__ = [
    "DEFAULT_FILTER_CHUNK_SIZE",
    "QueryPlan",
    "RangeCommand",
    "RangeRequest",
    "SubQuery",
    "TimeRange",
    "chunked",
    "execute_plan",
    "plan",
]

log = get_logger("planner")

DEFAULT_FILTER_CHUNK_SIZE = 128

Bound = Union[int, str]


@dataclass(frozen=True)
class TimeRange:
    """Inclusive ``[start, end]`` sub-range in epoch milliseconds."""

    start: int
    end: int

    @classmethod
    def parse(cls, value: Any, tz: str | None = None) -> TimeRange:
        """Accept a TimeRange or a ``(start, end)`` pair of ms/datetimes/ISO strings."""
        if isinstance(value, cls):
            return value
        if isinstance(value, range):
            return cls(value.start, value.stop - 1)
        try:
            start, end = value
            parsed = cls(to_msec(start, tz), to_msec(end, tz))
        except (TypeError, ValueError) as exc:
            raise FilterError(f"Couldn't parse {value!r} into a time range") from exc
        if parsed.end < parsed.start:
            raise FilterError(f"Time range {value!r} ends before it starts")
        return parsed


@dataclass(frozen=True)
class RangeRequest:
    """Everything needed to issue one logical TS.RANGE / TS.REVRANGE query.

    Attributes
    ----------
    key : str
        Series key
    start, end : int | str
        Epoch ms, or the open markers ``"-"`` / ``"+"``
    aggregation : Aggregation | None
        Fixed-duration or calendar aggregation
    filter_by_ts : tuple[int, ...] | None
        Explicit timestamps to restrict results to
    filter_by_range : tuple[TimeRange, ...] | None
        Sub-ranges to restrict calendar buckets to
    filter_by_value : tuple | None
        ``(min, max)`` value filter
    count : int | None
        Maximum number of results per remote call
    align : int | str
        ALIGN argument for aggregations
    include_empty : bool
        Report empty buckets (NaN placeholders for calendar buckets)
    reverse : bool
        Newest first
    latest : bool
        Include the latest, possibly partial, compacted bucket
    timezone : str | None
        Zone for calendar bucketing (None: context default)
    """

    key: str
    start: Bound = OPEN_START
    end: Bound = OPEN_END
    aggregation: Aggregation | None = None
    filter_by_ts: tuple[int, ...] | None = None
    filter_by_range: tuple[TimeRange, ...] | None = None
    filter_by_value: tuple[Any, Any] | None = None
    count: int | None = None
    align: Bound = "start"
    include_empty: bool = True
    reverse: bool = False
    latest: bool = False
    timezone: str | None = None

    @property
    def command(self) -> str:
        return "TS.REVRANGE" if self.reverse else "TS.RANGE"

    @property
    def is_calendar(self) -> bool:
        return self.aggregation is not None and self.aggregation.is_calendar

    def to_args(self) -> list[Any]:
        """Arguments following the command name, in server order."""
        args: list[Any] = [self.key, self.start, self.end]
        if self.latest:
            args.append("LATEST")
        if self.filter_by_ts:
            args.extend(["FILTER_BY_TS", *self.filter_by_ts])
        if self.filter_by_value:
            args.extend(["FILTER_BY_VALUE", *self.filter_by_value])
        if self.count is not None:
            args.extend(["COUNT", self.count])
        if self.aggregation is not None:
            # ALIGN is only valid together with an aggregation
            args.extend(["ALIGN", self.align])
            args.extend(self.aggregation.to_list())
            if self.include_empty:
                args.append("EMPTY")
        return args


@dataclass(frozen=True)
class SubQuery:
    """One remote call and the bucket its rows belong to."""

    bucket_index: int
    request: RangeRequest

    @property
    def command(self) -> str:
        return self.request.command

    @property
    def args(self) -> list[Any]:
        return self.request.to_args()


@dataclass(frozen=True)
class QueryPlan:
    """Ordered remote calls for one logical request.

    ``buckets`` is empty when no calendar unit was requested; the whole range
    then counts as the single bucket 0.
    """

    request: RangeRequest
    buckets: BoundarySequence = ()
    subqueries: tuple[SubQuery, ...] = field(default_factory=tuple)
    reverse_result: bool = False

    @property
    def is_calendar(self) -> bool:
        return bool(self.buckets)

    @property
    def bucket_count(self) -> int:
        return len(self.buckets) if self.buckets else 1


def chunked(values: Sequence[int], size: int) -> list[tuple[int, ...]]:
    """Split ``values`` into consecutive tuples of at most ``size`` items."""
    if size < 1:
        raise ValueError(f"Chunk size must be positive, got {size}")
    return [tuple(values[i : i + size]) for i in range(0, len(values), size)]


def plan(
    request: RangeRequest,
    *,
    chunk_size: int = DEFAULT_FILTER_CHUNK_SIZE,
    default_timezone: str = "UTC",
) -> QueryPlan:
    """Decompose a request into the remote calls that answer it.

    Pure function: no network access, the request is not modified.

    Parameters
    ----------
    request
        Logical range request
    chunk_size
        Maximum FILTER_BY_TS values per call
    default_timezone
        Zone for calendar bucketing if the request names none

    Returns
    -------
    QueryPlan
        Buckets plus sub-queries in issuance order

    Raises
    ------
    AggregationError
        Calendar aggregation over an open-ended range
    FilterError
        Empty timestamp filter
    """
    if request.filter_by_ts is not None and not request.filter_by_ts:
        raise FilterError("FILTER_BY_TS requires at least one timestamp")

    if not request.is_calendar:
        return _plan_fixed(request, chunk_size)

    if not isinstance(request.start, int) or not isinstance(request.end, int):
        raise AggregationError(
            f"Calendar aggregation '{request.aggregation.calendar_unit.value}' needs explicit start and end times"
        )

    timezone_str = request.timezone or default_timezone
    buckets = compute_buckets(request.start, request.end, request.aggregation.calendar_unit, timezone_str)

    subqueries: list[SubQuery] = []
    for index, bucket in enumerate(buckets):
        bucket_request = replace(
            request,
            start=bucket.start,
            end=max(bucket.start, bucket.end - 1),
            aggregation=request.aggregation.with_duration(max(bucket.duration, 1)),
            align=bucket.start,
            include_empty=False,
            reverse=False,
            filter_by_ts=None,
            filter_by_range=None,
        )
        for window in _windows(bucket_request, request.filter_by_range, bucket):
            subqueries.extend(
                SubQuery(index, sub)
                for sub in _with_timestamp_chunks(window, request.filter_by_ts, chunk_size)
            )

    log.debug(
        f"Planned {len(subqueries)} calls over {len(buckets)} "
        f"{request.aggregation.calendar_unit.value} buckets for {request.key} ({timezone_str})"
    )
    return QueryPlan(request, buckets, tuple(subqueries), reverse_result=request.reverse)


def _plan_fixed(request: RangeRequest, chunk_size: int) -> QueryPlan:
    base = replace(request, filter_by_ts=None, filter_by_range=None)

    windows: Iterable[RangeRequest]
    if request.filter_by_range:
        align = request.start if isinstance(request.start, int) else request.align
        windows = [
            replace(base, start=r.start, end=r.end, align=align)
            for r in request.filter_by_range
            if _within(r.start, request.start, request.end) and _within(r.end, request.start, request.end)
        ]
    else:
        windows = [base]

    subs = [sub for window in windows for sub in _with_timestamp_chunks(window, request.filter_by_ts, chunk_size)]

    if len(subs) == 1:
        return QueryPlan(request, (), (SubQuery(0, subs[0]),), reverse_result=False)

    # Several calls: newest chunk first when reversed, so COUNT keeps the newest rows
    if request.reverse:
        subs.reverse()
    return QueryPlan(request, (), tuple(SubQuery(0, sub) for sub in subs), reverse_result=False)


def _windows(
    bucket_request: RangeRequest,
    ranges: tuple[TimeRange, ...] | None,
    bucket: Bucket,
) -> list[RangeRequest]:
    if not ranges:
        return [bucket_request]
    return [replace(bucket_request, start=r.start, end=r.end) for r in ranges if bucket.contains(r.start, r.end)]


def _with_timestamp_chunks(
    window: RangeRequest,
    timestamps: tuple[int, ...] | None,
    chunk_size: int,
) -> list[RangeRequest]:
    if timestamps is None:
        return [window]
    inside = sorted(ts for ts in timestamps if _within(ts, window.start, window.end))
    return [replace(window, filter_by_ts=chunk) for chunk in chunked(inside, chunk_size)]


def _within(ts: int, start: Bound, end: Bound) -> bool:
    lower_ok = not isinstance(start, int) or start <= ts
    upper_ok = not isinstance(end, int) or ts <= end
    return lower_ok and upper_ok


def execute_plan(context: RedisContext, query_plan: QueryPlan) -> Samples:
    """Send every sub-query in a single pipeline and reconcile the replies.

    Per-call server errors come back as in-band markers; connection errors
    propagate unchanged. Nothing is retried.

    Raises
    ------
    PipelineMismatchError
        If the pipeline returns a different number of replies than calls
    """
    subqueries = query_plan.subqueries
    replies: list[Any] = []

    if subqueries:
        pipe = context.pipeline()
        for sub in subqueries:
            context.call(sub.command, *sub.args, pipeline=pipe)

        with timing_context(
            "range_pipeline",
            component="planner",
            key=query_plan.request.key,
            commands=len(subqueries),
        ) as ctx:
            replies = pipe.execute(raise_on_error=False)
            ctx["replies"] = len(replies)

    if len(replies) != len(subqueries):
        raise PipelineMismatchError(
            f"Pipeline returned {len(replies)} replies for {len(subqueries)} commands"
        )

    return reconcile(query_plan, replies)


class RangeCommand:
    """Chainable builder for a planned range query.

    Example
    -------
    >>> samples = (
    ...     RangeCommand(ctx, "energy", "2024-01-01", "2024-04-01", timezone="Europe/Brussels")
    ...     .aggregation("sum", "month")
    ...     .empty()
    ...     .execute()
    ... )

    Each method returns the builder; the underlying :class:`RangeRequest`
    is replaced, never mutated. Time inputs are kept as given and re-read
    whenever :meth:`in_timezone` changes the zone.
    """

    def __init__(
        self,
        context: RedisContext,
        key: str,
        start: Any = None,
        end: Any = None,
        *,
        timezone: str | None = None,
    ) -> None:
        self.context = context
        self._raw: dict[str, Any] = {"start": start, "end": end}
        self._request = RangeRequest(key=key, timezone=timezone)
        self._resolve_times()

    @property
    def request(self) -> RangeRequest:
        return self._request

    def _set(self, **changes: Any) -> RangeCommand:
        self._request = replace(self._request, **changes)
        return self

    def aggregation(self, agg: Any, duration: Any = None) -> RangeCommand:
        """Set the aggregation: ``("avg", 60000)``, ``("sum", "month")`` or an Aggregation."""
        parsed = Aggregation.parse(agg if duration is None else (agg, duration))
        return self._set(aggregation=parsed)

    def filter_by_ts(self, timestamps: Iterable[Any]) -> RangeCommand:
        return self._remember("filter_by_ts", list(timestamps))

    def filter_by_range(self, ranges: Iterable[Any]) -> RangeCommand:
        return self._remember("filter_by_range", list(ranges))

    def filter_by_value(self, minimum: Any, maximum: Any) -> RangeCommand:
        return self._set(filter_by_value=(minimum, maximum))

    def count(self, count: int) -> RangeCommand:
        if count < 1:
            raise ValueError(f"COUNT must be positive, got {count}")
        return self._set(count=count)

    def align(self, align: Any) -> RangeCommand:
        return self._remember("align", align)

    def empty(self, include_empty: bool = True) -> RangeCommand:
        return self._set(include_empty=include_empty)

    def revrange(self) -> RangeCommand:
        return self._set(reverse=True)

    def latest(self, latest: bool = True) -> RangeCommand:
        return self._set(latest=latest)

    def in_timezone(self, timezone: str) -> RangeCommand:
        self._set(timezone=timezone)
        return self._resolve_times()

    def plan(self) -> QueryPlan:
        return plan(
            self._request,
            chunk_size=self.context.filter_chunk_size,
            default_timezone=self.context.default_timezone,
        )

    def execute(self) -> Samples:
        return execute_plan(self.context, self.plan())

    def _zone(self) -> str:
        return self._request.timezone or self.context.default_timezone

    def _remember(self, name: str, value: Any) -> RangeCommand:
        previous = self._raw.copy()
        self._raw[name] = value
        try:
            return self._resolve_times()
        except FilterError:
            self._raw = previous
            raise

    def _resolve_times(self) -> RangeCommand:
        """Convert every stored time input to epoch ms in the current zone."""
        zone = self._zone()
        raw = self._raw
        changes: dict[str, Any] = {
            "start": _bound(raw["start"], OPEN_START, zone),
            "end": _bound(raw["end"], OPEN_END, zone),
        }
        if "filter_by_ts" in raw:
            try:
                values = [to_msec(ts, zone) for ts in raw["filter_by_ts"]]
            except (TypeError, ValueError) as exc:
                raise FilterError(f"Invalid FILTER_BY_TS value: {exc}") from exc
            # Deduplicate while keeping the caller's order
            changes["filter_by_ts"] = tuple(dict.fromkeys(values))
        if "filter_by_range" in raw:
            changes["filter_by_range"] = tuple(TimeRange.parse(r, zone) for r in raw["filter_by_range"])
        if "align" in raw:
            align = raw["align"]
            changes["align"] = to_msec(align, zone) if isinstance(align, datetime) else align
        return self._set(**changes)


def _bound(value: Any, open_marker: str, zone: str) -> Bound:
    if value is None or value in (OPEN_START, OPEN_END):
        return open_marker if value is None else value
    return to_msec(value, zone)

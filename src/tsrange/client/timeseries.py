"""Series objects: thin wrappers over the TS.* commands of one key."""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from datetime import timedelta
from typing import TYPE_CHECKING, Any, Union

from ..core.errors import AggregationError
from ..core.time import get_current_msec, to_msec
from ..observability import get_logger
from ..rollups.samples import Sample, Samples, parse_value
from .aggregation import Aggregation
from .duplicate_policy import DuplicatePolicy
from .filters import Filters
from .info import Info

if TYPE_CHECKING:
    from ..rollups.planner import RangeCommand
    from .connection import RedisContext

__all__ = [
    "SingleValue",
    "TimeSeries",
    "TimestampValuePairs",
    "ValueInput",
    "ValueList",
]

log = get_logger("client")


@dataclass(frozen=True)
class SingleValue:
    """One value stamped with the server's current time."""

    value: Any


@dataclass(frozen=True)
class TimestampValuePairs:
    """Explicit ``(timestamp, value)`` pairs; timestamps may be ms or datetimes."""

    pairs: tuple[tuple[Any, Any], ...]

    @classmethod
    def from_mapping(cls, data: Mapping[Any, Any]) -> TimestampValuePairs:
        return cls(tuple(data.items()))


@dataclass(frozen=True)
class ValueList:
    """Values stamped one millisecond apart, starting now."""

    values: tuple[Any, ...]


ValueInput = Union[SingleValue, TimestampValuePairs, ValueList]


class TimeSeries:
    """A single RedisTimeSeries key.

    Parameters
    ----------
    key
        Redis key of the series
    context
        Connection context used for every command

    Example
    -------
    >>> ts = TimeSeries.create("temperature", ctx, labels={"room": "kitchen"})
    >>> ts.add(21.5)
    >>> ts.range("2024-01-01", "2024-04-01", aggregation=("avg", "month"))
    """

    def __init__(self, key: str, context: RedisContext) -> None:
        self.key = key
        self.context = context

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @classmethod
    def create(
        cls,
        key: str,
        context: RedisContext,
        *,
        retention: int | timedelta | None = None,
        uncompressed: bool = False,
        labels: Mapping[str, Any] | None = None,
        duplicate_policy: str | None = None,
        chunk_size: int | None = None,
    ) -> TimeSeries:
        """Issue TS.CREATE and return the new series."""
        series = cls(key, context)
        args: list[Any] = [key]
        if retention is not None:
            args.extend(["RETENTION", _duration_ms(retention)])
        if uncompressed:
            args.append("UNCOMPRESSED")
        if chunk_size is not None:
            args.extend(["CHUNK_SIZE", chunk_size])
        if duplicate_policy is not None:
            args.extend(DuplicatePolicy(duplicate_policy).to_list())
        if labels:
            args.extend(["LABELS", *(item for pair in labels.items() for item in pair)])
        context.call("TS.CREATE", *args)
        log.info(f"Created series {key}")
        return series

    def delete(self) -> bool:
        """Delete the whole key."""
        return bool(self.context.call("DEL", self.key))

    @classmethod
    def query_index(cls, context: RedisContext, filters: Filters | str | Mapping[str, Any]) -> list[TimeSeries]:
        """Series whose labels match ``filters`` (TS.QUERYINDEX)."""
        if not isinstance(filters, Filters):
            filters = Filters(filters)
        filters.validate()
        keys = context.call("TS.QUERYINDEX", *filters.to_list())
        return [cls(_text(key), context) for key in keys or ()]

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def add(
        self,
        value: Any,
        timestamp: Any = "*",
        *,
        uncompressed: bool | None = None,
        on_duplicate: str | None = None,
    ) -> Sample:
        """Add one sample; ``timestamp="*"`` lets the server stamp it."""
        args: list[Any] = [self.key, _timestamp(timestamp), value]
        if uncompressed:
            args.append("UNCOMPRESSED")
        if on_duplicate is not None:
            args.extend(DuplicatePolicy(on_duplicate).to_list("ON_DUPLICATE"))
        ts = self.context.call("TS.ADD", *args)
        return Sample(int(ts), parse_value(value))

    def madd(self, data: ValueInput) -> list[Any]:
        """Add several samples to this series in one TS.MADD call.

        Returns one :class:`Sample` per value, or the server's error for values
        it rejected.
        """
        if isinstance(data, SingleValue):
            pairs: Sequence[tuple[Any, Any]] = [("*", data.value)]
        elif isinstance(data, TimestampValuePairs):
            pairs = [(_timestamp(ts), value) for ts, value in data.pairs]
        elif isinstance(data, ValueList):
            now = get_current_msec()
            pairs = [(now + offset, value) for offset, value in enumerate(data.values)]
        else:
            raise TypeError(f"Unsupported madd input: {type(data).__name__}")

        args = [item for ts, value in pairs for item in (self.key, ts, value)]
        replies = self.context.call("TS.MADD", *args)

        results: list[Any] = []
        for reply, (_, value) in zip(replies, pairs):
            if isinstance(reply, BaseException):
                results.append(reply)
            else:
                results.append(Sample(int(reply), parse_value(value)))
        return results

    def incrby(self, value: Any = 1, timestamp: Any = None, *, uncompressed: bool | None = None) -> Any:
        return self._counter("TS.INCRBY", value, timestamp, uncompressed)

    def decrby(self, value: Any = 1, timestamp: Any = None, *, uncompressed: bool | None = None) -> Any:
        return self._counter("TS.DECRBY", value, timestamp, uncompressed)

    increment = incrby
    decrement = decrby

    def _counter(self, name: str, value: Any, timestamp: Any, uncompressed: bool | None) -> Any:
        args: list[Any] = [self.key, value]
        if timestamp is not None:
            args.extend(["TIMESTAMP", _timestamp(timestamp)])
        if uncompressed:
            args.append("UNCOMPRESSED")
        return self.context.call(name, *args)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self) -> Sample | None:
        """The most recent sample, or None for an empty series."""
        reply = self.context.call("TS.GET", self.key)
        if not reply:
            return None
        return Sample.from_reply(reply)

    def info(self) -> Info:
        return Info.parse(self, self.context.call("TS.INFO", self.key))

    @property
    def labels(self) -> dict[str, Any]:
        return self.info().labels

    def range_command(self, start: Any = None, end: Any = None, *, timezone: str | None = None) -> RangeCommand:
        """A range builder bound to this series."""
        from ..rollups.planner import RangeCommand

        return RangeCommand(self.context, self.key, start, end, timezone=timezone)

    def range(
        self,
        start: Any = None,
        end: Any = None,
        *,
        aggregation: Any = None,
        count: int | None = None,
        filter_by_ts: Iterable[Any] | None = None,
        filter_by_range: Iterable[Any] | None = None,
        filter_by_value: tuple[Any, Any] | None = None,
        align: Any = None,
        empty: bool | None = None,
        latest: bool = False,
        timezone: str | None = None,
        reverse: bool = False,
    ) -> Samples:
        """Planned TS.RANGE; see :class:`tsrange.rollups.planner.RangeCommand`.

        Parameters
        ----------
        start, end
            Epoch ms, datetimes or ISO strings; None for the open ends
        aggregation
            ``(type, duration)`` where duration is ms, ``"month"`` or ``"day"``
        filter_by_ts
            Timestamps to restrict the result to
        filter_by_range
            ``(start, end)`` sub-ranges applied per calendar bucket
        empty
            Report empty buckets (default: on)

        Returns
        -------
        Samples
            Samples in bucket order, newest first when ``reverse``
        """
        cmd = self.range_command(start, end, timezone=timezone)
        if aggregation is not None:
            cmd.aggregation(aggregation)
        if count is not None:
            cmd.count(count)
        if filter_by_ts is not None:
            cmd.filter_by_ts(filter_by_ts)
        if filter_by_range is not None:
            cmd.filter_by_range(filter_by_range)
        if filter_by_value is not None:
            cmd.filter_by_value(*filter_by_value)
        if align is not None:
            cmd.align(align)
        if empty is not None:
            cmd.empty(empty)
        if latest:
            cmd.latest()
        if reverse:
            cmd.revrange()
        return cmd.execute()

    def revrange(self, start: Any = None, end: Any = None, **options: Any) -> Samples:
        """Like :meth:`range`, newest sample first."""
        return self.range(start, end, reverse=True, **options)

    # ------------------------------------------------------------------
    # Compaction rules
    # ------------------------------------------------------------------

    def create_rule(self, dest: TimeSeries | str, aggregation: Any) -> Any:
        """Compact this series into ``dest`` with a fixed-duration aggregation."""
        agg = Aggregation.parse(aggregation)
        if agg is None:
            raise AggregationError("create_rule requires an aggregation")
        return self.context.call("TS.CREATERULE", self.key, _key(dest), agg.to_list())

    def delete_rule(self, dest: TimeSeries | str) -> Any:
        return self.context.call("TS.DELETERULE", self.key, _key(dest))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TimeSeries):
            return NotImplemented
        return self.key == other.key

    def __hash__(self) -> int:
        return hash(self.key)

    def __repr__(self) -> str:
        return f"TimeSeries({self.key!r})"


def _key(series: TimeSeries | str) -> str:
    return series.key if isinstance(series, TimeSeries) else str(series)


def _text(value: Any) -> str:
    return value.decode() if isinstance(value, bytes) else str(value)


def _duration_ms(value: int | timedelta) -> int:
    if isinstance(value, timedelta):
        return int(value.total_seconds() * 1000)
    return int(value)


def _timestamp(value: Any) -> Any:
    if value == "*" or isinstance(value, int):
        return value
    return to_msec(value)

"""Samples and the multi-series aggregation engine.

A query returns a :class:`Samples` sequence of :class:`Sample` values. Several
sequences fetched against the same buckets can be merged by timestamp into
:class:`CalculatedSample` values (one entry per contributing series) and then
reduced back to scalars:

    merged = Samples.merge([heating, cooling], merge_policy="keep_equal")
    merged.sum_values().round_values(2)

Every mutating operation works in place and returns the sequence itself so
calls can be chained. Instances are not safe to mutate from several threads
at once.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum
from typing import Any, Union

from ..core.errors import CalculationError, MalformedReplyError
from ..core.time import from_msec
from ..observability import get_logger

__all__ = [
    "NAN",
    "CalculatedSample",
    "MergePolicy",
    "Sample",
    "Samples",
    "is_nan",
    "parse_value",
]

log = get_logger("samples")

NAN = Decimal("NaN")


def parse_value(raw: Any) -> Decimal:
    """Convert a wire value (bytes, str, int, float, Decimal) into a Decimal.

    Raises
    ------
    ValueError
        If the value is not numeric
    """
    if isinstance(raw, Decimal):
        return raw
    if isinstance(raw, bytes):
        raw = raw.decode()
    if isinstance(raw, float):
        raw = repr(raw)
    if isinstance(raw, bool) or not isinstance(raw, (str, int)):
        raise ValueError(f"Not a numeric value: {raw!r}")
    try:
        return Decimal(raw)
    except InvalidOperation as exc:
        raise ValueError(f"Not a numeric value: {raw!r}") from exc


def is_nan(value: Any) -> bool:
    if isinstance(value, Decimal):
        return value.is_nan()
    if isinstance(value, float):
        return value != value
    return False


@dataclass(frozen=True)
class Sample:
    """A single data point: epoch milliseconds and a decimal value."""

    ts_msec: int
    value: Decimal

    @classmethod
    def from_reply(cls, row: Any) -> Sample:
        """Build a sample from a ``[timestamp, value]`` reply row.

        Raises
        ------
        MalformedReplyError
            If the row is not a timestamp/value pair
        """
        try:
            ts, raw = row
            return cls(int(ts), parse_value(raw))
        except (TypeError, ValueError) as exc:
            raise MalformedReplyError(row) from exc

    @property
    def time(self) -> datetime:
        return from_msec(self.ts_msec)

    def to_dict(self) -> dict[str, Any]:
        return {"timestamp": self.ts_msec, "value": self.value}


class CalculatedSample:
    """Intermediate sample produced by a merge.

    ``value`` holds one decimal per contributing series until a reduction
    collapses it into a single decimal.
    """

    __slots__ = ("ts_msec", "value")

    def __init__(self, ts_msec: int, value: list[Decimal] | Decimal) -> None:
        self.ts_msec = ts_msec
        self.value = value

    @property
    def time(self) -> datetime:
        return from_msec(self.ts_msec)

    @property
    def is_reduced(self) -> bool:
        return not isinstance(self.value, list)

    def to_dict(self) -> dict[str, Any]:
        return {"timestamp": self.ts_msec, "value": self.value}

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, (CalculatedSample, Sample)):
            return NotImplemented
        return self.ts_msec == other.ts_msec and self.value == other.value

    def __repr__(self) -> str:
        return f"CalculatedSample(ts_msec={self.ts_msec}, value={self.value!r})"


class MergePolicy(str, Enum):
    """Which timestamps survive a merge.

    KEEP_ALL
        Every timestamp seen in any series.
    KEEP_EQUAL
        Only timestamps present in every series.
    KEEP_FIRST
        Only timestamps present in the first series.
    """

    KEEP_ALL = "keep_all"
    KEEP_EQUAL = "keep_equal"
    KEEP_FIRST = "keep_first"


SampleLike = Union[Sample, CalculatedSample]


class Samples(list):
    """Ordered sequence of samples returned by a query.

    Besides samples it may hold in-band error markers (exception instances)
    for sub-queries that failed on the server; see :attr:`has_errors`.
    """

    def __init__(self, iterable: Iterable[Any] = (), metadata: dict[str, Any] | None = None) -> None:
        super().__init__(iterable)
        self.metadata: dict[str, Any] = dict(metadata or {})

    # ------------------------------------------------------------------
    # Inspection
    # ------------------------------------------------------------------

    @property
    def has_errors(self) -> bool:
        """True if any element is an error marker rather than a sample."""
        return any(isinstance(item, BaseException) for item in self)

    @property
    def errors(self) -> list[BaseException]:
        return [item for item in self if isinstance(item, BaseException)]

    @property
    def values(self) -> list[Any]:
        return [item.value for item in self._samples()]

    def to_list(self, raw_timestamps: bool = False) -> list[tuple[Any, Any]]:
        """Pairs of (time, value); raw epoch milliseconds if ``raw_timestamps``."""
        return [
            (item.ts_msec if raw_timestamps else item.time, item.value) for item in self._samples()
        ]

    def to_dict(self, raw_timestamps: bool = False) -> dict[Any, Any]:
        return dict(self.to_list(raw_timestamps=raw_timestamps))

    # ------------------------------------------------------------------
    # Merge
    # ------------------------------------------------------------------

    @classmethod
    def merge(
        cls,
        sample_sets: Sequence[Sequence[SampleLike]],
        merge_policy: MergePolicy | str = MergePolicy.KEEP_ALL,
    ) -> Samples:
        """Merge several sample sequences into one keyed by timestamp.

        Samples are matched on exact ``ts_msec`` equality; callers must fetch
        every sequence against the same bucket boundaries. A series
        contributes at most one value per timestamp (its first), so a merged
        value never has more entries than there are series. Output order is
        the order in which timestamps first appear.

        Parameters
        ----------
        sample_sets
            Sequences to merge, e.g. results for different keys
        merge_policy
            ``keep_all``, ``keep_equal`` or ``keep_first``
            (``keep_equal``/``keep_first`` suit a later ``subtract_values``)

        Returns
        -------
        Samples
            Sequence of :class:`CalculatedSample`
        """
        policy = MergePolicy(merge_policy)
        merged: dict[int, CalculatedSample] = {}

        for index, samples in enumerate(sample_sets):
            seen: set[int] = set()
            for sample in samples:
                if isinstance(sample, BaseException):
                    log.warning(f"Skipping error marker in series #{index} during merge: {sample}")
                    continue
                if sample.ts_msec in seen:
                    continue
                seen.add(sample.ts_msec)

                calculated = merged.get(sample.ts_msec)
                if calculated is None:
                    if policy is MergePolicy.KEEP_FIRST and index > 0:
                        continue
                    calculated = merged[sample.ts_msec] = CalculatedSample(sample.ts_msec, [])
                calculated.value.append(sample.value)

        result = cls(merged.values())
        if policy is MergePolicy.KEEP_EQUAL:
            result[:] = [s for s in result if len(s.value) == len(sample_sets)]

        metadata: dict[str, Any] = {}
        for samples in reversed(sample_sets):
            metadata.update(getattr(samples, "metadata", None) or {})
        result.metadata = metadata
        return result

    # ------------------------------------------------------------------
    # Reductions (merged sequences only)
    # ------------------------------------------------------------------

    def sum_values(self) -> Samples:
        """Replace each value list with its sum; NaN entries count as zero."""
        return self._reduce(lambda values: sum((Decimal(0) if is_nan(v) else v for v in values), Decimal(0)))

    def avg_values(self) -> Samples:
        """Replace each value list with ``sum / count``."""
        return self._reduce(lambda values: sum(values, Decimal(0)) / len(values))

    def subtract_values(self) -> Samples:
        """Replace each value list with ``first * 2 - sum(rest)``.

        The fold starts from twice the first value, then subtracts each
        later value: ``[3, 4] -> 2`` and ``[1, 2, 3] -> -3``.
        """

        def fold(values: list[Decimal]) -> Decimal:
            result = values[0] * 2
            for value in values[1:]:
                result -= value
            return result

        return self._reduce(fold)

    def min_values(self) -> Samples:
        """Minimum over non-NaN entries; all-NaN samples are left unchanged."""
        return self._reduce(min, skip_nan=True)

    def max_values(self) -> Samples:
        """Maximum over non-NaN entries; all-NaN samples are left unchanged."""
        return self._reduce(max, skip_nan=True)

    def _reduce(self, func: Callable[[list[Decimal]], Decimal], *, skip_nan: bool = False) -> Samples:
        for item in self:
            if not isinstance(item, CalculatedSample) or item.is_reduced:
                raise CalculationError(f"expected a list of values in sample.value, but sample is {item!r}")
        for item in self:
            if not item.value:
                continue
            values = [v for v in item.value if not is_nan(v)] if skip_nan else item.value
            if not values:
                continue
            item.value = func(values)
        return self

    # ------------------------------------------------------------------
    # Scalar transforms (merged or plain sequences)
    # ------------------------------------------------------------------

    def multiply_values(self, factor: Any) -> Samples:
        factor = parse_value(factor)
        return self._transform(lambda v: v * factor)

    def divide_values(self, factor: Any) -> Samples:
        factor = parse_value(factor)
        if factor == 0:
            raise CalculationError("Cannot divide sample values by zero")
        return self._transform(lambda v: v / factor)

    def round_values(self, ndigits: int = 0) -> Samples:
        """Round half-up to ``ndigits`` decimal places."""
        exponent = Decimal(1).scaleb(-ndigits)
        return self._transform(lambda v: v.quantize(exponent, rounding=ROUND_HALF_UP))

    def filter_nan(self, new_value: Any = 0) -> Samples:
        """Replace NaN values with ``new_value``."""
        replacement = parse_value(new_value)
        return self._transform(lambda v: replacement, nan=True)

    def filter_negative_values(self) -> Samples:
        """Clamp values ``<= 0`` to zero."""
        return self._transform(lambda v: v if v > 0 else Decimal(0))

    def set_negative_values(self) -> Samples:
        """Flip the sign of every value."""
        return self._transform(lambda v: -v)

    def _transform(self, func: Callable[[Decimal], Decimal], *, nan: bool = False) -> Samples:
        def apply(value: Any) -> Any:
            if is_nan(value) != nan:
                return value
            return func(value)

        for index, item in enumerate(self):
            if isinstance(item, BaseException):
                continue
            if isinstance(item, CalculatedSample):
                if item.is_reduced:
                    item.value = apply(item.value)
                else:
                    item.value = [apply(v) for v in item.value]
            else:
                self[index] = Sample(item.ts_msec, apply(item.value))
        return self

    def _samples(self) -> list[SampleLike]:
        return [item for item in self if not isinstance(item, BaseException)]

    def __repr__(self) -> str:
        return f"Samples({list.__repr__(self)})"

"""Parsed TS.INFO replies and compaction rules."""

from __future__ import annotations

import re
from dataclasses import dataclass, field, fields
from typing import TYPE_CHECKING, Any

from .aggregation import Aggregation

if TYPE_CHECKING:
    from .timeseries import TimeSeries

__all__ = ["Info", "Rule"]

_CAMEL = re.compile(r"(.)([A-Z])")


def _text(value: Any) -> Any:
    return value.decode() if isinstance(value, bytes) else value


@dataclass(frozen=True)
class Rule:
    """A compaction rule from a source series to a destination series."""

    source: TimeSeries
    destination_key: str
    aggregation: Aggregation

    @classmethod
    def parse(cls, source: TimeSeries, data: list[Any]) -> Rule:
        destination_key, duration, aggregation_type = (_text(v) for v in data[:3])
        return cls(source, destination_key, Aggregation(aggregation_type, int(duration)))

    @property
    def source_key(self) -> str:
        return self.source.key

    def delete(self) -> Any:
        return self.source.delete_rule(self.destination_key)


@dataclass
class Info:
    """Wraps the result of TS.INFO with attribute access.

    Unknown properties in the reply are skipped; camelCase keys are
    converted to snake_case.
    """

    series: TimeSeries
    total_samples: int | None = None
    memory_usage: int | None = None
    first_timestamp: int | None = None
    last_timestamp: int | None = None
    retention_time: int | None = None
    chunk_count: int | None = None
    chunk_size: int | None = None
    chunk_type: str | None = None
    duplicate_policy: str | None = None
    labels: dict[str, Any] = field(default_factory=dict)
    source_key: str | None = None
    rules: list[Rule] = field(default_factory=list)

    @classmethod
    def parse(cls, series: TimeSeries, data: list[Any]) -> Info:
        known = {f.name for f in fields(cls)} - {"series"}
        values: dict[str, Any] = {}
        for raw_key, raw_value in zip(data[::2], data[1::2]):
            key = _CAMEL.sub(r"\1_\2", _text(raw_key)).lower()
            if key not in known:
                continue
            values[key] = _text(raw_value)

        values["labels"] = {
            _text(label): _coerce_label(_text(value)) for label, value in values.get("labels") or []
        }
        values["rules"] = [Rule.parse(series, rule) for rule in values.get("rules") or []]
        return cls(series=series, **values)

    @property
    def count(self) -> int | None:
        return self.total_samples

    @property
    def source(self) -> TimeSeries | None:
        """The source series, if this series is the destination of a compaction rule."""
        if not self.source_key:
            return None
        return type(self.series)(self.source_key, self.series.context)


def _coerce_label(value: Any) -> Any:
    if isinstance(value, str) and value.lstrip("-").isdigit():
        return int(value)
    return value

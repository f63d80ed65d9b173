"""Label filters for TS.QUERYINDEX, TS.MGET and TS.MRANGE.

Filters can be written as a string (``"sensor=temp region!=eu"``) or as a
dict (``{"sensor": "temp", "region": {"not": "eu"}}``). Each is parsed into
one of six explicit filter kinds.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Union

from ..core.errors import FilterError

__all__ = [
    "Absent",
    "AnyValue",
    "Equal",
    "Filters",
    "NoValues",
    "NotEqual",
    "Present",
]


@dataclass(frozen=True)
class Equal:
    """``label=value``"""

    label: str
    value: str

    def to_dict(self) -> dict[str, Any]:
        return {self.label: self.value}

    def __str__(self) -> str:
        return f"{self.label}={self.value}"


@dataclass(frozen=True)
class NotEqual:
    """``label!=value``"""

    label: str
    value: str

    def to_dict(self) -> dict[str, Any]:
        return {self.label: {"not": self.value}}

    def __str__(self) -> str:
        return f"{self.label}!={self.value}"


@dataclass(frozen=True)
class Absent:
    """``label=`` (series without the label)"""

    label: str

    def to_dict(self) -> dict[str, Any]:
        return {self.label: False}

    def __str__(self) -> str:
        return f"{self.label}="


@dataclass(frozen=True)
class Present:
    """``label!=`` (series with any value for the label)"""

    label: str

    def to_dict(self) -> dict[str, Any]:
        return {self.label: True}

    def __str__(self) -> str:
        return f"{self.label}!="


@dataclass(frozen=True)
class AnyValue:
    """``label=(a,b)``"""

    label: str
    values: tuple[str, ...]

    def to_dict(self) -> dict[str, Any]:
        return {self.label: list(self.values)}

    def __str__(self) -> str:
        return f"{self.label}=({','.join(self.values)})"


@dataclass(frozen=True)
class NoValues:
    """``label!=(a,b)``"""

    label: str
    values: tuple[str, ...]

    def to_dict(self) -> dict[str, Any]:
        return {self.label: {"not": list(self.values)}}

    def __str__(self) -> str:
        return f"{self.label}!=({','.join(self.values)})"


Filter = Union[Equal, NotEqual, Absent, Present, AnyValue, NoValues]

# Order matters: the list forms must be tried before the scalar forms
_PATTERNS: list[tuple[re.Pattern[str], type]] = [
    (re.compile(r"^(?P<label>[^!=]+)!=\((?P<values>.+)\)$"), NoValues),
    (re.compile(r"^(?P<label>[^!=]+)=\((?P<values>.+)\)$"), AnyValue),
    (re.compile(r"^(?P<label>[^!=]+)!=$"), Present),
    (re.compile(r"^(?P<label>[^!=]+)=$"), Absent),
    (re.compile(r"^(?P<label>[^!=]+)!=(?P<value>[^(]+)$"), NotEqual),
    (re.compile(r"^(?P<label>[^!=]+)=(?P<value>[^(]+)$"), Equal),
]


class Filters:
    """A parsed set of label filters.

    Raises
    ------
    FilterError
        If a filter expression cannot be parsed

    Example
    -------
    >>> Filters("foo=bar baz!=(1,2)").to_list()
    ['foo=bar', 'baz!=(1,2)']
    """

    def __init__(self, filters: str | dict[str, Any] | None = None) -> None:
        if isinstance(filters, str):
            self.filters: list[Filter] = self._parse_string(filters)
        elif isinstance(filters, dict):
            self.filters = self._parse_dict(filters)
        else:
            self.filters = []

    def validate(self) -> Filters:
        """Ensure at least one equality filter is present (required by the server)."""
        if not self.is_valid():
            raise FilterError("Filtering requires at least one equality comparison")
        return self

    def is_valid(self) -> bool:
        return any(isinstance(f, Equal) for f in self.filters)

    def of_kind(self, kind: type) -> list[Filter]:
        return [f for f in self.filters if isinstance(f, kind)]

    def to_list(self) -> list[str]:
        return [str(f) for f in self.filters]

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {}
        for f in self.filters:
            result.update(f.to_dict())
        return result

    def __str__(self) -> str:
        return " ".join(self.to_list())

    @staticmethod
    def _parse_string(filter_string: str) -> list[Filter]:
        parsed: list[Filter] = []
        for expr in filter_string.split():
            for pattern, kind in _PATTERNS:
                match = pattern.match(expr)
                if not match:
                    continue
                groups = match.groupdict()
                if "values" in groups:
                    values = tuple(v.strip() for v in groups["values"].split(","))
                    parsed.append(kind(groups["label"], values))
                elif "value" in groups:
                    parsed.append(kind(groups["label"], groups["value"]))
                else:
                    parsed.append(kind(groups["label"]))
                break
            else:
                raise FilterError(f"Unable to parse '{expr}'")
        return parsed

    @staticmethod
    def _parse_dict(filter_dict: dict[str, Any]) -> list[Filter]:
        parsed: list[Filter] = []
        for label, value in filter_dict.items():
            label = str(label)
            if value is True:
                parsed.append(Present(label))
            elif value is False:
                parsed.append(Absent(label))
            elif isinstance(value, (list, tuple)):
                parsed.append(AnyValue(label, tuple(str(v) for v in value)))
            elif isinstance(value, dict):
                if list(value.keys()) != ["not"]:
                    raise FilterError(f"Invalid filter dict value {value}")
                negated = value["not"]
                if isinstance(negated, (list, tuple)):
                    parsed.append(NoValues(label, tuple(str(v) for v in negated)))
                else:
                    parsed.append(NotEqual(label, str(negated)))
            else:
                parsed.append(Equal(label, str(value)))
        return parsed

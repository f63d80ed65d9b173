"""Time and timezone utilities for tsrange.

RedisTimeSeries stores timestamps as integer milliseconds since the epoch.
These helpers convert between that representation and timezone-aware
``datetime`` objects:
- UTC discipline: naive datetimes are interpreted in an explicit zone
- ISO-8601 parsing and formatting
- DST detection for calendar days
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Any, Union
from zoneinfo import ZoneInfo

__all__ = [
    "OPEN_END",
    "OPEN_START",
    "TimeLike",
    "format_utc_iso8601",
    "from_msec",
    "get_current_msec",
    "get_current_utc",
    "is_dst_transition_day",
    "parse_datetime",
    "parse_utc_iso8601",
    "to_msec",
]

# Open range markers understood by TS.RANGE
OPEN_START = "-"
OPEN_END = "+"

TimeLike = Union[int, datetime, str]


def get_current_utc() -> datetime:
    """Get current time in UTC.

    Returns
    -------
    datetime
        Current time in UTC with timezone info
    """
    return datetime.now(timezone.utc)


def get_current_msec() -> int:
    """Get current time as epoch milliseconds."""
    return to_msec(get_current_utc())


def to_msec(value: TimeLike, tz: ZoneInfo | str | None = None) -> int:
    """Convert a time value to epoch milliseconds.

    Parameters
    ----------
    value
        Integer milliseconds (returned unchanged), a datetime, or an
        ISO-8601 string
    tz
        Zone used for naive datetimes and naive strings (default: UTC)

    Returns
    -------
    int
        Milliseconds since the epoch

    Raises
    ------
    ValueError
        If the value cannot be interpreted as a point in time

    Example
    -------
    >>> to_msec(datetime(2024, 1, 1, tzinfo=timezone.utc))
    1704067200000
    """
    if isinstance(value, bool):
        raise ValueError(f"Cannot convert {value!r} to milliseconds")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        value = parse_datetime(value, tz)
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = _localize(value, tz)
        delta = value - datetime(1970, 1, 1, tzinfo=timezone.utc)
        return (delta.days * 86_400 + delta.seconds) * 1000 + delta.microseconds // 1000
    raise ValueError(f"Cannot convert {value!r} to milliseconds")


def from_msec(ts_msec: int, tz: ZoneInfo | str | None = None) -> datetime:
    """Convert epoch milliseconds to an aware datetime.

    Parameters
    ----------
    ts_msec
        Milliseconds since the epoch
    tz
        Target timezone (default: UTC)

    Returns
    -------
    datetime
        Aware datetime in ``tz``
    """
    dt = datetime(1970, 1, 1, tzinfo=timezone.utc) + timedelta(milliseconds=ts_msec)
    if tz is None:
        return dt
    if isinstance(tz, str):
        tz = ZoneInfo(tz)
    return dt.astimezone(tz)


def parse_datetime(dt_str: str, tz: ZoneInfo | str | None = None) -> datetime:
    """Parse an ISO-8601 date or datetime string.

    A bare date (``2024-03-31``) means local midnight. Strings without an
    offset are interpreted in ``tz``.

    Parameters
    ----------
    dt_str
        Datetime string
    tz
        Timezone for naive input (default: UTC)

    Returns
    -------
    datetime
        Timezone-aware datetime

    Raises
    ------
    ValueError
        If parsing fails
    """
    try:
        dt = datetime.fromisoformat(dt_str.strip().replace("Z", "+00:00"))
    except ValueError as exc:
        raise ValueError(f"Cannot parse datetime: {dt_str}") from exc

    if dt.tzinfo is None:
        dt = _localize(dt, tz)
    return dt


def format_utc_iso8601(dt: datetime) -> str:
    """Format datetime as ISO-8601 UTC string.

    Example
    -------
    >>> format_utc_iso8601(datetime(2025, 10, 8, 12, 30, tzinfo=timezone.utc))
    '2025-10-08T12:30:00+00:00'
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    else:
        dt = dt.astimezone(timezone.utc)

    return dt.isoformat()


def parse_utc_iso8601(iso_string: str) -> datetime:
    """Parse ISO-8601 string to UTC datetime.

    Raises
    ------
    ValueError
        If string is not valid ISO-8601
    """
    return parse_datetime(iso_string).astimezone(timezone.utc)


def is_dst_transition_day(date_obj: Any, tz: ZoneInfo | str) -> bool:
    """Check if a date includes a DST transition.

    Parameters
    ----------
    date_obj
        Date to check (datetime.date or datetime)
    tz
        Timezone to check

    Returns
    -------
    bool
        True if this date includes a DST transition

    Example
    -------
    >>> is_dst_transition_day(date(2024, 10, 27), "Europe/Brussels")  # DST ends
    True
    >>> is_dst_transition_day(date(2024, 10, 8), "Europe/Brussels")
    False
    """
    if isinstance(tz, str):
        tz = ZoneInfo(tz)

    if isinstance(date_obj, datetime):
        date_obj = date_obj.date()
    elif not isinstance(date_obj, date):
        raise TypeError(f"Expected date or datetime, got {type(date_obj)}")

    start_of_day = datetime.combine(date_obj, datetime.min.time(), tzinfo=tz)
    end_of_day = start_of_day + timedelta(hours=23)

    return start_of_day.dst() != end_of_day.dst()


def _localize(dt: datetime, tz: ZoneInfo | str | None) -> datetime:
    if tz is None:
        return dt.replace(tzinfo=timezone.utc)
    if isinstance(tz, str):
        tz = ZoneInfo(tz)
    return dt.replace(tzinfo=tz)

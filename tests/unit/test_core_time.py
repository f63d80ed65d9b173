"""Tests for epoch-millisecond conversion and datetime parsing."""

from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

import pytest

from tsrange.core.time import (
    format_utc_iso8601,
    from_msec,
    get_current_msec,
    get_current_utc,
    is_dst_transition_day,
    parse_datetime,
    parse_utc_iso8601,
    to_msec,
)

JAN_1 = 1_704_067_200_000


def test_to_msec_inputs():
    assert to_msec(JAN_1) == JAN_1
    assert to_msec(datetime(2024, 1, 1, tzinfo=timezone.utc)) == JAN_1
    assert to_msec(datetime(2024, 1, 1)) == JAN_1
    assert to_msec("2024-01-01T00:00:00Z") == JAN_1
    assert to_msec("2024-01-01") == JAN_1


def test_to_msec_keeps_milliseconds():
    assert to_msec(datetime(2024, 1, 1, 0, 0, 0, 999_999, tzinfo=timezone.utc)) == JAN_1 + 999


def test_to_msec_naive_in_zone():
    assert to_msec(datetime(2024, 1, 1), "America/New_York") == JAN_1 + 5 * 3_600_000
    assert to_msec("2024-07-01T00:00", ZoneInfo("Europe/Brussels")) == to_msec("2024-06-30T22:00:00Z")


@pytest.mark.parametrize("value", [True, 1.5, None, "yesterday"])
def test_to_msec_rejects(value):
    with pytest.raises(ValueError):
        to_msec(value)


def test_from_msec():
    assert from_msec(JAN_1) == datetime(2024, 1, 1, tzinfo=timezone.utc)

    local = from_msec(JAN_1, "Asia/Tokyo")
    assert (local.hour, local.utcoffset().total_seconds()) == (9, 9 * 3600)


def test_current_time_helpers():
    now = get_current_utc()

    assert now.tzinfo is not None
    assert abs(get_current_msec() - to_msec(now)) < 60_000


def test_parse_datetime():
    assert parse_datetime("2025-10-08T12:30:00+02:00") == datetime(2025, 10, 8, 10, 30, tzinfo=timezone.utc)
    assert parse_datetime("2025-10-08 12:30").tzinfo is timezone.utc

    with pytest.raises(ValueError, match="Cannot parse datetime"):
        parse_datetime("08/10/2025")


def test_iso8601_round_trip():
    dt = datetime(2025, 10, 8, 12, 30, tzinfo=ZoneInfo("Europe/Brussels"))

    text = format_utc_iso8601(dt)

    assert text == "2025-10-08T10:30:00+00:00"
    assert parse_utc_iso8601(text) == dt


@pytest.mark.parametrize(
    "day, tz, expected",
    [
        (date(2025, 3, 9), "America/New_York", True),
        (date(2025, 11, 2), "America/New_York", True),
        (datetime(2024, 10, 27, 15), "Europe/Brussels", True),
        (date(2024, 10, 8), "Europe/Brussels", False),
        (date(2024, 3, 31), "UTC", False),
    ],
)
def test_is_dst_transition_day(day, tz, expected):
    assert is_dst_transition_day(day, tz) is expected


def test_is_dst_transition_day_type_check():
    with pytest.raises(TypeError):
        is_dst_transition_day("2024-10-27", "UTC")

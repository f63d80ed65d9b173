"""Tests for mapping pipeline replies back onto buckets."""

from dataclasses import replace
from decimal import Decimal

from redis.exceptions import ResponseError

from tsrange.client.aggregation import Aggregation
from tsrange.core.errors import MalformedReplyError
from tsrange.rollups.planner import RangeRequest, plan
from tsrange.rollups.reconciler import reconcile
from tsrange.rollups.samples import Sample, is_nan

DAY = 86_400_000
JAN_1 = 1_704_067_200_000
MONTH_STARTS = [JAN_1, JAN_1 + 31 * DAY, JAN_1 + 60 * DAY, JAN_1 + 91 * DAY]  # Jan..Apr 2024


def monthly_plan(**changes):
    request = RangeRequest(
        "energy", JAN_1, JAN_1 + 121 * DAY, aggregation=Aggregation("avg", "month"), include_empty=True
    )
    return plan(replace(request, **changes))


def test_all_empty_buckets_become_nan_placeholders():
    """N buckets with empty replies -> N NaN samples at the bucket starts."""
    query_plan = monthly_plan()

    samples = reconcile(query_plan, [[] for _ in query_plan.subqueries])

    assert len(samples) == 4
    assert [s.ts_msec for s in samples] == MONTH_STARTS
    assert all(is_nan(s.value) for s in samples)


def test_rows_kept_in_bucket_order():
    query_plan = monthly_plan()
    replies = [[[JAN_1, b"1.5"]], [], [[MONTH_STARTS[2], b"3"]], [[MONTH_STARTS[3], b"4"]]]

    samples = reconcile(query_plan, replies)

    assert samples[0] == Sample(JAN_1, Decimal("1.5"))
    assert is_nan(samples[1].value)
    assert samples.values[2:] == [Decimal(3), Decimal(4)]
    assert samples.metadata == {"key": "energy"}


def test_no_placeholders_without_include_empty():
    query_plan = monthly_plan(include_empty=False)

    assert reconcile(query_plan, [[] for _ in query_plan.subqueries]) == []


def test_no_placeholders_for_fixed_aggregation():
    query_plan = plan(RangeRequest("energy", 0, 100, aggregation=Aggregation("avg", 10)))

    assert reconcile(query_plan, [[]]) == []


def test_remote_errors_pass_through_as_markers(log_records):
    query_plan = monthly_plan()
    error = ResponseError("TSDB: the key does not exist")
    replies = [error, [[MONTH_STARTS[1], b"2"]], [], []]

    samples = reconcile(query_plan, replies)

    assert samples[0] is error
    assert samples.has_errors
    # A bucket answered with an error gets no placeholder
    assert samples[1] == Sample(MONTH_STARTS[1], Decimal(2))
    assert any("does not exist" in r["message"] for r in log_records)


def test_malformed_rows_become_markers():
    query_plan = monthly_plan(include_empty=False)
    replies = [[[JAN_1, b"1"], [JAN_1 + 1]], [], [], []]

    samples = reconcile(query_plan, replies)

    assert samples[0] == Sample(JAN_1, Decimal(1))
    assert isinstance(samples[1], MalformedReplyError)
    assert samples[1].row == [JAN_1 + 1]


def test_several_calls_per_bucket_concatenate():
    query_plan = monthly_plan(filter_by_ts=(JAN_1 + 1, JAN_1 + 2, JAN_1 + 3))
    query_plan = replace(query_plan, subqueries=query_plan.subqueries * 2)

    samples = reconcile(query_plan, [[[JAN_1 + 1, b"1"]], [[JAN_1 + 2, b"2"]]])

    assert [s.ts_msec for s in samples[:2]] == [JAN_1 + 1, JAN_1 + 2]
    # February..April had no calls at all
    assert [s.ts_msec for s in samples[2:]] == MONTH_STARTS[1:]


def test_reverse_applied_once_after_reconciling():
    query_plan = monthly_plan(reverse=True, include_empty=False)
    replies = [[[JAN_1, b"1"]], [[MONTH_STARTS[1], b"2"]], [], [[MONTH_STARTS[3], b"4"]]]

    samples = reconcile(query_plan, replies)

    assert [s.ts_msec for s in samples] == [MONTH_STARTS[3], MONTH_STARTS[1], JAN_1]

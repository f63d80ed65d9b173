"""Tests for aggregation, duplicate policy and label filter parsing."""

from datetime import timedelta

import pytest

from tsrange.client.aggregation import Aggregation, CalendarUnit
from tsrange.client.duplicate_policy import DuplicatePolicy
from tsrange.client.filters import Absent, AnyValue, Equal, Filters, NoValues, NotEqual, Present
from tsrange.core.errors import AggregationError, FilterError, TimeSeriesError, UnknownPolicyError


class TestAggregation:
    def test_fixed_duration(self):
        agg = Aggregation("AVG", 60_000)

        assert agg.type == "avg"
        assert agg.to_list() == ["AGGREGATION", "avg", 60_000]
        assert str(agg) == "AGGREGATION avg 60000"
        assert not agg.is_calendar

    @pytest.mark.parametrize("duration", [timedelta(minutes=1), "60000", 60_000])
    def test_duration_forms(self, duration):
        assert Aggregation("sum", duration).duration == 60_000

    @pytest.mark.parametrize("duration, unit", [("month", CalendarUnit.MONTH), ("Day", CalendarUnit.DAY)])
    def test_calendar_units(self, duration, unit):
        agg = Aggregation("sum", duration)

        assert agg.is_calendar
        assert agg.calendar_unit is unit
        assert agg.with_duration(1000) == Aggregation("sum", 1000)

    def test_calendar_has_no_wire_form(self):
        with pytest.raises(AggregationError, match="must be resolved"):
            Aggregation("sum", "month").to_list()

    @pytest.mark.parametrize("agg_type, duration", [("median", 10), ("avg", 0), ("avg", -5), ("avg", "week"), ("avg", 1.5)])
    def test_invalid(self, agg_type, duration):
        with pytest.raises(AggregationError):
            Aggregation(agg_type, duration)

    def test_parse(self):
        assert Aggregation.parse(None) is None
        assert Aggregation.parse(("max", 5)) == Aggregation("max", 5)
        agg = Aggregation("min", 5)
        assert Aggregation.parse(agg) is agg
        with pytest.raises(AggregationError):
            Aggregation.parse("max")

    def test_equality_with_pairs(self):
        assert Aggregation("avg", 10) == ("avg", 10)
        assert Aggregation("avg", 10) != ("avg", 20)
        assert hash(Aggregation("avg", 10)) == hash(Aggregation("AVG", "10"))


class TestDuplicatePolicy:
    @pytest.mark.parametrize("policy", ["block", "FIRST", "last", "min", "max", "sum"])
    def test_valid(self, policy):
        assert DuplicatePolicy(policy) == policy.lower()

    def test_to_list(self):
        assert DuplicatePolicy("sum").to_list() == ["DUPLICATE_POLICY", "sum"]
        assert DuplicatePolicy("sum").to_list("ON_DUPLICATE") == ["ON_DUPLICATE", "sum"]

    def test_unknown(self):
        with pytest.raises(UnknownPolicyError):
            DuplicatePolicy("average")
        assert DuplicatePolicy("max") != "average"


class TestFilters:
    def test_parse_string(self):
        filters = Filters("sensor=temp region!=eu owner= room!= floor=(1,2) kind!=(a,b)")

        assert filters.filters == [
            Equal("sensor", "temp"),
            NotEqual("region", "eu"),
            Absent("owner"),
            Present("room"),
            AnyValue("floor", ("1", "2")),
            NoValues("kind", ("a", "b")),
        ]
        assert filters.to_list() == ["sensor=temp", "region!=eu", "owner=", "room!=", "floor=(1,2)", "kind!=(a,b)"]

    def test_parse_dict_round_trips_to_dict(self):
        source = {"sensor": "temp", "region": {"not": "eu"}, "owner": False, "room": True, "floor": ["1", "2"]}

        filters = Filters(source)

        assert filters.to_dict() == source
        assert str(filters) == "sensor=temp region!=eu owner= room!= floor=(1,2)"

    def test_validate_requires_equality(self):
        assert Filters("sensor=temp").validate().is_valid()
        with pytest.raises(FilterError, match="at least one equality"):
            Filters("region!=eu").validate()

    def test_unparseable(self):
        with pytest.raises(FilterError, match="Unable to parse"):
            Filters("justalabel")
        with pytest.raises(FilterError):
            Filters({"region": {"maybe": "eu"}})

    def test_of_kind(self):
        assert Filters("a=1 b=2 c!=3").of_kind(Equal) == [Equal("a", "1"), Equal("b", "2")]


def test_errors_share_base_class():
    for error in (AggregationError, FilterError, UnknownPolicyError):
        assert issubclass(error, TimeSeriesError)

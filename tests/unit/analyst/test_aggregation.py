"""Tests for the aggregation engine."""

import math

import pytest

from analyst.aggregation import (
    COUNT_FIELD,
    PASS_THROUGH_INSUFFICIENT_COLUMNS,
    PASS_THROUGH_NO_AGGREGATION,
    aggregate,
    aggregate_for_plan,
    coerce_number,
    parse_number,
)
from analyst.models import Aggregated, AggregationKind, PassThrough, QueryPlan


def _plan(columns, aggregation):
    return QueryPlan(neededColumns=columns, aggregation=aggregation, wantsVisualization=True)


class TestParseNumber:
    """Tests for lenient numeric parsing."""

    @pytest.mark.parametrize(
        "value,expected",
        [(5, 5.0), (2.5, 2.5), ("10", 10.0), ("$1,234.50", 1234.5), (" 7 ", 7.0)],
    )
    def test_parses(self, value, expected):
        assert parse_number(value) == expected

    @pytest.mark.parametrize("value", [None, True, "abc", "", float("inf"), float("nan"), [1]])
    def test_rejects(self, value):
        assert parse_number(value) is None

    def test_coerce_number_defaults_to_zero(self):
        assert coerce_number("n/a") == 0.0
        assert coerce_number("3") == 3.0


class TestAggregate:
    """Tests for aggregate()."""

    def test_groups_keep_first_seen_order(self):
        rows = [{"k": key, "v": 1} for key in ["B", "A", "B", "C", "A"]]

        result = aggregate(rows, "k", "v", AggregationKind.SUM)

        assert [row["k"] for row in result] == ["B", "A", "C"]
        assert [row["v"] for row in result] == [2.0, 2.0, 1.0]

    def test_sum_coerces_strings(self):
        rows = [
            {"region": "North", "sales": "$1,000"},
            {"region": "North", "sales": "250.5"},
            {"region": "South", "sales": "n/a"},
        ]

        result = aggregate(rows, "region", "sales", AggregationKind.SUM)

        assert result == [
            {"region": "North", "sales": 1250.5},
            {"region": "South", "sales": 0.0},
        ]

    def test_groupby_sums(self):
        rows = [{"k": "a", "v": 2}, {"k": "a", "v": 3}]
        assert aggregate(rows, "k", "v", AggregationKind.GROUPBY) == [{"k": "a", "v": 5.0}]

    def test_average_counts_rows_with_missing_values(self):
        rows = [
            {"k": "a", "v": 10},
            {"k": "a", "v": None},
            {"k": "b", "v": 4},
            {"k": "b", "v": "6"},
        ]

        result = aggregate(rows, "k", "v", AggregationKind.AVERAGE)

        assert result == [{"k": "a", "v": 5.0}, {"k": "b", "v": 5.0}]

    def test_average_over_parseable_rows_only(self, monkeypatch):
        monkeypatch.setattr("analyst.aggregation.AVERAGE_COUNTS_NULL_ROWS", False)
        rows = [{"k": "a", "v": 10}, {"k": "a", "v": None}, {"k": "b", "v": None}]

        result = aggregate(rows, "k", "v", AggregationKind.AVERAGE)

        assert result == [{"k": "a", "v": 10.0}, {"k": "b", "v": 0.0}]

    def test_count_ignores_value_column(self):
        rows = [{"status": s} for s in ["open", "closed", "open"]]

        result = aggregate(rows, "status", kind=AggregationKind.COUNT)

        assert result == [
            {"status": "open", COUNT_FIELD: 2},
            {"status": "closed", COUNT_FIELD: 1},
        ]

    def test_missing_group_key_forms_none_group(self):
        rows = [{"k": "a", "v": 1}, {"v": 2}]
        result = aggregate(rows, "k", "v", AggregationKind.SUM)
        assert result == [{"k": "a", "v": 1.0}, {"k": None, "v": 2.0}]

    def test_none_returns_rows(self):
        rows = [{"k": "a"}, {"k": "b"}]
        assert aggregate(rows, "k", kind=AggregationKind.NONE) == rows

    def test_accepts_string_kind(self):
        rows = [{"k": "a", "v": 1}]
        assert aggregate(rows, "k", "v", "sum") == [{"k": "a", "v": 1.0}]

    def test_sum_requires_value_column(self):
        with pytest.raises(ValueError):
            aggregate([{"k": "a"}], "k", None, AggregationKind.SUM)

    def test_empty_rows(self):
        assert aggregate([], "k", "v", AggregationKind.SUM) == []

    def test_results_are_finite(self):
        rows = [{"k": "a", "v": float("nan")}, {"k": "a", "v": "inf"}]
        result = aggregate(rows, "k", "v", AggregationKind.AVERAGE)
        assert all(math.isfinite(row["v"]) for row in result)


class TestAggregateForPlan:
    """Tests for plan-driven aggregation."""

    def test_no_aggregation_passes_through(self, sales_rows):
        result = aggregate_for_plan(sales_rows, _plan(["Region"], "none"))

        assert isinstance(result, PassThrough)
        assert result.reason == PASS_THROUGH_NO_AGGREGATION
        assert result.aggregated is False
        assert result.rows == sales_rows

    def test_too_few_columns_passes_through(self, sales_rows):
        result = aggregate_for_plan(sales_rows, _plan(["Region"], "sum"))

        assert isinstance(result, PassThrough)
        assert result.reason == PASS_THROUGH_INSUFFICIENT_COLUMNS
        assert len(result.rows) == len(sales_rows)

    def test_count_needs_one_column(self, sales_rows):
        result = aggregate_for_plan(sales_rows, _plan(["Region"], "count"))

        assert isinstance(result, Aggregated)
        assert result.kind == AggregationKind.COUNT
        assert result.rows == [
            {"Region": "North", "count": 2},
            {"Region": "South", "count": 2},
            {"Region": "East", "count": 2},
        ]

    def test_sum_by_region(self, sales_rows):
        result = aggregate_for_plan(sales_rows, _plan(["Region", "Sales"], "sum"))

        assert result.aggregated is True
        assert result.rows == [
            {"Region": "North", "Sales": 150.0},
            {"Region": "South", "Sales": 1225.5},
            {"Region": "East", "Sales": 85.0},
        ]

"""Group-and-reduce over row dictionaries.

Groups keep the order in which their key was first seen. Values are coerced
leniently: ``$`` and ``,`` are stripped from strings and anything that does
not parse counts as 0.
"""

import logging
import math
import numbers
from typing import Any, Dict, List, Mapping, Optional, Sequence

from analyst.models import Aggregated, AggregationKind, AggregationResult, PassThrough, QueryPlan

logger = logging.getLogger(__name__)

# Average divides by every row in the group, including rows whose value is
# missing or unparseable (those contribute 0 to the sum). Set to False to
# divide by the number of rows with a parseable value instead.
AVERAGE_COUNTS_NULL_ROWS = True

COUNT_FIELD = "count"

PASS_THROUGH_NO_AGGREGATION = "no_aggregation"
PASS_THROUGH_INSUFFICIENT_COLUMNS = "insufficient_columns"

_REQUIRED_COLUMNS = {
    AggregationKind.SUM: 2,
    AggregationKind.GROUPBY: 2,
    AggregationKind.AVERAGE: 2,
    AggregationKind.COUNT: 1,
}


def parse_number(value: Any) -> Optional[float]:
    """Parse a cell as a float, or ``None`` when it is not numeric."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, numbers.Real):
        parsed = float(value)
    elif isinstance(value, str):
        cleaned = value.replace("$", "").replace(",", "").strip()
        try:
            parsed = float(cleaned)
        except ValueError:
            return None
    else:
        return None
    return parsed if math.isfinite(parsed) else None


def coerce_number(value: Any) -> float:
    parsed = parse_number(value)
    return 0.0 if parsed is None else parsed


def _group_key(row: Any, column: str) -> Any:
    return row.get(column) if isinstance(row, Mapping) else None


def _sum(rows: Sequence[Any], group_by_column: str, value_column: str) -> List[Dict[str, Any]]:
    totals: Dict[Any, float] = {}
    for row in rows:
        key = _group_key(row, group_by_column)
        totals[key] = totals.get(key, 0.0) + coerce_number(_group_key(row, value_column))
    return [{group_by_column: key, value_column: total} for key, total in totals.items()]


def _average(rows: Sequence[Any], group_by_column: str, value_column: str) -> List[Dict[str, Any]]:
    stats: Dict[Any, List[float]] = {}
    for row in rows:
        key = _group_key(row, group_by_column)
        parsed = parse_number(_group_key(row, value_column))
        entry = stats.setdefault(key, [0.0, 0])
        entry[0] += 0.0 if parsed is None else parsed
        if AVERAGE_COUNTS_NULL_ROWS or parsed is not None:
            entry[1] += 1

    return [
        {group_by_column: key, value_column: (total / seen) if seen else 0.0}
        for key, (total, seen) in stats.items()
    ]


def _count(rows: Sequence[Any], group_by_column: str) -> List[Dict[str, Any]]:
    counts: Dict[Any, int] = {}
    for row in rows:
        key = _group_key(row, group_by_column)
        counts[key] = counts.get(key, 0) + 1
    return [{group_by_column: key, COUNT_FIELD: count} for key, count in counts.items()]


def aggregate(
    rows: Sequence[Dict[str, Any]],
    group_by_column: str,
    value_column: Optional[str] = None,
    kind: AggregationKind = AggregationKind.GROUPBY,
) -> List[Dict[str, Any]]:
    """Reduce rows by group key.

    Args:
        rows: Row dictionaries.
        group_by_column: Column whose values form the groups.
        value_column: Numeric column to reduce (unused for count).
        kind: Aggregation kind; ``none`` returns the rows unchanged.

    Returns:
        One row per distinct key, in first-seen order. Count rows carry the
        key and a ``count`` field; other kinds carry the key and the reduced
        value under ``value_column``.
    """
    kind = AggregationKind(kind)
    if kind == AggregationKind.NONE:
        return list(rows)
    if kind == AggregationKind.COUNT:
        return _count(rows, group_by_column)
    if value_column is None:
        raise ValueError(f"Aggregation '{kind.value}' requires a value column.")
    if kind == AggregationKind.AVERAGE:
        return _average(rows, group_by_column, value_column)
    return _sum(rows, group_by_column, value_column)


def aggregate_for_plan(rows: Sequence[Dict[str, Any]], plan: QueryPlan) -> AggregationResult:
    """Apply a plan's aggregation, passing rows through when it cannot.

    The first needed column is the group key and the second the value column.
    A plan naming too few columns for its aggregation kind is not an error:
    the rows come back unaggregated as a PassThrough.
    """
    kind = plan.aggregation
    if kind == AggregationKind.NONE:
        return PassThrough(rows=list(rows), reason=PASS_THROUGH_NO_AGGREGATION)

    columns = plan.needed_columns
    if len(columns) < _REQUIRED_COLUMNS[kind]:
        logger.warning(
            "Skipping aggregation with too few columns",
            extra={"aggregation": kind.value, "needed_columns": list(columns)},
        )
        return PassThrough(rows=list(rows), reason=PASS_THROUGH_INSUFFICIENT_COLUMNS)

    value_column = columns[1] if kind != AggregationKind.COUNT else None
    return Aggregated(rows=aggregate(rows, columns[0], value_column, kind), kind=kind)

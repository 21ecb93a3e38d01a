"""Rule-based chart selection.

The chart kind is a pure function of the plan's aggregation, the inferred
column types and the result size. A chart type suggested by the completion
service is never consulted here, so the chart always matches the shape of
the aggregated rows.

  aggregation            rows     kind
  ---------------------  -------  -----
  groupby/sum/count/avg  any      bar
  none                   > 5      table
  none                   <= 5     bar

A date-typed needed column turns a bar into a line.
"""

from dataclasses import dataclass
from typing import Optional, Tuple

from analyst.aggregation import COUNT_FIELD
from analyst.config import get_table_row_threshold
from analyst.models import AggregationKind, ChartKind, ColumnType, FieldMapping, QueryPlan, Schema

DEFAULT_VALUE_FIELD = "value"


@dataclass(frozen=True)
class VisualizationChoice:
    """Selected chart kind, its field mapping and a short rationale."""

    kind: ChartKind
    mapping: FieldMapping
    reason: str


def _has_date_column(plan: QueryPlan, schema: Schema) -> bool:
    for name in plan.needed_columns:
        column = schema.get(name)
        if column is not None and column.type == ColumnType.DATE:
            return True
    return False


def _category_and_value(plan: QueryPlan, schema: Schema) -> Tuple[Optional[str], str]:
    columns = plan.needed_columns
    if columns:
        category = columns[0]
        value = columns[1] if len(columns) > 1 else DEFAULT_VALUE_FIELD
    else:
        names = schema.column_names()
        category = names[0] if names else None
        numeric = [c.name for c in schema.columns if c.type == ColumnType.NUMBER]
        value = numeric[0] if numeric else DEFAULT_VALUE_FIELD

    if plan.aggregation == AggregationKind.COUNT:
        value = COUNT_FIELD
    return category, value


def select_visualization(
    plan: QueryPlan,
    schema: Schema,
    result_row_count: int,
    table_row_threshold: Optional[int] = None,
) -> Optional[VisualizationChoice]:
    """Pick the chart kind and field mapping for a plan's result.

    Args:
        plan: Validated query plan.
        schema: Schema of the table the plan was made against.
        result_row_count: Number of rows after aggregation.
        table_row_threshold: Overrides the configured table threshold.

    Returns:
        The choice, or None when the plan does not want a visualization.
    """
    if not plan.wants_visualization:
        return None

    threshold = get_table_row_threshold() if table_row_threshold is None else table_row_threshold

    if plan.aggregation == AggregationKind.NONE and result_row_count > threshold:
        return VisualizationChoice(
            kind=ChartKind.TABLE,
            mapping=FieldMapping(),
            reason=f"{result_row_count} unaggregated rows are best read as a table",
        )

    category, value = _category_and_value(plan, schema)

    if _has_date_column(plan, schema):
        return VisualizationChoice(
            kind=ChartKind.LINE,
            mapping=FieldMapping(x_axis=category, y_axis=value),
            reason="a date column shows a trend over time",
        )

    if plan.aggregation == AggregationKind.NONE:
        reason = "a few raw rows compare well as bars"
    else:
        reason = f"{plan.aggregation.value} per group compares categories"
    return VisualizationChoice(
        kind=ChartKind.BAR,
        mapping=FieldMapping(name_field=category, value_field=value),
        reason=reason,
    )

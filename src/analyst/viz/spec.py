"""Chart spec generation.

Shapes result rows into the payload a chart renderer consumes:

  - bar / pie: ``[{"name": str, "value": float}, ...]``
  - line: ``[{"x": str | number, "y": float}, ...]``
  - scatter: ``[{"x": float, "y": float}, ...]``
  - table: rows unchanged

Malformed rows never raise. Values that cannot be read as numbers drop the
row, missing fields fall back to defaults.
"""

import logging
import math
import numbers
from datetime import date, datetime
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from analyst.config import get_chart_date_format
from analyst.models import ChartKind, ChartSpec, FieldMapping
from analyst.schema_inference import is_date_value, parse_date

logger = logging.getLogger(__name__)

NO_DATA_NOTE = "no data available"
ERROR_NOTE = "error generating chart"


def extract_field(obj: Any, path: Optional[str], default: Any = None) -> Any:
    """Read a possibly dotted field path, e.g. ``"user.name"``.

    A key equal to the whole path wins over dotted descent, so column
    names such as ``"Amt."`` or ``"Sales.1"`` resolve directly. A missing
    segment or a ``None`` leaf yields ``default``.
    """
    if obj is None or not path:
        return default

    if isinstance(obj, Mapping) and path in obj:
        value = obj[path]
        return default if value is None else value

    value = obj
    for part in path.split("."):
        if isinstance(value, Mapping) and part in value:
            value = value[part]
        else:
            return default
    return default if value is None else value


def coerce_numeric(value: Any) -> float:
    """Coerce a value to float; NaN when it is not numeric."""
    if isinstance(value, bool):
        return math.nan
    if isinstance(value, numbers.Real):
        return float(value)
    if isinstance(value, str):
        cleaned = value.replace("$", "").replace(",", "").strip()
        try:
            return float(cleaned)
        except ValueError:
            return math.nan
    return math.nan


def format_axis_value(value: Any, date_format: Optional[str] = None) -> Union[str, int, float]:
    """Format an x-axis value: dates via ``date_format``, numbers unchanged."""
    fmt = date_format or get_chart_date_format()
    if isinstance(value, (datetime, date)):
        return value.strftime(fmt)
    if isinstance(value, numbers.Real) and not isinstance(value, bool):
        return value
    if isinstance(value, str):
        if is_date_value(value):
            parsed = parse_date(value.strip())
            if parsed is not None:
                return parsed.strftime(fmt)
        return value
    return str(value)


def _category_rows(
    rows: Sequence[Any], name_field: str, value_field: str, positive_only: bool
) -> List[Dict[str, Any]]:
    shaped = []
    for index, row in enumerate(rows, start=1):
        name = extract_field(row, name_field, f"Item {index}")
        value = coerce_numeric(extract_field(row, value_field, 0))
        if math.isnan(value):
            continue
        if positive_only and value <= 0:
            continue
        shaped.append({"name": str(name), "value": value})
    return shaped


def _bar_spec(rows: Sequence[Any], mapping: FieldMapping) -> ChartSpec:
    name_field = mapping.name_field or mapping.x_axis or "name"
    value_field = mapping.value_field or mapping.y_axis or "value"
    shaped = _category_rows(rows, name_field, value_field, positive_only=False)
    return ChartSpec(
        kind=ChartKind.BAR,
        rows=shaped,
        field_mapping=mapping,
        config={
            "xAxis": name_field,
            "yAxis": value_field,
            "labels": [item["name"] for item in shaped],
        },
    )


def _pie_spec(rows: Sequence[Any], mapping: FieldMapping) -> ChartSpec:
    name_field = mapping.name_field or mapping.x_axis or "name"
    value_field = mapping.value_field or mapping.y_axis or "value"
    shaped = _category_rows(rows, name_field, value_field, positive_only=True)
    return ChartSpec(
        kind=ChartKind.PIE,
        rows=shaped,
        field_mapping=mapping,
        config={"labels": [item["name"] for item in shaped]},
    )


def _line_spec(rows: Sequence[Any], mapping: FieldMapping) -> ChartSpec:
    x_field = mapping.x_axis or mapping.name_field or "x"
    y_field = mapping.y_axis or mapping.value_field or "y"
    date_format = get_chart_date_format()

    shaped = []
    for index, row in enumerate(rows):
        y = coerce_numeric(extract_field(row, y_field, 0))
        if math.isnan(y):
            continue
        x = format_axis_value(extract_field(row, x_field, index), date_format)
        shaped.append({"x": x, "y": y})

    return ChartSpec(
        kind=ChartKind.LINE,
        rows=shaped,
        field_mapping=mapping,
        config={"xAxis": x_field, "yAxis": y_field},
    )


def _scatter_spec(rows: Sequence[Any], mapping: FieldMapping) -> ChartSpec:
    x_field = mapping.x_axis or mapping.name_field or "x"
    y_field = mapping.y_axis or mapping.value_field or "y"

    shaped = []
    for row in rows:
        x = coerce_numeric(extract_field(row, x_field, 0))
        y = coerce_numeric(extract_field(row, y_field, 0))
        if math.isnan(x) or math.isnan(y):
            continue
        shaped.append({"x": x, "y": y})

    return ChartSpec(
        kind=ChartKind.SCATTER,
        rows=shaped,
        field_mapping=mapping,
        config={"xAxis": x_field, "yAxis": y_field},
    )


def _table_spec(rows: Sequence[Any], mapping: FieldMapping) -> ChartSpec:
    return ChartSpec(kind=ChartKind.TABLE, rows=list(rows), field_mapping=mapping)


_BUILDERS = {
    ChartKind.BAR: _bar_spec,
    ChartKind.PIE: _pie_spec,
    ChartKind.LINE: _line_spec,
    ChartKind.SCATTER: _scatter_spec,
    ChartKind.TABLE: _table_spec,
}


def generate_spec(
    kind: Union[ChartKind, str],
    rows: Optional[Sequence[Dict[str, Any]]],
    mapping: Optional[FieldMapping] = None,
) -> ChartSpec:
    """Build a ChartSpec for result rows.

    Args:
        kind: Chart kind (enum or its string value).
        rows: Result rows; ``None`` is treated as empty.
        mapping: Field mapping chosen by the visualization selector.

    Returns:
        The chart spec. Empty input gives an empty spec noted
        "no data available".

    Raises:
        ValueError: If ``kind`` is not a known chart kind.
    """
    kind = ChartKind(kind)
    mapping = mapping or FieldMapping()

    if not rows:
        return ChartSpec(kind=kind, rows=[], field_mapping=mapping, note=NO_DATA_NOTE)

    try:
        return _BUILDERS[kind](rows, mapping)
    except Exception:
        logger.warning(
            "Error generating chart spec",
            extra={"chart_kind": kind.value, "row_count": len(rows)},
            exc_info=True,
        )
        return ChartSpec(kind=kind, rows=[], field_mapping=mapping, note=ERROR_NOTE)

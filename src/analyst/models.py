"""Core data model for the question-to-chart pipeline."""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    StrictStr,
    field_validator,
    model_validator,
)

DEFAULT_PREVIEW_ROWS = 5


class ColumnType(str, Enum):
    """Semantic column types inferred at ingestion."""

    STRING = "string"
    NUMBER = "number"
    DATE = "date"
    BOOLEAN = "boolean"


class AggregationKind(str, Enum):
    """Reduction applied to grouped rows."""

    SUM = "sum"
    COUNT = "count"
    AVERAGE = "average"
    GROUPBY = "groupby"
    NONE = "none"


class ChartKind(str, Enum):
    """Chart kinds understood by the rendering consumer."""

    BAR = "bar"
    PIE = "pie"
    LINE = "line"
    SCATTER = "scatter"
    TABLE = "table"


def json_safe(value: Any) -> Any:
    """Map a cell to a JSON-serialisable value."""
    if isinstance(value, float) and not math.isfinite(value):
        return None
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    return str(value)


@dataclass(frozen=True)
class Column:
    """Single column definition."""

    name: str
    type: ColumnType
    sample_values: Tuple[Any, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "type": self.type.value,
            "sampleValues": [json_safe(v) for v in self.sample_values],
        }


@dataclass(frozen=True)
class Schema:
    """Ordered column definitions plus the table's row count."""

    columns: Tuple[Column, ...]
    row_count: int = 0

    def column_names(self) -> List[str]:
        return [column.name for column in self.columns]

    def get(self, name: str) -> Optional[Column]:
        for column in self.columns:
            if column.name == name:
                return column
        return None

    def has_column(self, name: str) -> bool:
        return self.get(name) is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "columns": [column.to_dict() for column in self.columns],
            "rowCount": self.row_count,
        }


@dataclass(frozen=True)
class Table:
    """An ingested table. Read-only once created."""

    id: str
    schema: Schema
    rows: List[Dict[str, Any]] = field(repr=False)
    file_name: Optional[str] = None

    def preview(self, limit: int = DEFAULT_PREVIEW_ROWS) -> List[Dict[str, Any]]:
        """Return the first ``limit`` rows."""
        return list(self.rows[: max(0, limit)])


class QueryPlan(BaseModel):
    """Structured intent extracted from a natural-language question.

    The legacy completion shape (``dataNeeded.columns`` and
    ``needsVisualization``) is accepted and normalised.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True, frozen=True)

    intent: str = ""
    needed_columns: List[StrictStr] = Field(default_factory=list, alias="neededColumns")
    aggregation: AggregationKind = AggregationKind.NONE
    wants_visualization: StrictBool = Field(..., alias="wantsVisualization")
    visualization_hint: Optional[Any] = Field(None, alias="visualization")

    @model_validator(mode="before")
    @classmethod
    def _normalize_legacy_shape(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        if "neededColumns" not in data and "needed_columns" not in data:
            needed = data.get("dataNeeded")
            if isinstance(needed, dict) and "columns" in needed:
                data["neededColumns"] = needed["columns"]
        if (
            "wantsVisualization" not in data
            and "wants_visualization" not in data
            and "needsVisualization" in data
        ):
            data["wantsVisualization"] = data["needsVisualization"]
        for key in ("aggregation", "intent"):
            if data.get(key) is None:
                data.pop(key, None)
        return data

    @field_validator("aggregation", mode="before")
    @classmethod
    def _lowercase_aggregation(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @field_validator("needed_columns")
    @classmethod
    def _dedupe_columns(cls, value: List[str]) -> List[str]:
        seen = set()
        ordered = []
        for name in value:
            if name not in seen:
                seen.add(name)
                ordered.append(name)
        return ordered

    def to_dict(self) -> Dict[str, Any]:
        return {
            "intent": self.intent,
            "neededColumns": list(self.needed_columns),
            "aggregation": self.aggregation.value,
            "wantsVisualization": self.wants_visualization,
        }


@dataclass(frozen=True)
class FieldMapping:
    """Binding from chart slots to source field names."""

    name_field: Optional[str] = None
    value_field: Optional[str] = None
    x_axis: Optional[str] = None
    y_axis: Optional[str] = None

    def to_dict(self) -> Dict[str, str]:
        payload = {
            "nameField": self.name_field,
            "valueField": self.value_field,
            "xAxis": self.x_axis,
            "yAxis": self.y_axis,
        }
        return {key: value for key, value in payload.items() if value is not None}


@dataclass
class ChartSpec:
    """Renderer-agnostic chart payload."""

    kind: ChartKind
    rows: List[Dict[str, Any]] = field(default_factory=list)
    field_mapping: FieldMapping = field(default_factory=FieldMapping)
    config: Dict[str, Any] = field(default_factory=dict)
    note: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not self.rows

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "kind": self.kind.value,
            "rows": [{k: json_safe(v) for k, v in row.items()} for row in self.rows],
            "fieldMapping": self.field_mapping.to_dict(),
            "config": dict(self.config),
        }
        if self.note is not None:
            payload["note"] = self.note
        return payload


@dataclass(frozen=True)
class Aggregated:
    """Rows reduced by an aggregation kind."""

    rows: List[Dict[str, Any]]
    kind: AggregationKind

    @property
    def aggregated(self) -> bool:
        return True


@dataclass(frozen=True)
class PassThrough:
    """Rows returned unaggregated, with the reason aggregation was skipped."""

    rows: List[Dict[str, Any]]
    reason: str

    @property
    def aggregated(self) -> bool:
        return False


AggregationResult = Union[Aggregated, PassThrough]

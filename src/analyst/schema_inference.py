"""Column type inference for ingested tables.

Each column observed in the first row is sampled over the leading rows
(nulls and blank strings skipped) and classified in a fixed order:

  - Boolean: true/false/yes/no tokens or real bools.
  - Number: real numbers, or strings that parse after removing ``$``, ``,``
    and ``%``. Checked before dates so numeric serials stay numbers.
  - Date: date/datetime values, or date-shaped strings that parse as a
    calendar date. The shape check keeps bare integers from passing as
    epoch timestamps.
  - String: everything else, including columns with no usable samples.

A type wins when at least 80% of the samples match it.
"""

import math
import numbers
import re
from datetime import date, datetime
from typing import Any, Callable, List, Mapping, Optional, Sequence

import pandas as pd

from analyst.config import SCHEMA_SAMPLE_ROWS
from analyst.models import Column, ColumnType, Schema

TYPE_THRESHOLD = 0.8
MAX_SAMPLE_VALUES = 3
BOOLEAN_TOKENS = frozenset({"true", "false", "yes", "no"})

_NUMBER_NOISE_RE = re.compile(r"[$,%\s]")
_DATE_SHAPE_RE = re.compile(r"\d{1,4}[-/.]\d{1,2}[-/.]\d{1,4}")


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, float):
        return math.isnan(value)
    return False


def is_boolean_value(value: Any) -> bool:
    if isinstance(value, bool):
        return True
    return isinstance(value, str) and value.strip().lower() in BOOLEAN_TOKENS


def is_numeric_value(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, numbers.Real):
        return math.isfinite(float(value))
    if not isinstance(value, str):
        return False

    cleaned = _NUMBER_NOISE_RE.sub("", value)
    if not cleaned:
        return False
    try:
        return math.isfinite(float(cleaned))
    except ValueError:
        return False


def parse_date(text: str) -> Optional[datetime]:
    """Parse a date string without assuming a locale; ``None`` when invalid."""
    try:
        parsed = pd.to_datetime(text, errors="coerce")
    except (TypeError, ValueError, OverflowError):
        return None
    if parsed is None or pd.isna(parsed):
        return None
    return parsed.to_pydatetime()


def is_date_value(value: Any) -> bool:
    if isinstance(value, (datetime, date)):
        return True
    if not isinstance(value, str):
        return False
    text = value.strip()
    if not _DATE_SHAPE_RE.search(text):
        return False
    return parse_date(text) is not None


def _share(samples: Sequence[Any], predicate: Callable[[Any], bool]) -> float:
    matches = sum(1 for value in samples if predicate(value))
    return matches / len(samples)


def infer_column_type(samples: Sequence[Any]) -> ColumnType:
    """Classify a column from its non-empty sample values."""
    if not samples:
        return ColumnType.STRING

    if _share(samples, is_boolean_value) >= TYPE_THRESHOLD:
        return ColumnType.BOOLEAN
    if _share(samples, is_numeric_value) >= TYPE_THRESHOLD:
        return ColumnType.NUMBER
    if _share(samples, is_date_value) >= TYPE_THRESHOLD:
        return ColumnType.DATE
    return ColumnType.STRING


def collect_samples(
    rows: Sequence[Mapping[str, Any]], name: str, sample_size: int = SCHEMA_SAMPLE_ROWS
) -> List[Any]:
    """Collect non-empty values of a column from the leading rows."""
    samples = []
    for row in rows[:sample_size]:
        if not isinstance(row, Mapping):
            continue
        value = row.get(name)
        if not _is_missing(value):
            samples.append(value)
    return samples


def infer_schema(rows: Sequence[Mapping[str, Any]]) -> Schema:
    """Infer an ordered Schema from row dictionaries."""
    if not rows or not isinstance(rows[0], Mapping):
        return Schema(columns=(), row_count=len(rows or []))

    columns = []
    for name in rows[0].keys():
        samples = collect_samples(rows, name)
        columns.append(
            Column(
                name=name,
                type=infer_column_type(samples),
                sample_values=tuple(samples[:MAX_SAMPLE_VALUES]),
            )
        )

    return Schema(columns=tuple(columns), row_count=len(rows))

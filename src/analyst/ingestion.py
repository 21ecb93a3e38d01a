"""Turn spreadsheet files and row lists into Tables."""

import io
import logging
import math
import uuid
from typing import IO, Any, Dict, List, Optional, Sequence, Union

import numpy as np
import pandas as pd

from analyst.models import Table
from analyst.schema_inference import infer_schema

logger = logging.getLogger(__name__)

ExcelSource = Union[str, bytes, IO[bytes]]


def build_table(
    rows: Sequence[Dict[str, Any]],
    file_name: Optional[str] = None,
    table_id: Optional[str] = None,
) -> Table:
    """Infer a schema for rows and wrap them in a new Table."""
    rows = [dict(row) for row in rows]
    return Table(
        id=table_id or uuid.uuid4().hex,
        schema=infer_schema(rows),
        rows=rows,
        file_name=file_name,
    )


def _cell(value: Any) -> Any:
    if value is None or value is pd.NaT:
        return None
    if isinstance(value, float) and math.isnan(value):
        return None
    if isinstance(value, pd.Timestamp):
        return value.to_pydatetime()
    if isinstance(value, np.generic):
        return value.item()
    return value


def dataframe_to_rows(df: pd.DataFrame) -> List[Dict[str, Any]]:
    """Convert a DataFrame to row dicts with ``None`` for missing cells."""
    columns = [str(column) for column in df.columns]
    rows = []
    for record in df.itertuples(index=False, name=None):
        rows.append({name: _cell(value) for name, value in zip(columns, record)})
    return rows


def load_excel(source: ExcelSource, file_name: Optional[str] = None) -> Table:
    """Read the first sheet of an Excel workbook into a Table.

    Args:
        source: Path, raw bytes, or a binary file object.
        file_name: Original file name, kept on the Table.

    Raises:
        ValueError: If the workbook has no sheets or no data rows.
    """
    if isinstance(source, bytes):
        source = io.BytesIO(source)

    with pd.ExcelFile(source) as workbook:
        if not workbook.sheet_names:
            raise ValueError("No sheets found in Excel file")
        sheet_name = workbook.sheet_names[0]
        df = workbook.parse(sheet_name)

    df = df.dropna(how="all")
    if df.empty:
        raise ValueError("No data found in Excel file")

    table = build_table(dataframe_to_rows(df), file_name=file_name)
    logger.info(
        "Loaded Excel sheet",
        extra={
            "file_name": file_name,
            "sheet_name": sheet_name,
            "row_count": table.schema.row_count,
            "column_count": len(table.schema.columns),
        },
    )
    return table

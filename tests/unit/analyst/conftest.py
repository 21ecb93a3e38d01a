import pytest

from analyst.ingestion import build_table
from tests._support.sales_fixture import SALES_ROWS


@pytest.fixture
def sales_rows():
    """Fresh copy of the sales rows."""
    return [dict(row) for row in SALES_ROWS]


@pytest.fixture
def sales_table(sales_rows):
    """Sales rows ingested as a Table with a fixed id."""
    return build_table(sales_rows, file_name="sales.xlsx", table_id="sales")

"""In-memory table store.

Passed explicitly to whoever needs it rather than held as a module global.
Tables are written once at ingestion and only read afterwards.
"""

import logging
import threading
from typing import Dict, List, Optional

from analyst.errors import TableNotFoundError
from analyst.models import Table

logger = logging.getLogger(__name__)


class TableStore:
    """Process-lifetime map of table id to Table."""

    def __init__(self) -> None:
        """Create an empty store."""
        self._tables: Dict[str, Table] = {}
        self._lock = threading.Lock()

    def put(self, table: Table) -> str:
        """Store a table and return its id."""
        with self._lock:
            self._tables[table.id] = table
        logger.info(
            "Stored table",
            extra={"table_id": table.id, "row_count": table.schema.row_count},
        )
        return table.id

    def get(self, table_id: str) -> Optional[Table]:
        with self._lock:
            return self._tables.get(table_id)

    def require(self, table_id: str) -> Table:
        """Return a table or raise TableNotFoundError."""
        table = self.get(table_id)
        if table is None:
            raise TableNotFoundError(table_id)
        return table

    def evict(self, table_id: str) -> bool:
        """Remove a table; returns whether it was present."""
        with self._lock:
            return self._tables.pop(table_id, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._tables.clear()

    def ids(self) -> List[str]:
        with self._lock:
            return list(self._tables.keys())

    def __len__(self) -> int:
        with self._lock:
            return len(self._tables)

    def __contains__(self, table_id: object) -> bool:
        with self._lock:
            return table_id in self._tables

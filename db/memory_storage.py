"""
db/memory_storage.py
--------------------
In-process storage backend. Keeps each collection as a list of dicts.
Used by the test suite and handy for prototyping without PostgreSQL.
"""

import threading
from typing import Any, Optional

from db.storage import Criteria, Row
from utils.logger import get_logger

logger = get_logger(__name__)


class MemoryStorage:
    """
    Dict-backed storage with auto-increment identifiers.

    Args:
        identifier_column: Field holding each row's identifier.
        initial: Optional seed data, {collection: [row, ...]}.
    """

    def __init__(
        self,
        identifier_column: str = "id",
        initial: Optional[dict[str, list[Row]]] = None,
    ):
        self.identifier_column = identifier_column
        self._collections: dict[str, list[dict]] = {}
        self._lock = threading.Lock()
        for collection, rows in (initial or {}).items():
            self._collections[collection] = [dict(r) for r in rows]

    # ── READ ──────────────────────────────────────────────

    def fetch_all(self, collection: str) -> list[dict]:
        with self._lock:
            return [dict(r) for r in self._collections.get(collection, [])]

    def fetch_all_by(self, criteria: Criteria, collection: str) -> list[dict]:
        with self._lock:
            return [
                dict(r)
                for r in self._collections.get(collection, [])
                if self._matches(r, criteria)
            ]

    def find(self, criteria: Criteria, collection: str) -> Optional[dict]:
        with self._lock:
            for row in self._collections.get(collection, []):
                if self._matches(row, criteria):
                    return dict(row)
        return None

    # ── WRITE ─────────────────────────────────────────────

    def save(self, data: Row, collection: str) -> Any:
        """
        Insert `data`, or merge it into the row sharing its identifier.

        Returns:
            The identifier of the inserted or updated row.
        """
        key = self.identifier_column
        with self._lock:
            rows = self._collections.setdefault(collection, [])
            identifier = data.get(key)
            if identifier is not None:
                for row in rows:
                    if row.get(key) == identifier:
                        row.update(data)
                        logger.info(f"Updated {collection} #{identifier}")
                        return identifier
            else:
                identifier = self._next_identifier(rows)
            row = dict(data)
            row[key] = identifier
            rows.append(row)
        logger.info(f"Inserted {collection} #{identifier}")
        return identifier

    # ── HELPERS ───────────────────────────────────────────

    def _next_identifier(self, rows: list[dict]) -> int:
        ids = [r.get(self.identifier_column) for r in rows]
        return max((i for i in ids if isinstance(i, int)), default=0) + 1

    @staticmethod
    def _matches(row: Row, criteria: Criteria) -> bool:
        return all(k in row and row[k] == v for k, v in criteria.items())

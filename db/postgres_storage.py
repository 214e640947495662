"""
db/postgres_storage.py
----------------------
PostgreSQL storage backend.
Rows come back as dicts (RealDictCursor); table and column names are
composed with psycopg2.sql so they are always quoted as identifiers.
"""

from typing import Any, Optional

import psycopg2
from psycopg2 import extras, sql

from db.connection import get_connection, release_connection
from db.storage import Criteria, Row, StorageError
from utils.logger import get_logger

logger = get_logger(__name__)


class PostgresStorage:
    """
    Storage backed by the shared psycopg2 connection pool.

    Args:
        identifier_column: Primary key column used by `save` to decide
            between UPDATE and INSERT, and returned from both.
    """

    def __init__(self, identifier_column: str = "id"):
        self.identifier_column = identifier_column

    # ── READ ──────────────────────────────────────────────

    def fetch_all(self, collection: str) -> list[dict]:
        query = sql.SQL("SELECT * FROM {};").format(self._table(collection))
        return self._select(query, (), collection)

    def fetch_all_by(self, criteria: Criteria, collection: str) -> list[dict]:
        if not criteria:
            return self.fetch_all(collection)
        where, params = self._where(criteria)
        query = sql.SQL("SELECT * FROM {} WHERE {};").format(
            self._table(collection), where
        )
        return self._select(query, params, collection)

    def find(self, criteria: Criteria, collection: str) -> Optional[dict]:
        """Return the first row matching `criteria` (LIMIT 1), or None."""
        if criteria:
            where, params = self._where(criteria)
            query = sql.SQL("SELECT * FROM {} WHERE {} LIMIT 1;").format(
                self._table(collection), where
            )
        else:
            query = sql.SQL("SELECT * FROM {} LIMIT 1;").format(self._table(collection))
            params = ()
        rows = self._select(query, params, collection)
        return rows[0] if rows else None

    # ── WRITE ─────────────────────────────────────────────

    def save(self, data: Row, collection: str) -> Any:
        """
        Persist `data` into `collection`.

        A non-null identifier in `data` updates the matching row; when no row
        matches (or there is no identifier) the data is inserted.

        Returns:
            The identifier of the updated or inserted row.

        Raises:
            StorageError: If PostgreSQL rejects the statement.
        """
        key = self.identifier_column
        conn = get_connection()
        try:
            with conn.cursor(cursor_factory=extras.RealDictCursor) as cur:
                identifier = None
                if data.get(key) is not None:
                    identifier = self._update(cur, data, collection)
                if identifier is None:
                    identifier = self._insert(cur, data, collection)
            conn.commit()
            logger.info(f"Saved {collection} #{identifier}")
            return identifier
        except psycopg2.Error as e:
            conn.rollback()
            logger.error(f"Failed to save into {collection}: {e}")
            raise StorageError(f"Failed to save into {collection}: {e}", collection) from e
        finally:
            release_connection(conn)

    # ── HELPERS ───────────────────────────────────────────

    def _select(self, query: sql.Composable, params, collection: str) -> list[dict]:
        conn = get_connection()
        try:
            with conn.cursor(cursor_factory=extras.RealDictCursor) as cur:
                cur.execute(query, params)
                return [dict(r) for r in cur.fetchall()]
        except psycopg2.Error as e:
            conn.rollback()
            logger.error(f"Failed to read from {collection}: {e}")
            raise StorageError(f"Failed to read from {collection}: {e}", collection) from e
        finally:
            release_connection(conn)

    def _update(self, cur, data: Row, collection: str) -> Any:
        """Update the row identified by data[key]; None when nothing matched."""
        key = self.identifier_column
        columns = [c for c in data if c != key]
        if columns:
            assignments = sql.SQL(", ").join(
                sql.SQL("{} = %s").format(sql.Identifier(c)) for c in columns
            )
            query = sql.SQL("UPDATE {} SET {} WHERE {} = %s RETURNING {};").format(
                self._table(collection),
                assignments,
                sql.Identifier(key),
                sql.Identifier(key),
            )
            params = [data[c] for c in columns] + [data[key]]
        else:
            query = sql.SQL("SELECT {} FROM {} WHERE {} = %s;").format(
                sql.Identifier(key), self._table(collection), sql.Identifier(key)
            )
            params = [data[key]]
        cur.execute(query, params)
        row = cur.fetchone()
        return row[key] if row else None

    def _insert(self, cur, data: Row, collection: str) -> Any:
        key = self.identifier_column
        columns = [c for c in data if not (c == key and data[c] is None)]
        if columns:
            query = sql.SQL("INSERT INTO {} ({}) VALUES ({}) RETURNING {};").format(
                self._table(collection),
                sql.SQL(", ").join(sql.Identifier(c) for c in columns),
                sql.SQL(", ").join(sql.Placeholder() for _ in columns),
                sql.Identifier(key),
            )
        else:
            query = sql.SQL("INSERT INTO {} DEFAULT VALUES RETURNING {};").format(
                self._table(collection), sql.Identifier(key)
            )
        cur.execute(query, [data[c] for c in columns])
        return cur.fetchone()[key]

    @staticmethod
    def _table(collection: str) -> sql.Identifier:
        """Quote `collection`, honouring an optional `schema.` prefix."""
        return sql.Identifier(*collection.split("."))

    @staticmethod
    def _where(criteria: Criteria) -> tuple[sql.Composable, list]:
        """Build an AND-ed equality filter; None values compare with IS NULL."""
        clauses = []
        params = []
        for column, value in criteria.items():
            if value is None:
                clauses.append(sql.SQL("{} IS NULL").format(sql.Identifier(column)))
            else:
                clauses.append(sql.SQL("{} = %s").format(sql.Identifier(column)))
                params.append(value)
        return sql.SQL(" AND ").join(clauses), params

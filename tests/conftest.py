from dataclasses import dataclass
from typing import Optional

import pytest

from db.memory_storage import MemoryStorage
from repositories.base import Repository


@dataclass
class Item:
    id: Optional[int] = None
    name: Optional[str] = None


class ItemRepository(Repository[Item]):
    table = "items"


ITEM_ROWS = [
    {"id": 1, "name": "a"},
    {"id": 2, "name": "b"},
]


@pytest.fixture
def storage():
    return MemoryStorage(initial={"items": ITEM_ROWS})


@pytest.fixture
def items(storage):
    return ItemRepository(storage, Item)


class RecordingStorage:
    """Storage double that records every call and replays canned results."""

    def __init__(self, rows=None, row=None, identifier=None, error=None):
        self.rows = rows or []
        self.row = row
        self.identifier = identifier
        self.error = error
        self.calls = []

    def _record(self, *call):
        self.calls.append(call)
        if self.error is not None:
            raise self.error

    def fetch_all(self, collection):
        self._record("fetch_all", collection)
        return self.rows

    def fetch_all_by(self, criteria, collection):
        self._record("fetch_all_by", criteria, collection)
        return self.rows

    def find(self, criteria, collection):
        self._record("find", criteria, collection)
        return self.row

    def save(self, data, collection):
        self._record("save", data, collection)
        return self.identifier


# ── Fake psycopg2 connection ──────────────────────────────


class FakeCursor:
    def __init__(self, conn):
        self.conn = conn
        self._result = []

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def execute(self, query, params=None):
        self.conn.executed.append((query, list(params or [])))
        if self.conn.error is not None:
            raise self.conn.error
        self._result = self.conn.results.pop(0) if self.conn.results else []

    def fetchall(self):
        return self._result

    def fetchone(self):
        return self._result[0] if self._result else None


class FakeConnection:
    """Records statements; each execute() consumes the next queued result set."""

    def __init__(self, results=None, error=None):
        self.results = list(results or [])
        self.error = error
        self.executed = []
        self.cursor_factories = []
        self.commits = 0
        self.rollbacks = 0

    def cursor(self, cursor_factory=None):
        self.cursor_factories.append(cursor_factory)
        return FakeCursor(self)

    def commit(self):
        self.commits += 1

    def rollback(self):
        self.rollbacks += 1


@pytest.fixture
def fake_pg(monkeypatch):
    """Route PostgresStorage through a FakeConnection instead of the pool."""
    import db.postgres_storage as postgres_storage

    state = {"conn": FakeConnection(), "released": 0}

    def get_connection():
        return state["conn"]

    def release_connection(conn):
        assert conn is state["conn"]
        state["released"] += 1

    monkeypatch.setattr(postgres_storage, "get_connection", get_connection)
    monkeypatch.setattr(postgres_storage, "release_connection", release_connection)
    return state

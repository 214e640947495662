import psycopg2
import pytest
from psycopg2 import extras, sql

from db.postgres_storage import PostgresStorage
from db.storage import Storage, StorageError
from tests.conftest import FakeConnection


def test_satisfies_storage_protocol():
    assert isinstance(PostgresStorage(), Storage)


def test_fetch_all_returns_dict_rows(fake_pg):
    fake_pg["conn"] = FakeConnection(results=[[{"id": 1, "name": "a"}, {"id": 2, "name": "b"}]])

    rows = PostgresStorage().fetch_all("items")

    assert rows == [{"id": 1, "name": "a"}, {"id": 2, "name": "b"}]
    assert fake_pg["conn"].cursor_factories == [extras.RealDictCursor]
    query, params = fake_pg["conn"].executed[0]
    assert isinstance(query, sql.Composable)
    assert params == []
    assert fake_pg["released"] == 1


def test_fetch_all_by_binds_values_and_skips_nulls(fake_pg):
    fake_pg["conn"] = FakeConnection(results=[[{"id": 2, "name": "b"}]])

    rows = PostgresStorage().fetch_all_by({"name": "b", "deleted_at": None, "kind": 3}, "items")

    assert rows == [{"id": 2, "name": "b"}]
    assert fake_pg["conn"].executed[0][1] == ["b", 3]


def test_find_returns_first_row_or_none(fake_pg):
    fake_pg["conn"] = FakeConnection(results=[[{"id": 2, "name": "b"}], []])
    storage = PostgresStorage()

    assert storage.find({"id": 2}, "items") == {"id": 2, "name": "b"}
    assert storage.find({"id": 99}, "items") is None
    assert fake_pg["released"] == 2


def test_read_failure_rolls_back_and_raises_storage_error(fake_pg):
    cause = psycopg2.OperationalError("server closed the connection")
    fake_pg["conn"] = FakeConnection(error=cause)

    with pytest.raises(StorageError) as exc_info:
        PostgresStorage().fetch_all("items")

    assert exc_info.value.collection == "items"
    assert exc_info.value.__cause__ is cause
    assert fake_pg["conn"].rollbacks == 1
    assert fake_pg["released"] == 1


def test_save_without_identifier_inserts(fake_pg):
    fake_pg["conn"] = FakeConnection(results=[[{"id": 3}]])

    assert PostgresStorage().save({"name": "c"}, "items") == 3

    conn = fake_pg["conn"]
    assert len(conn.executed) == 1
    assert conn.executed[0][1] == ["c"]
    assert conn.commits == 1
    assert fake_pg["released"] == 1


def test_save_drops_null_identifier_from_insert(fake_pg):
    fake_pg["conn"] = FakeConnection(results=[[{"id": 4}]])

    assert PostgresStorage().save({"id": None, "name": "d"}, "items") == 4
    assert fake_pg["conn"].executed[0][1] == ["d"]


def test_save_with_identifier_updates_existing_row(fake_pg):
    fake_pg["conn"] = FakeConnection(results=[[{"id": 1}]])

    assert PostgresStorage().save({"id": 1, "name": "renamed"}, "items") == 1

    conn = fake_pg["conn"]
    assert conn.executed[0][1] == ["renamed", 1]
    assert len(conn.executed) == 1
    assert conn.commits == 1


def test_save_with_unknown_identifier_falls_back_to_insert(fake_pg):
    fake_pg["conn"] = FakeConnection(results=[[], [{"id": 42}]])

    assert PostgresStorage().save({"id": 42, "name": "new"}, "items") == 42

    conn = fake_pg["conn"]
    assert [params for _, params in conn.executed] == [["new", 42], [42, "new"]]


def test_save_custom_identifier_column(fake_pg):
    fake_pg["conn"] = FakeConnection(results=[[{"code": "x-1"}]])

    assert PostgresStorage(identifier_column="code").save({"label": "x"}, "things") == "x-1"


def test_save_failure_rolls_back_and_raises_storage_error(fake_pg):
    cause = psycopg2.IntegrityError("duplicate key value")
    fake_pg["conn"] = FakeConnection(error=cause)

    with pytest.raises(StorageError) as exc_info:
        PostgresStorage().save({"name": "dup"}, "items")

    conn = fake_pg["conn"]
    assert exc_info.value.__cause__ is cause
    assert conn.commits == 0
    assert conn.rollbacks == 1
    assert fake_pg["released"] == 1

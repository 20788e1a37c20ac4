import sqlite3

import pytest

from converter.domain.models import UserRow
from converter.infra.db.db import DB_FILE_NAME, openDb, resolveDbPath
from converter.infra.db.schema import SCHEMA_VERSION, ensure_schema, get_schema_version
from converter.infra.db.session import openUsersRepository
from converter.infra.db.sqlite_engine import SqliteEngine


def _row(name="A B", age=30, address='{"city": "Pune"}', additional_info=None):
    return UserRow(name=name, age=age, address=address, additional_info=additional_info)


def test_schema_is_created_once(tmp_path):
    db_path = str(tmp_path / "users.sqlite3")
    conn = openDb(db_path)
    try:
        engine = SqliteEngine(conn)
        assert get_schema_version(engine) is None
        assert ensure_schema(engine) == SCHEMA_VERSION
        assert ensure_schema(engine) == SCHEMA_VERSION
        assert get_schema_version(engine) == SCHEMA_VERSION
    finally:
        conn.close()


def test_newer_schema_version_is_refused(tmp_path):
    conn = openDb(str(tmp_path / "users.sqlite3"))
    try:
        engine = SqliteEngine(conn)
        ensure_schema(engine)
        engine.execute("UPDATE meta SET value=? WHERE key='schema_version'", (str(SCHEMA_VERSION + 1),))
        with pytest.raises(RuntimeError):
            ensure_schema(engine)
    finally:
        conn.close()


def test_resolve_db_path_for_directory(tmp_path):
    assert resolveDbPath(str(tmp_path)) == str(tmp_path / DB_FILE_NAME)
    assert resolveDbPath(str(tmp_path / "x.db")) == str(tmp_path / "x.db")


def test_insert_and_list(tmp_path):
    with openUsersRepository(str(tmp_path / "users.sqlite3")) as repo:
        with repo.transaction():
            first = repo.insert(_row(name="Rohit Prasad", age=35))
            second = repo.insert(_row(name="Anita Sharma", age=17, additional_info='{"gender": "female"}'))

        rows = repo.list_all()
        assert [r["id"] for r in rows] == [first, second]
        assert rows[0]["name"] == "Rohit Prasad"
        assert rows[1]["additional_info"] == '{"gender": "female"}'
        assert rows[0]["created_at"]
        assert repo.list_ages() == [35, 17]
        assert repo.count() == 2


def test_data_survives_reopen(tmp_path):
    db_path = str(tmp_path / "users.sqlite3")
    with openUsersRepository(db_path) as repo:
        with repo.transaction():
            repo.insert(_row())
    with openUsersRepository(db_path) as repo:
        assert repo.count() == 1


def test_negative_age_is_rejected_by_schema(tmp_path):
    with openUsersRepository(str(tmp_path / "users.sqlite3")) as repo:
        with pytest.raises(sqlite3.IntegrityError):
            repo.insert(_row(age=-1))


def test_savepoint_rolls_back_only_failing_row(tmp_path):
    with openUsersRepository(str(tmp_path / "users.sqlite3")) as repo:
        with repo.transaction():
            with repo.savepoint():
                repo.insert(_row(name="ok"))
            with pytest.raises(sqlite3.IntegrityError):
                with repo.savepoint():
                    repo.insert(_row(name="bad", age=-3))
            with repo.savepoint():
                repo.insert(_row(name="also ok"))

        assert [r["name"] for r in repo.list_all()] == ["ok", "also ok"]


def test_failed_transaction_is_rolled_back(tmp_path):
    with openUsersRepository(str(tmp_path / "users.sqlite3")) as repo:
        with pytest.raises(RuntimeError):
            with repo.transaction():
                repo.insert(_row())
                raise RuntimeError("boom")
        assert repo.count() == 0


def test_clear_removes_all_rows(tmp_path):
    with openUsersRepository(str(tmp_path / "users.sqlite3")) as repo:
        with repo.transaction():
            repo.insert(_row())
            repo.insert(_row())
        assert repo.clear() == 2
        assert repo.count() == 0

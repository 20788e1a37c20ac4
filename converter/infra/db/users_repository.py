from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Iterator

from converter.common.time import getNowIso
from converter.domain.models import UserRow
from converter.infra.db.sqlite_engine import SqliteEngine


class SqliteUsersRepository:
    """
    Назначение/ответственность:
        Доступ к таблице users: вставка проекций записей и чтение для выдачи/агрегации.
    """

    def __init__(self, engine: SqliteEngine) -> None:
        self.engine = engine

    @contextmanager
    def transaction(self) -> Iterator[None]:
        with self.engine.transaction():
            yield

    @contextmanager
    def savepoint(self) -> Iterator[None]:
        with self.engine.savepoint("user_row"):
            yield

    def insert(self, row: UserRow) -> int:
        cur = self.engine.execute(
            """
            INSERT INTO users (name, age, address, additional_info, created_at)
            VALUES (?, ?, ?, ?, ?)
            """,
            (row.name, row.age, row.address, row.additional_info, getNowIso()),
        )
        return int(cur.lastrowid)

    def list_all(self) -> list[dict[str, Any]]:
        rows = self.engine.fetchall(
            "SELECT id, name, age, address, additional_info, created_at FROM users ORDER BY id"
        )
        return [dict(row) for row in rows]

    def list_ages(self) -> list[int]:
        rows = self.engine.fetchall("SELECT age FROM users ORDER BY id")
        return [int(row["age"]) for row in rows]

    def count(self) -> int:
        row = self.engine.fetchone("SELECT COUNT(*) FROM users")
        return int(row[0]) if row else 0

    def clear(self) -> int:
        with self.engine.transaction():
            cur = self.engine.execute("DELETE FROM users")
        return cur.rowcount

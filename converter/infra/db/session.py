from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from converter.infra.db.db import openDb, resolveDbPath
from converter.infra.db.schema import ensure_schema
from converter.infra.db.sqlite_engine import SqliteEngine
from converter.infra.db.users_repository import SqliteUsersRepository


@contextmanager
def openUsersRepository(dbPath: str) -> Iterator[SqliteUsersRepository]:
    """
    Назначение:
        Открывает БД, гарантирует схему и отдаёт репозиторий; соединение закрывается на выходе.
    """
    conn = openDb(resolveDbPath(dbPath))
    try:
        engine = SqliteEngine(conn)
        ensure_schema(engine)
        yield SqliteUsersRepository(engine)
    finally:
        conn.close()

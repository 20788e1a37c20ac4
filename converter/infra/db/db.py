from __future__ import annotations

import sqlite3
from pathlib import Path

DB_FILE_NAME = "users.sqlite3"

def getDbPath(dataDir: str | Path) -> str:
    """
    Возвращает путь к файлу БД в указанном каталоге.
    """
    return str(Path(dataDir) / DB_FILE_NAME)

def openDb(dbPath: str) -> sqlite3.Connection:
    """
    Открывает/создаёт SQLite БД с нужными PRAGMA/timeout.
    Соединение в autocommit-режиме: транзакции открываются явно через SqliteEngine.
    """
    Path(dbPath).parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(dbPath, timeout=5.0, isolation_level=None, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    conn.execute("PRAGMA journal_mode = WAL")
    conn.execute("PRAGMA synchronous = NORMAL")
    conn.execute("PRAGMA busy_timeout = 5000")
    return conn

def resolveDbPath(dbPath: str) -> str:
    """
    Если в настройках указан каталог, файл БД создаётся внутри него.
    """
    p = Path(dbPath)
    if p.is_dir():
        return getDbPath(p)
    return str(p)

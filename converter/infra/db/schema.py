from __future__ import annotations

from converter.infra.db.sqlite_engine import SqliteEngine

SCHEMA_VERSION = 1


def ensure_schema(engine: SqliteEngine) -> int:
    """
    Назначение:
        Создать meta и users (идемпотентно) и вернуть версию схемы.
    """
    with engine.transaction():
        _create_meta(engine)
        current_version = _get_schema_version(engine) or 0

        if current_version == 0:
            _create_users(engine)
            _set_schema_version(engine, SCHEMA_VERSION)
            return SCHEMA_VERSION

        if current_version > SCHEMA_VERSION:
            raise RuntimeError(
                f"Database schema version {current_version} is newer than supported {SCHEMA_VERSION}"
            )
        return current_version


def get_schema_version(engine: SqliteEngine) -> int | None:
    if not _table_exists(engine, "meta"):
        return None
    return _get_schema_version(engine)


def _create_meta(engine: SqliteEngine) -> None:
    engine.execute(
        """
        CREATE TABLE IF NOT EXISTS meta (
            key TEXT PRIMARY KEY,
            value TEXT
        )
        """
    )


def _create_users(engine: SqliteEngine) -> None:
    engine.execute(
        """
        CREATE TABLE IF NOT EXISTS users (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL,
            age INTEGER NOT NULL CHECK (age >= 0),
            address TEXT,
            additional_info TEXT,
            created_at TEXT NOT NULL
        )
        """
    )
    engine.execute("CREATE INDEX IF NOT EXISTS idx_users_age ON users(age)")


def _get_schema_version(engine: SqliteEngine) -> int | None:
    row = engine.fetchone("SELECT value FROM meta WHERE key='schema_version'")
    if row is None:
        return None
    try:
        return int(row[0])
    except (TypeError, ValueError):
        return None


def _set_schema_version(engine: SqliteEngine, version: int) -> None:
    engine.execute(
        """
        INSERT INTO meta(key, value)
        VALUES (?, ?)
        ON CONFLICT(key) DO UPDATE SET value=excluded.value
        """,
        ("schema_version", str(version)),
    )


def _table_exists(engine: SqliteEngine, table: str) -> bool:
    row = engine.fetchone("SELECT 1 FROM sqlite_master WHERE type='table' AND name=?", (table,))
    return row is not None

from converter.infra.db.db import getDbPath, openDb, resolveDbPath
from converter.infra.db.schema import SCHEMA_VERSION, ensure_schema, get_schema_version
from converter.infra.db.sqlite_engine import SqliteEngine
from converter.infra.db.users_repository import SqliteUsersRepository
from converter.infra.db.session import openUsersRepository

__all__ = [
    "SCHEMA_VERSION",
    "SqliteEngine",
    "SqliteUsersRepository",
    "ensure_schema",
    "getDbPath",
    "get_schema_version",
    "openDb",
    "openUsersRepository",
    "resolveDbPath",
]

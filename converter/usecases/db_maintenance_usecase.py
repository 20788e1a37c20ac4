from __future__ import annotations

import logging
from typing import Any

from converter.infra.db.schema import get_schema_version
from converter.infra.db.users_repository import SqliteUsersRepository
from converter.infra.logging.setup import logEvent


class DbMaintenanceUseCase:
    """
    Назначение/ответственность:
        Служебные операции над БД: статус и очистка таблицы users.
    """

    def __init__(self, repository: SqliteUsersRepository) -> None:
        self.repository = repository

    def status(self) -> dict[str, Any]:
        return {
            "schema_version": get_schema_version(self.repository.engine),
            "users": self.repository.count(),
        }

    def clear(self, logger: logging.Logger, run_id: str) -> int:
        removed = self.repository.clear()
        logEvent(logger, logging.INFO, run_id, "db", f"Users table cleared: {removed} rows removed")
        return removed

from __future__ import annotations

from typing import Any

from converter.domain.parsing.flatten import render_document
from converter.domain.users.projection import to_user_document
from converter.infra.db.users_repository import SqliteUsersRepository


class UsersUseCase:
    """
    Назначение/ответственность:
        Выдача сохранённых пользователей: вложенный JSON и обратный экспорт в CSV.
    """

    def __init__(self, repository: SqliteUsersRepository) -> None:
        self.repository = repository

    def list_documents(self) -> list[dict[str, Any]]:
        return [to_user_document(row) for row in self.repository.list_all()]

    def export_records(self) -> list[dict[str, Any]]:
        """
        Назначение:
            Записи в форме, близкой к исходному CSV: address вложенный,
            ключи additional_info подняты на верхний уровень.
        """
        records: list[dict[str, Any]] = []
        for document in self.list_documents():
            record: dict[str, Any] = {
                "id": document["id"],
                "name": document["name"],
                "age": document["age"],
            }
            if document["address"] is not None:
                record["address"] = document["address"]
            for key, value in (document["additional_info"] or {}).items():
                record.setdefault(key, value)
            records.append(record)
        return records

    def export_csv(self, delimiter: str = ",") -> str:
        return render_document(self.export_records(), delimiter=delimiter)

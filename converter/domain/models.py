from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class DiagnosticStage(str, Enum):
    """
    Назначение:
        Этап загрузки строки, на котором возникло диагностическое событие.

    PARSE:
        число полей строки не совпало с заголовком
    TRANSFORM:
        запись не проецируется в users (возраст вне допустимого диапазона
        или не число)
    STORE:
        SQLite отказал во вставке
    """

    PARSE = "PARSE"
    TRANSFORM = "TRANSFORM"
    STORE = "STORE"


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"


@dataclass(frozen=True)
class DiagnosticItem:
    stage: DiagnosticStage
    code: str
    message: str


@dataclass(frozen=True)
class UserRow:
    """
    Назначение:
        Реляционная проекция вложенной записи пользователя.

    Поля:
        name: "firstName lastName" без лишних пробелов
        age: целое в диапазоне [0, MAX_AGE_VALUE], 0 если не удалось разобрать
        address: JSON вложенного адреса или None
        additional_info: JSON остальных ключей верхнего уровня или None
    """
    name: str
    age: int
    address: str | None
    additional_info: str | None

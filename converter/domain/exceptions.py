from __future__ import annotations

from dataclasses import dataclass

from converter.domain.error_codes import ErrorCode


@dataclass
class HeaderPathConflictError(Exception):
    """
    Назначение:
        Заголовок CSV является строгим префиксом другого заголовка
        (например `address` и `address.city`), а политика конфликтов запрещает перезапись.
    Инварианты/гарантии:
        - code установлен в ErrorCode.HEADER_PATH_CONFLICT.
        - Выбрасывается до разбора первой строки данных.
    """

    path: str
    prefix: str

    @property
    def code(self) -> ErrorCode:
        return ErrorCode.HEADER_PATH_CONFLICT

    def __str__(self) -> str:
        return f"Header path '{self.path}' conflicts with header '{self.prefix}' (prefix used as a value)"


class UnrepresentableValueError(ValueError):
    """
    Назначение:
        Значение нельзя записать в CSV так, чтобы оно пережило обратный разбор
        (кавычка или перевод строки внутри значения).
    """

    code = ErrorCode.UNREPRESENTABLE_VALUE

    def __init__(self, key: str, value: str) -> None:
        super().__init__(f"Value for '{key}' cannot be rendered as a delimited field: {value!r}")
        self.key = key
        self.value = value


class InvalidAgeError(ValueError):
    """
    Назначение:
        Возраст записи разобран, но не может быть сохранён в users:
        отрицательный или больше MAX_AGE_VALUE (предел INTEGER в SQLite).
    """

    code = ErrorCode.INVALID_AGE

    def __init__(self, raw: object, age: int, limit: int) -> None:
        super().__init__(f"Invalid age {raw!r}: expected an integer between 0 and {limit}")
        self.raw = raw
        self.age = age
        self.limit = limit


__all__ = ["HeaderPathConflictError", "InvalidAgeError", "UnrepresentableValueError"]

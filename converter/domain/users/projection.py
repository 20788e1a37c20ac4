from __future__ import annotations

import json
import re
from typing import Any, Mapping

from converter.domain.exceptions import InvalidAgeError
from converter.domain.models import UserRow

NAME_KEY = "name"
AGE_KEY = "age"
ADDRESS_KEY = "address"
KNOWN_KEYS = (NAME_KEY, AGE_KEY, ADDRESS_KEY)

_INT_PREFIX_RE = re.compile(r"[+-]?\d+")

# верхняя граница INTEGER в SQLite
MAX_AGE_VALUE = 2**63 - 1


def parse_int_prefix(value: Any, default: int | None = 0) -> int | None:
    """
    Назначение:
        Мягкий разбор целого: знак и ведущие цифры после trim.

    Примеры:
        "42" -> 42, " 42.7 " -> 42, "-5" -> -5, "abc" -> default, None -> default
    """
    if value is None or isinstance(value, Mapping):
        return default
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    match = _INT_PREFIX_RE.match(str(value).strip())
    if match is None:
        return default
    return int(match.group(0))


def _dumps(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False)


def age_defaulted(record: Mapping[str, Any]) -> bool:
    """
    Назначение:
        True, если в `age` нет ведущего целого и при проекции будет подставлен 0.
    """
    return parse_int_prefix(record.get(AGE_KEY), default=None) is None


def project_age(raw: Any) -> int:
    age = parse_int_prefix(raw)
    if age < 0 or age > MAX_AGE_VALUE:
        raise InvalidAgeError(raw, age, MAX_AGE_VALUE)
    return age


def build_full_name(name: Any) -> str:
    if isinstance(name, Mapping):
        first = name.get("firstName") or ""
        last = name.get("lastName") or ""
        return f"{first} {last}".strip()
    if name is None:
        return ""
    return str(name).strip()


def to_user_row(record: Mapping[str, Any]) -> UserRow:
    """
    Назначение:
        Проекция вложенной записи на колонки таблицы users.

    Алгоритм:
        - name: firstName + lastName из `name.*`
        - age: ведущее целое из `age`, иначе 0; вне [0, MAX_AGE_VALUE] -> InvalidAgeError
        - address: JSON `address` целиком
        - additional_info: JSON всех прочих ключей верхнего уровня
    """
    address = record.get(ADDRESS_KEY)
    additional = {key: value for key, value in record.items() if key not in KNOWN_KEYS}
    return UserRow(
        name=build_full_name(record.get(NAME_KEY)),
        age=project_age(record.get(AGE_KEY)),
        address=_dumps(address) if address is not None else None,
        additional_info=_dumps(additional) if additional else None,
    )


def _loads(value: str | None) -> Any:
    if value is None:
        return None
    return json.loads(value)


def to_user_document(row: Mapping[str, Any]) -> dict[str, Any]:
    """
    Назначение:
        Обратное представление строки таблицы users в виде вложенного JSON-документа.
    """
    return {
        "id": row["id"],
        "name": row["name"],
        "age": row["age"],
        "address": _loads(row["address"]),
        "additional_info": _loads(row["additional_info"]),
    }


__all__ = [
    "KNOWN_KEYS",
    "MAX_AGE_VALUE",
    "age_defaulted",
    "project_age",
    "build_full_name",
    "parse_int_prefix",
    "to_user_document",
    "to_user_row",
]

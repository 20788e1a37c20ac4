from __future__ import annotations

from typing import Iterable, Mapping, Sequence

from converter.domain.exceptions import UnrepresentableValueError
from converter.domain.parsing.document import LINE_SEPARATOR
from converter.domain.parsing.line_parser import DEFAULT_DELIMITER, DEFAULT_QUOTE
from converter.domain.parsing.path_tree import PATH_SEPARATOR


def flatten_record(record: Mapping[str, object], prefix: str = "") -> dict[str, str]:
    """
    Назначение:
        Обратное преобразование: вложенная запись -> плоский словарь с ключами-путями.

    Поведение:
        - Обход в глубину в порядке вставки ключей.
        - Пустые вложенные словари ключей не дают.
        - Нестроковые скаляры приводятся через str(), None -> "".
    """
    flat: dict[str, str] = {}
    for key, value in record.items():
        path = f"{prefix}{PATH_SEPARATOR}{key}" if prefix else key
        if isinstance(value, Mapping):
            flat.update(flatten_record(value, path))
        elif value is None:
            flat[path] = ""
        else:
            flat[path] = str(value)
    return flat


def collect_headers(flat_records: Iterable[Mapping[str, str]]) -> list[str]:
    seen: dict[str, None] = {}
    for flat in flat_records:
        for key in flat:
            seen.setdefault(key, None)
    return list(seen)


def render_field(
    key: str,
    value: str,
    delimiter: str = DEFAULT_DELIMITER,
    quote: str = DEFAULT_QUOTE,
) -> str:
    if quote in value or LINE_SEPARATOR in value or "\r" in value:
        raise UnrepresentableValueError(key, value)
    if delimiter in value:
        return f"{quote}{value}{quote}"
    return value


def render_document(
    records: Iterable[Mapping[str, object]],
    headers: Sequence[str] | None = None,
    delimiter: str = DEFAULT_DELIMITER,
) -> str:
    """
    Назначение:
        Записывает вложенные записи обратно в CSV-текст с заголовками-путями.

    Входные данные:
        records: вложенные записи
        headers: порядок колонок; по умолчанию объединение ключей в порядке появления
        delimiter: разделитель полей

    Выходные данные:
        str
            Заголовок и по строке на запись, завершается переводом строки.
            Отсутствующие ключи записываются пустыми полями.
    """
    flat_records = [flatten_record(record) for record in records]
    columns = list(headers) if headers is not None else collect_headers(flat_records)

    lines = [delimiter.join(render_field(h, h, delimiter) for h in columns)]
    for flat in flat_records:
        lines.append(delimiter.join(render_field(h, flat.get(h, ""), delimiter) for h in columns))
    return LINE_SEPARATOR.join(lines) + LINE_SEPARATOR


__all__ = ["collect_headers", "flatten_record", "render_document", "render_field"]

from __future__ import annotations

from enum import Enum
from typing import Sequence, Union

from converter.domain.exceptions import HeaderPathConflictError

PATH_SEPARATOR = "."

Record = dict[str, Union[str, "Record"]]
HeaderPath = tuple[str, ...]


class PathConflictPolicy(str, Enum):
    """
    Назначение:
        Поведение при конфликте путей заголовков, когда один путь
        использует как узел ключ, которому другой путь присваивает значение.

    OVERWRITE:
        Более поздний путь молча перезаписывает значение (скаляр заменяется словарём и наоборот).
    REJECT:
        Набор заголовков с конфликтом отклоняется до разбора строк.
    """

    OVERWRITE = "overwrite"
    REJECT = "reject"


def split_header(field: str) -> HeaderPath:
    """
    Назначение:
        Разбивает ячейку заголовка на сегменты пути (`address.city` -> ("address", "city")).
    """
    return tuple(field.split(PATH_SEPARATOR))


def join_path(path: Sequence[str]) -> str:
    return PATH_SEPARATOR.join(path)


class PathTreeAssembler:
    """
    Назначение/ответственность:
        Сборка вложенной записи из путей заголовков и значений одной строки.

    Инварианты/гарантии:
        - Общие префиксы путей схлопываются в один вложенный словарь.
        - Для каждой строки создаётся новое дерево, ссылки на результат не сохраняются.
        - При одинаковых полных путях побеждает последнее значение.
    """

    def __init__(self, policy: PathConflictPolicy = PathConflictPolicy.OVERWRITE) -> None:
        self.policy = policy

    def validate_headers(self, header_paths: Sequence[HeaderPath]) -> None:
        """
        Назначение:
            Проверка набора заголовков на этапе подготовки разбора.

        Поведение:
            - OVERWRITE: ничего не проверяет.
            - REJECT: выбрасывает HeaderPathConflictError, если один путь
              является строгим префиксом другого.
        """
        if self.policy is PathConflictPolicy.OVERWRITE:
            return
        full_paths = {tuple(path) for path in header_paths}
        for path in header_paths:
            for depth in range(1, len(path)):
                prefix = tuple(path[:depth])
                if prefix in full_paths:
                    raise HeaderPathConflictError(path=join_path(path), prefix=join_path(prefix))

    def build_record(self, header_paths: Sequence[HeaderPath], values: Sequence[str]) -> Record:
        """
        Назначение:
            Вложенная запись из пар (путь, значение).

        Поведение:
            - Пары берутся попарно до конца более короткой последовательности;
              проверка числа полей остаётся за вызывающим (DocumentParser).
            - Исключений не выбрасывает.
        """
        record: Record = {}
        for path, value in zip(header_paths, values):
            self._assign(record, path, value)
        return record

    @staticmethod
    def _assign(record: Record, path: HeaderPath, value: str) -> None:
        current = record
        for key in path[:-1]:
            node = current.get(key)
            if not isinstance(node, dict):
                # скаляр на промежуточном сегменте теряется
                node = {}
                current[key] = node
            current = node
        current[path[-1]] = value


def build_record(header_paths: Sequence[HeaderPath], values: Sequence[str]) -> Record:
    return PathTreeAssembler().build_record(header_paths, values)


__all__ = [
    "HeaderPath",
    "PATH_SEPARATOR",
    "PathConflictPolicy",
    "PathTreeAssembler",
    "Record",
    "build_record",
    "join_path",
    "split_header",
]

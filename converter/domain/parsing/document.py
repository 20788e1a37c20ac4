from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator

from converter.domain.error_codes import ErrorCode
from converter.domain.models import DiagnosticItem, DiagnosticStage
from converter.domain.parsing.line_parser import DEFAULT_DELIMITER, DelimitedLineParser
from converter.domain.parsing.path_tree import (
    HeaderPath,
    PathConflictPolicy,
    PathTreeAssembler,
    Record,
    split_header,
)

LINE_SEPARATOR = "\n"


class FieldCountPolicy(str, Enum):
    """
    Назначение:
        Политика обработки строк, число полей которых не совпадает с заголовком.

    SKIP:
        Строка молча отбрасывается.
    COLLECT_ERROR:
        Строка отбрасывается и фиксируется как RowFailure с номером строки.
    """

    SKIP = "skip"
    COLLECT_ERROR = "collect"


@dataclass(frozen=True)
class RowFailure:
    """
    Назначение:
        Описание отброшенной строки данных.

    Поля:
        line_no: физический номер строки во входном тексте (с 1, пустые строки учитываются)
        expected: число полей в заголовке
        got: число полей в строке
    """

    line_no: int
    expected: int
    got: int
    reason: str

    def diagnostic(self) -> DiagnosticItem:
        return DiagnosticItem(
            stage=DiagnosticStage.PARSE,
            code=ErrorCode.FIELD_COUNT_MISMATCH.value,
            message=self.reason,
        )


@dataclass
class DocumentParseResult:
    """
    Назначение:
        Результат разбора документа: записи, отброшенные строки и счётчики.
    """

    headers: list[str] = field(default_factory=list)
    records: list[Record] = field(default_factory=list)
    record_line_nos: list[int] = field(default_factory=list)
    failures: list[RowFailure] = field(default_factory=list)
    rows_total: int = 0

    @property
    def rows_dropped(self) -> int:
        return self.rows_total - len(self.records)


def iter_content_lines(raw_text: str) -> Iterator[tuple[int, str]]:
    """
    Назначение:
        Итератор непустых строк документа вместе с физическим номером строки.
    """
    for line_no, line in enumerate(raw_text.split(LINE_SEPARATOR), start=1):
        if line.strip():
            yield line_no, line


class DocumentParser:
    """
    Назначение/ответственность:
        Разбор CSV-документа целиком: заголовок, строки данных, сборка вложенных записей.

    Инварианты/гарантии:
        - Первая непустая строка всегда заголовок.
        - Каждый вызов parse независим, состояние между вызовами не хранится.
        - При политиках по умолчанию исключения не выбрасываются.
    """

    def __init__(
        self,
        on_field_count_mismatch: FieldCountPolicy = FieldCountPolicy.SKIP,
        path_conflict: PathConflictPolicy = PathConflictPolicy.OVERWRITE,
        delimiter: str = DEFAULT_DELIMITER,
    ) -> None:
        self.on_field_count_mismatch = on_field_count_mismatch
        self.line_parser = DelimitedLineParser(delimiter=delimiter)
        self.assembler = PathTreeAssembler(policy=path_conflict)

    def parse(self, raw_text: str) -> DocumentParseResult:
        lines = iter_content_lines(raw_text)
        first = next(lines, None)
        if first is None:
            return DocumentParseResult()

        _, header_line = first
        headers = self.line_parser.parse_line(header_line)
        header_paths: list[HeaderPath] = [split_header(h) for h in headers]
        self.assembler.validate_headers(header_paths)

        result = DocumentParseResult(headers=headers)
        for line_no, line in lines:
            result.rows_total += 1
            values = self.line_parser.parse_line(line)
            if len(values) != len(headers):
                if self.on_field_count_mismatch is FieldCountPolicy.COLLECT_ERROR:
                    result.failures.append(
                        RowFailure(
                            line_no=line_no,
                            expected=len(headers),
                            got=len(values),
                            reason=f"Invalid column count: expected {len(headers)}, got {len(values)}",
                        )
                    )
                continue
            result.records.append(self.assembler.build_record(header_paths, values))
            result.record_line_nos.append(line_no)
        return result


def parse_document(raw_text: str) -> list[Record]:
    """
    Назначение:
        Разбор документа с политиками по умолчанию: строки с неверным числом полей
        отбрасываются молча.
    """
    return DocumentParser().parse(raw_text).records


__all__ = [
    "DocumentParseResult",
    "DocumentParser",
    "FieldCountPolicy",
    "RowFailure",
    "iter_content_lines",
    "parse_document",
]

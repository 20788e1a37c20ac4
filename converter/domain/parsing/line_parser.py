from __future__ import annotations

from enum import Enum

DEFAULT_DELIMITER = ","
DEFAULT_QUOTE = '"'


class QuoteState(str, Enum):
    """
    Назначение:
        Состояние автомата разбора строки относительно кавычек.
    """

    UNQUOTED = "UNQUOTED"
    QUOTED = "QUOTED"

    def toggled(self) -> "QuoteState":
        if self is QuoteState.UNQUOTED:
            return QuoteState.QUOTED
        return QuoteState.UNQUOTED


class DelimitedLineParser:
    """
    Назначение/ответственность:
        Толерантный разбор одной строки CSV на список полей.

    Инварианты/гарантии:
        - Символ кавычки переключает состояние и никогда не попадает в поле.
        - Разделитель внутри кавычек является частью значения.
        - Строка с N разделителями вне кавычек даёт N+1 полей.
        - Незакрытая кавычка не является ошибкой: остаток строки уходит в последнее поле.
    """

    def __init__(self, delimiter: str = DEFAULT_DELIMITER, quote: str = DEFAULT_QUOTE) -> None:
        if len(delimiter) != 1:
            raise ValueError(f"Delimiter must be a single character, got {delimiter!r}")
        if len(quote) != 1:
            raise ValueError(f"Quote must be a single character, got {quote!r}")
        if delimiter == quote:
            raise ValueError("Delimiter and quote must differ")
        self.delimiter = delimiter
        self.quote = quote

    def parse_line(self, line: str) -> list[str]:
        fields: list[str] = []
        buffer: list[str] = []
        state = QuoteState.UNQUOTED

        for char in line:
            if char == self.quote:
                state = state.toggled()
            elif char == self.delimiter and state is QuoteState.UNQUOTED:
                fields.append("".join(buffer).strip())
                buffer = []
            else:
                buffer.append(char)

        fields.append("".join(buffer).strip())
        return fields


_default_parser = DelimitedLineParser()


def parse_line(line: str) -> list[str]:
    """
    Назначение:
        Разбор строки парсером с настройками по умолчанию (`,` и `"`).
    """
    return _default_parser.parse_line(line)


__all__ = ["DEFAULT_DELIMITER", "DEFAULT_QUOTE", "DelimitedLineParser", "QuoteState", "parse_line"]

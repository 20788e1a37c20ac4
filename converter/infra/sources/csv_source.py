from __future__ import annotations

from pathlib import Path

from converter.domain.error_codes import ErrorCode
from converter.domain.parsing.document import iter_content_lines
from converter.errors import AppError

MIN_CONTENT_LINES = 2


class CsvSource:
    """
    Назначение/ответственность:
        Чтение CSV-файла целиком в строку (utf-8, BOM отбрасывается).

    Поведение:
        - Отсутствующий файл -> AppError(CSV_NOT_FOUND).
        - Меньше двух непустых строк (нет данных после заголовка) -> AppError(CSV_EMPTY),
          если require_data=True.
    """

    def __init__(self, path: str, require_data: bool = True) -> None:
        self.path = path
        self.require_data = require_data

    def resolved_path(self) -> str:
        return str(Path(self.path).resolve())

    def read_text(self) -> str:
        p = Path(self.path)
        if not p.exists() or not p.is_file():
            raise AppError(
                category="input",
                code=ErrorCode.CSV_NOT_FOUND,
                message=f"CSV file not found: {self.path}",
                details={"path": self.resolved_path()},
            )
        text = p.read_text(encoding="utf-8-sig")
        if self.require_data and not self._has_data(text):
            raise AppError(
                category="input",
                code=ErrorCode.CSV_EMPTY,
                message="CSV file is empty or has no data rows",
                details={"path": self.resolved_path()},
            )
        return text

    @staticmethod
    def _has_data(text: str) -> bool:
        count = 0
        for _ in iter_content_lines(text):
            count += 1
            if count >= MIN_CONTENT_LINES:
                return True
        return False

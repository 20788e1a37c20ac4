from __future__ import annotations

from enum import Enum


class ErrorCode(str, Enum):
    """
    Назначение:
        Единая таксономия кодов ошибок для отчётов, CLI и HTTP API.
    """

    CSV_NOT_FOUND = "CSV_NOT_FOUND"
    CSV_EMPTY = "CSV_EMPTY"
    FIELD_COUNT_MISMATCH = "FIELD_COUNT_MISMATCH"
    HEADER_PATH_CONFLICT = "HEADER_PATH_CONFLICT"
    INVALID_AGE = "INVALID_AGE"
    AGE_DEFAULTED = "AGE_DEFAULTED"
    DB_ERROR = "DB_ERROR"
    UNREPRESENTABLE_VALUE = "UNREPRESENTABLE_VALUE"
    UNEXPECTED_ERROR = "UNEXPECTED_ERROR"

    def http_status(self) -> int:
        """
        Назначение:
            Подбор HTTP-статуса по коду ошибки.
        """
        if self is ErrorCode.CSV_NOT_FOUND:
            return 404
        if self in (ErrorCode.CSV_EMPTY, ErrorCode.HEADER_PATH_CONFLICT, ErrorCode.UNREPRESENTABLE_VALUE):
            return 400
        return 500

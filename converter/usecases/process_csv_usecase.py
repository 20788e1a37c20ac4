from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass, field
from typing import Any

from converter.domain.error_codes import ErrorCode
from converter.domain.exceptions import HeaderPathConflictError, InvalidAgeError
from converter.domain.models import DiagnosticItem, DiagnosticStage
from converter.domain.parsing.document import DocumentParser, FieldCountPolicy
from converter.domain.reporting.collector import ReportCollector
from converter.domain.users.projection import AGE_KEY, age_defaulted, to_user_row
from converter.errors import AppError
from converter.infra.db.users_repository import SqliteUsersRepository
from converter.infra.logging.setup import logEvent
from converter.infra.sources.csv_source import CsvSource


@dataclass
class ProcessCsvResult:
    """
    Назначение:
        Итог загрузки CSV в БД.

    Поля:
        records_inserted: сколько записей сохранено
        total_lines: число строк данных (без заголовка и пустых строк)
        errors: [{"line": int, "error": str}] в порядке номеров строк
        rows_skipped: строки, отброшенные молча (политика SKIP)
    """

    records_inserted: int = 0
    total_lines: int = 0
    errors: list[dict[str, Any]] = field(default_factory=list)
    rows_skipped: int = 0

    @property
    def exit_code(self) -> int:
        return 1 if self.errors else 0

    def to_response(self) -> dict[str, Any]:
        body: dict[str, Any] = {
            "message": "CSV processing completed",
            "recordsInserted": self.records_inserted,
            "totalLines": self.total_lines,
        }
        if self.rows_skipped:
            body["rowsSkipped"] = self.rows_skipped
        if self.errors:
            body["errors"] = self.errors
        return body


class ProcessCsvUseCase:
    """
    Назначение/ответственность:
        Use-case загрузки CSV: разбор документа -> проекция в users -> вставка в одной транзакции.

    Инварианты/гарантии:
        - Ошибка проекции или вставки одной записи откатывает только её (savepoint),
          остальные сохраняются.
        - Каждая отброшенная или не сохранённая строка попадает в errors с номером строки.
    """

    def __init__(
        self,
        repository: SqliteUsersRepository,
        parser: DocumentParser | None = None,
        progress_every: int = 1000,
    ) -> None:
        self.repository = repository
        self.parser = parser or DocumentParser(on_field_count_mismatch=FieldCountPolicy.COLLECT_ERROR)
        self.progress_every = progress_every

    def run(
        self,
        source: CsvSource,
        logger: logging.Logger,
        run_id: str,
        report: ReportCollector | None = None,
    ) -> ProcessCsvResult:
        logEvent(logger, logging.INFO, run_id, "csv", f"Reading CSV: {source.resolved_path()}")
        text = source.read_text()

        try:
            parsed = self.parser.parse(text)
        except HeaderPathConflictError as exc:
            raise AppError(
                category="input",
                code=exc.code,
                message=str(exc),
                details={"path": exc.path, "prefix": exc.prefix},
            ) from exc

        result = ProcessCsvResult(total_lines=parsed.rows_total)
        if parsed.failures:
            for failure in parsed.failures:
                self._reject(result, report, failure.line_no, failure.diagnostic())
            logEvent(
                logger,
                logging.WARNING,
                run_id,
                "csv",
                f"Malformed rows: {len(parsed.failures)} of {parsed.rows_total}",
            )
        else:
            result.rows_skipped = parsed.rows_dropped

        transform_failed = 0
        store_failed = 0
        with self.repository.transaction():
            for record, line_no in zip(parsed.records, parsed.record_line_nos):
                try:
                    row = to_user_row(record)
                except InvalidAgeError as exc:
                    transform_failed += 1
                    logEvent(logger, logging.WARNING, run_id, "transform", f"Line {line_no}: {exc}")
                    self._reject(
                        result,
                        report,
                        line_no,
                        DiagnosticItem(stage=DiagnosticStage.TRANSFORM, code=exc.code.value, message=str(exc)),
                        payload=record,
                    )
                    continue

                try:
                    with self.repository.savepoint():
                        self.repository.insert(row)
                except (sqlite3.Error, OverflowError) as exc:
                    store_failed += 1
                    logEvent(logger, logging.WARNING, run_id, "db", f"Insert failed at line {line_no}: {exc}")
                    self._reject(
                        result,
                        report,
                        line_no,
                        DiagnosticItem(stage=DiagnosticStage.STORE, code=ErrorCode.DB_ERROR.value, message=str(exc)),
                        payload=record,
                    )
                    continue

                result.records_inserted += 1
                if report is not None:
                    report.add_row_ok(line_no, warnings=self._warnings(record))
                if self.progress_every > 0 and result.records_inserted % self.progress_every == 0:
                    logEvent(logger, logging.INFO, run_id, "db", f"Inserted {result.records_inserted} records...")

        result.errors.sort(key=lambda e: e["line"])

        if report is not None:
            projected = len(parsed.records) - transform_failed
            report.add_op("transform", ok=projected, failed=transform_failed, count=len(parsed.records))
            report.add_op("insert", ok=result.records_inserted, failed=store_failed, count=projected)
            report.set_context(
                "parse",
                {
                    "headers": parsed.headers,
                    "rows_total": parsed.rows_total,
                    "rows_malformed": len(parsed.failures),
                    "rows_skipped": result.rows_skipped,
                    "on_field_count_mismatch": self.parser.on_field_count_mismatch.value,
                    "path_conflict": self.parser.assembler.policy.value,
                },
            )

        logEvent(
            logger,
            logging.INFO,
            run_id,
            "db",
            f"Successfully inserted {result.records_inserted} records ({len(result.errors)} errors)",
        )
        return result

    @staticmethod
    def _warnings(record: dict[str, Any]) -> list[DiagnosticItem]:
        if not age_defaulted(record):
            return []
        return [
            DiagnosticItem(
                stage=DiagnosticStage.TRANSFORM,
                code=ErrorCode.AGE_DEFAULTED.value,
                message=f"Age {record.get(AGE_KEY)!r} is not a number, stored as 0",
            )
        ]

    @staticmethod
    def _reject(
        result: ProcessCsvResult,
        report: ReportCollector | None,
        line_no: int,
        diagnostic: DiagnosticItem,
        payload: dict[str, Any] | None = None,
    ) -> None:
        result.errors.append({"line": line_no, "error": diagnostic.message})
        if report is not None:
            report.add_row_failed(line_no, diagnostic, payload=payload)

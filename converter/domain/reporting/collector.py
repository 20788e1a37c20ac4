from __future__ import annotations

from typing import Any, Iterable, Mapping

from converter import __version__
from converter.common.time import getNowIso
from converter.domain.models import DiagnosticItem, Severity
from converter.domain.reporting.models import (
    ReportMeta,
    ReportSummary,
    RowDiagnostic,
    RowEntry,
    RunReport,
    StageCounters,
)

ROW_OK = "OK"
ROW_FAILED = "FAILED"

RUN_SUCCESS = "SUCCESS"
RUN_PARTIAL = "PARTIAL"
RUN_FAILED = "FAILED"


class ReportCollector:
    """
    Назначение/ответственность:
        Накопление отчёта о запуске команды по строкам входного CSV.

    Поведение:
        - Каждая строка учитывается один раз: add_row_ok или add_row_failed.
        - В rows попадают только отброшенные строки и строки с предупреждениями,
          не больше rows_limit (дальше выставляется rows_truncated).
        - Итоговый статус: SUCCESS без ошибок, PARTIAL если есть и ошибки,
          и сохранённые строки, иначе FAILED.
    """

    def __init__(self, run_id: str, command: str, started_at: str | None = None) -> None:
        self.meta = ReportMeta(
            run_id=run_id,
            command=command,
            started_at=started_at or getNowIso(),
            app_version=__version__,
        )
        self.summary = ReportSummary()
        self.rows: list[RowEntry] = []
        self.context: dict[str, Any] = {}
        self.status: str | None = None

    def set_meta(self, *, csv_path: str | None = None, rows_limit: int | None = None) -> None:
        if csv_path is not None:
            self.meta.csv_path = csv_path
        if rows_limit is not None:
            self.meta.rows_limit = rows_limit

    def set_context(self, name: str, value: dict[str, Any]) -> None:
        self.context[name] = value

    def add_op(self, name: str, *, ok: int = 0, failed: int = 0, count: int = 0) -> None:
        entry = self.summary.ops.setdefault(name, {"ok": 0, "failed": 0, "count": 0})
        entry["ok"] += ok
        entry["failed"] += failed
        entry["count"] += count

    def add_row_ok(self, line_no: int, warnings: Iterable[DiagnosticItem] = ()) -> None:
        diagnostics = [self._diagnostic(Severity.WARNING, item) for item in warnings]
        self.summary.rows_total += 1
        self.summary.rows_ok += 1
        if diagnostics:
            self._keep(RowEntry(line_no=line_no, status=ROW_OK, diagnostics=diagnostics))

    def add_row_failed(
        self,
        line_no: int,
        error: DiagnosticItem,
        payload: Mapping[str, Any] | None = None,
    ) -> None:
        self.summary.rows_total += 1
        self.summary.rows_failed += 1
        self._keep(
            RowEntry(
                line_no=line_no,
                status=ROW_FAILED,
                diagnostics=[self._diagnostic(Severity.ERROR, error)],
                payload=payload,
            )
        )

    def fail(self, error: dict[str, Any]) -> None:
        """
        Назначение:
            Команда прервана до обработки строк (файл не найден, конфликт заголовков).
        """
        self.context["error"] = error
        self.status = RUN_FAILED

    def finish(self, finished_at: str | None = None, duration_ms: int | None = None) -> None:
        self.meta.finished_at = finished_at or getNowIso()
        self.meta.duration_ms = duration_ms
        if self.status is None:
            self.status = self._derive_status()

    def build(self) -> RunReport:
        return RunReport(
            status=self.status or self._derive_status(),
            meta=self.meta,
            summary=self.summary,
            rows=self.rows,
            context=self.context,
        )

    def _diagnostic(self, severity: Severity, item: DiagnosticItem) -> RowDiagnostic:
        counters = self.summary.by_stage.setdefault(item.stage.value, StageCounters())
        if severity is Severity.ERROR:
            counters.errors += 1
            self.summary.errors_total += 1
        else:
            counters.warnings += 1
            self.summary.warnings_total += 1
        return RowDiagnostic(severity=severity, stage=item.stage, code=item.code, message=item.message)

    def _keep(self, entry: RowEntry) -> None:
        limit = self.meta.rows_limit
        if limit is not None and len(self.rows) >= limit:
            self.meta.rows_truncated = True
            return
        self.rows.append(entry)

    def _derive_status(self) -> str:
        if self.summary.errors_total == 0:
            return RUN_SUCCESS
        if self.summary.rows_ok > 0:
            return RUN_PARTIAL
        return RUN_FAILED

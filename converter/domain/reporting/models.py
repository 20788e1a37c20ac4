from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Mapping

from converter.domain.models import DiagnosticStage, Severity


@dataclass
class ReportMeta:
    run_id: str
    command: str
    started_at: str
    csv_path: str | None = None
    finished_at: str | None = None
    duration_ms: int | None = None
    rows_limit: int | None = None
    rows_truncated: bool = False
    app_version: str | None = None


@dataclass
class StageCounters:
    errors: int = 0
    warnings: int = 0


@dataclass
class ReportSummary:
    """
    Назначение:
        Счётчики по строкам входного CSV.

    Поля:
        rows_total: строки данных, дошедшие до отчёта
        rows_ok: строки, разобранные (parse) или сохранённые (process-csv)
        rows_failed: строки, отброшенные на любом этапе
        by_stage: ошибки/предупреждения по этапам PARSE|TRANSFORM|STORE
        ops: агрегаты операций, например {"insert": {"ok", "failed", "count"}}
    """

    rows_total: int = 0
    rows_ok: int = 0
    rows_failed: int = 0
    errors_total: int = 0
    warnings_total: int = 0
    by_stage: dict[str, StageCounters] = field(default_factory=dict)
    ops: dict[str, dict[str, int]] = field(default_factory=dict)


@dataclass(frozen=True)
class RowDiagnostic:
    severity: Severity
    stage: DiagnosticStage
    code: str
    message: str


@dataclass
class RowEntry:
    """
    Назначение:
        Строка CSV, попавшая в отчёт: отброшенная или сохранённая с предупреждениями.
    """

    line_no: int
    status: str
    diagnostics: list[RowDiagnostic] = field(default_factory=list)
    payload: Mapping[str, Any] | None = None


@dataclass
class RunReport:
    status: str
    meta: ReportMeta
    summary: ReportSummary
    rows: list[RowEntry]
    context: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status,
            "meta": asdict(self.meta),
            "summary": asdict(self.summary),
            "rows": [
                {
                    "line_no": row.line_no,
                    "status": row.status,
                    "diagnostics": [
                        {
                            "severity": diag.severity.value,
                            "stage": diag.stage.value,
                            "code": diag.code,
                            "message": diag.message,
                        }
                        for diag in row.diagnostics
                    ],
                    "payload": row.payload,
                }
                for row in self.rows
            ],
            "context": self.context,
        }

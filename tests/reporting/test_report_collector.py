from converter.domain.models import DiagnosticItem, DiagnosticStage
from converter.domain.reporting.collector import ReportCollector


def _parse_error(message="Invalid column count: expected 2, got 1"):
    return DiagnosticItem(stage=DiagnosticStage.PARSE, code="FIELD_COUNT_MISMATCH", message=message)


def _age_warning():
    return DiagnosticItem(stage=DiagnosticStage.TRANSFORM, code="AGE_DEFAULTED", message="stored as 0")


def test_clean_run_is_success_and_keeps_no_rows():
    report = ReportCollector(run_id="r1", command="process-csv")
    report.add_row_ok(2)
    report.add_row_ok(3)
    report.finish(duration_ms=5)

    data = report.build().to_dict()
    assert data["status"] == "SUCCESS"
    assert data["summary"]["rows_total"] == 2
    assert data["rows"] == []
    assert data["meta"]["duration_ms"] == 5


def test_warnings_do_not_change_success():
    report = ReportCollector(run_id="r1", command="process-csv")
    report.add_row_ok(2, warnings=[_age_warning()])
    data = report.build().to_dict()
    assert data["status"] == "SUCCESS"
    assert data["summary"]["by_stage"] == {"TRANSFORM": {"errors": 0, "warnings": 1}}
    assert data["rows"][0]["diagnostics"][0]["severity"] == "warning"


def test_status_partial_and_failed():
    partial = ReportCollector(run_id="r1", command="parse")
    partial.add_row_ok(2)
    partial.add_row_failed(3, _parse_error())
    assert partial.build().status == "PARTIAL"

    failed = ReportCollector(run_id="r1", command="parse")
    failed.add_row_failed(2, _parse_error())
    assert failed.build().status == "FAILED"


def test_rows_limit_sets_truncated_flag():
    report = ReportCollector(run_id="r1", command="process-csv")
    report.set_meta(csv_path="users.csv", rows_limit=2)
    for line_no in range(2, 6):
        report.add_row_failed(line_no, _parse_error())

    data = report.build().to_dict()
    assert [row["line_no"] for row in data["rows"]] == [2, 3]
    assert data["meta"]["rows_truncated"] is True
    assert data["summary"]["errors_total"] == 4
    assert data["meta"]["csv_path"] == "users.csv"


def test_fail_overrides_derived_status():
    report = ReportCollector(run_id="r1", command="process-csv")
    report.fail({"code": "CSV_NOT_FOUND", "message": "missing"})
    report.finish()
    data = report.build().to_dict()
    assert data["status"] == "FAILED"
    assert data["context"]["error"]["code"] == "CSV_NOT_FOUND"


def test_ops_accumulate():
    report = ReportCollector(run_id="r1", command="process-csv")
    report.add_op("insert", ok=2, failed=1, count=3)
    report.add_op("insert", ok=1, count=1)
    assert report.build().summary.ops["insert"] == {"ok": 3, "failed": 1, "count": 4}

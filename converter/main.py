from __future__ import annotations

import json
import logging
import sqlite3
import sys
import time
from pathlib import Path

import typer

from converter.config import Settings, loadSettings, parse_conflict_policy, parse_mismatch_policy
from converter.common.run_id import generate_run_id
from converter.common.time import getDurationMs
from converter.domain.age_distribution import format_age_distribution
from converter.domain.exceptions import HeaderPathConflictError, UnrepresentableValueError
from converter.domain.parsing.document import DocumentParser
from converter.errors import AppError
from converter.infra.artifacts.report_writer import createEmptyReport, finalizeReport, writeReportJson
from converter.infra.db.session import openUsersRepository
from converter.infra.logging.setup import StdStreamToLogger, TeeStream, closeLogger, createCommandLogger, logEvent
from converter.infra.sources.csv_source import CsvSource
from converter.usecases.age_distribution_usecase import AgeDistributionUseCase
from converter.usecases.db_maintenance_usecase import DbMaintenanceUseCase
from converter.usecases.process_csv_usecase import ProcessCsvUseCase
from converter.usecases.users_usecase import UsersUseCase

app = typer.Typer(no_args_is_help=True, add_completion=False)
dbApp = typer.Typer(no_args_is_help=True)

def ensureDir(path: str) -> None:
    """
    Назначение:
        Создаёт каталог, если он отсутствует.
    """
    Path(path).mkdir(parents=True, exist_ok=True)

def printRunHeader(runId: str, command: str, settings: Settings, sources: list[str]) -> None:
    """
    Назначение:
        Печатает сводку параметров запуска.
    """
    typer.echo(
        f"run_id={runId} command={command} "
        f"db_path={settings.db_path} csv_file_path={settings.csv_file_path} "
        f"on_mismatch={settings.on_field_count_mismatch.value} path_conflict={settings.path_conflict.value} "
        f"sources={sources} log_level={settings.log_level}"
    )

def writeOutput(text: str, outputPath: str | None) -> None:
    """
    Назначение:
        Пишет результат команды в файл (если задан --output) или в stdout.
    """
    if outputPath:
        target = Path(outputPath)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(text, encoding="utf-8")
        typer.echo(f"Written: {target}")
        return
    typer.echo(text)

def buildDocumentParser(
    settings: Settings,
    onMismatch: str | None,
    pathConflict: str | None,
) -> DocumentParser:
    """
    Назначение:
        Собирает DocumentParser из настроек с учётом опций конкретной команды.

    Поведение:
        - Неизвестное значение политики -> ValueError.
    """
    mismatch = parse_mismatch_policy(onMismatch) if onMismatch is not None else settings.on_field_count_mismatch
    conflict = parse_conflict_policy(pathConflict) if pathConflict is not None else settings.path_conflict
    return DocumentParser(
        on_field_count_mismatch=mismatch,
        path_conflict=conflict,
        delimiter=settings.csv_delimiter,
    )

def runWithReport(
    ctx: typer.Context,
    commandName: str,
    csvPath: str | None,
    runner,
) -> None:
    """
    Назначение:
        Унифицированная обвязка выполнения команд:
        - создаёт логгер + файл лога
        - создаёт report.json skeleton
        - перенаправляет stdout/stderr в лог (tee)
        - гарантирует запись отчёта в finally

    Входные данные:
        ctx: typer.Context
        commandName: str
        csvPath: str | None
        runner: callable(logger, report) -> int
            Возвращает exit code команды.
    """
    runId = ctx.obj["runId"]
    settings: Settings = ctx.obj["settings"]
    sources = ctx.obj["sources"]

    startMonotonic = time.monotonic()

    logger, logFilePath = createCommandLogger(
        commandName=commandName,
        logDir=settings.log_dir,
        runId=runId,
        logLevel=settings.log_level,
    )

    report = createEmptyReport(runId=runId, command=commandName, configSources=sources)
    report.set_meta(csv_path=csvPath, rows_limit=settings.report_items_limit)

    originalStdout = sys.stdout
    originalStderr = sys.stderr

    stdoutLoggerStream = StdStreamToLogger(logger, logging.INFO, runId, "stdout")
    stderrLoggerStream = StdStreamToLogger(logger, logging.ERROR, runId, "stderr")

    sys.stdout = TeeStream(originalStdout, stdoutLoggerStream)
    sys.stderr = TeeStream(originalStderr, stderrLoggerStream)

    exitCode: int | None = None

    try:
        logEvent(logger, logging.INFO, runId, "core", "Command started")
        printRunHeader(runId, commandName, settings, sources)
        exitCode = runner(logger, report)
    finally:
        sys.stdout.flush()
        sys.stderr.flush()
        durationMs = getDurationMs(startMonotonic, time.monotonic())
        finalizeReport(
            report=report,
            durationMs=durationMs,
            logFile=logFilePath,
            dbPath=settings.db_path,
            reportDir=settings.report_dir,
        )
        reportPath = writeReportJson(report, settings.report_dir, f"report_{commandName}_{runId}")
        logEvent(logger, logging.INFO, runId, "report", f"Report written: {reportPath}")

        sys.stdout = originalStdout
        sys.stderr = originalStderr
        closeLogger(logger)

    if exitCode:
        raise typer.Exit(code=exitCode)

def reportAppError(logger: logging.Logger, runId: str, report, component: str, exc: AppError) -> int:
    logEvent(logger, logging.ERROR, runId, component, f"{exc.code.value}: {exc.message}")
    report.fail(exc.to_dict())
    typer.echo(f"ERROR: {exc.message}", err=True)
    return 2

def runParseCommand(
    ctx: typer.Context,
    csvPath: str | None,
    onMismatch: str | None,
    pathConflict: str | None,
    outputPath: str | None,
) -> None:
    settings: Settings = ctx.obj["settings"]
    runId = ctx.obj["runId"]
    csv_path = csvPath or settings.csv_file_path

    def execute(logger, report) -> int:
        if not csv_path:
            typer.echo("ERROR: --csv is required", err=True)
            return 2
        try:
            parser = buildDocumentParser(settings, onMismatch, pathConflict)
            text = CsvSource(csv_path, require_data=False).read_text()
            parsed = parser.parse(text)
        except AppError as exc:
            return reportAppError(logger, runId, report, "csv", exc)
        except HeaderPathConflictError as exc:
            logEvent(logger, logging.ERROR, runId, "csv", str(exc))
            report.fail({"code": exc.code.value, "message": str(exc), "path": exc.path, "prefix": exc.prefix})
            typer.echo(f"ERROR: {exc}", err=True)
            return 2
        except ValueError as exc:
            typer.echo(f"ERROR: {exc}", err=True)
            return 2

        for lineNo in parsed.record_line_nos:
            report.add_row_ok(lineNo)
        for failure in parsed.failures:
            report.add_row_failed(failure.line_no, failure.diagnostic())
        report.set_context(
            "parse",
            {"headers": parsed.headers, "rows_total": parsed.rows_total, "rows_skipped": parsed.rows_dropped - len(parsed.failures)},
        )

        writeOutput(json.dumps(parsed.records, ensure_ascii=False, indent=2), outputPath)
        for failure in parsed.failures:
            typer.echo(f"line {failure.line_no}: {failure.reason}", err=True)
        logEvent(
            logger,
            logging.INFO,
            runId,
            "csv",
            f"Parsed {len(parsed.records)} records from {parsed.rows_total} rows",
        )
        return 1 if parsed.failures else 0

    runWithReport(ctx=ctx, commandName="parse", csvPath=csv_path, runner=execute)

def runProcessCsvCommand(
    ctx: typer.Context,
    csvPath: str | None,
    onMismatch: str | None,
    pathConflict: str | None,
) -> None:
    settings: Settings = ctx.obj["settings"]
    runId = ctx.obj["runId"]
    csv_path = csvPath or settings.csv_file_path

    def execute(logger, report) -> int:
        if not csv_path:
            typer.echo("ERROR: --csv is required (or set csv_file_path)", err=True)
            return 2
        try:
            parser = buildDocumentParser(settings, onMismatch, pathConflict)
        except ValueError as exc:
            typer.echo(f"ERROR: {exc}", err=True)
            return 2

        try:
            with openUsersRepository(settings.db_path) as repository:
                usecase = ProcessCsvUseCase(
                    repository,
                    parser=parser,
                    progress_every=settings.insert_progress_every,
                )
                result = usecase.run(CsvSource(csv_path), logger=logger, run_id=runId, report=report)
        except AppError as exc:
            return reportAppError(logger, runId, report, "csv", exc)
        except (sqlite3.Error, OSError) as exc:
            logEvent(logger, logging.ERROR, runId, "db", f"Process CSV failed: {exc}")
            typer.echo(f"ERROR: process-csv failed: {exc}", err=True)
            return 2

        typer.echo(
            f"records_inserted={result.records_inserted} total_lines={result.total_lines} "
            f"errors={len(result.errors)} rows_skipped={result.rows_skipped}"
        )
        for error in result.errors:
            typer.echo(f"line {error['line']}: {error['error']}", err=True)
        return result.exit_code

    runWithReport(ctx=ctx, commandName="process-csv", csvPath=csv_path, runner=execute)

def runUsersCommand(ctx: typer.Context, outputPath: str | None) -> None:
    settings: Settings = ctx.obj["settings"]
    runId = ctx.obj["runId"]

    def execute(logger, report) -> int:
        try:
            with openUsersRepository(settings.db_path) as repository:
                documents = UsersUseCase(repository).list_documents()
        except sqlite3.Error as exc:
            logEvent(logger, logging.ERROR, runId, "db", f"Failed to read users: {exc}")
            typer.echo("ERROR: failed to read users (see logs/report)", err=True)
            return 2
        report.add_op("users", count=len(documents))
        writeOutput(json.dumps(documents, ensure_ascii=False, indent=2), outputPath)
        return 0

    runWithReport(ctx=ctx, commandName="users", csvPath=None, runner=execute)

def runExportCsvCommand(ctx: typer.Context, outputPath: str | None) -> None:
    settings: Settings = ctx.obj["settings"]
    runId = ctx.obj["runId"]

    def execute(logger, report) -> int:
        try:
            with openUsersRepository(settings.db_path) as repository:
                text = UsersUseCase(repository).export_csv(delimiter=settings.csv_delimiter)
        except sqlite3.Error as exc:
            logEvent(logger, logging.ERROR, runId, "db", f"Failed to read users: {exc}")
            typer.echo("ERROR: failed to read users (see logs/report)", err=True)
            return 2
        except UnrepresentableValueError as exc:
            logEvent(logger, logging.ERROR, runId, "csv", str(exc))
            typer.echo(f"ERROR: {exc}", err=True)
            return 2
        writeOutput(text, outputPath)
        return 0

    runWithReport(ctx=ctx, commandName="export-csv", csvPath=None, runner=execute)

def runAgeDistributionCommand(ctx: typer.Context) -> None:
    settings: Settings = ctx.obj["settings"]
    runId = ctx.obj["runId"]

    def execute(logger, report) -> int:
        try:
            with openUsersRepository(settings.db_path) as repository:
                distribution = AgeDistributionUseCase(repository).run()
        except sqlite3.Error as exc:
            logEvent(logger, logging.ERROR, runId, "db", f"Failed to compute age distribution: {exc}")
            typer.echo("ERROR: failed to compute age distribution (see logs/report)", err=True)
            return 2
        report.set_context("age_distribution", distribution.to_dict())
        typer.echo(format_age_distribution(distribution))
        return 0

    runWithReport(ctx=ctx, commandName="age-distribution", csvPath=None, runner=execute)

def runDbStatusCommand(ctx: typer.Context) -> None:
    settings: Settings = ctx.obj["settings"]
    runId = ctx.obj["runId"]

    def execute(logger, report) -> int:
        try:
            with openUsersRepository(settings.db_path) as repository:
                status = DbMaintenanceUseCase(repository).status()
        except sqlite3.Error as exc:
            logEvent(logger, logging.ERROR, runId, "db", f"Failed to open DB: {exc}")
            typer.echo("ERROR: failed to open DB (see logs/report)", err=True)
            return 2
        report.set_context("db", status)
        typer.echo("schema_version={schema_version} users={users}".format(**status))
        return 0

    runWithReport(ctx=ctx, commandName="db-status", csvPath=None, runner=execute)

def runDbClearCommand(ctx: typer.Context) -> None:
    settings: Settings = ctx.obj["settings"]
    runId = ctx.obj["runId"]

    def execute(logger, report) -> int:
        try:
            with openUsersRepository(settings.db_path) as repository:
                removed = DbMaintenanceUseCase(repository).clear(logger, runId)
        except sqlite3.Error as exc:
            logEvent(logger, logging.ERROR, runId, "db", f"DB clear failed: {exc}")
            typer.echo("ERROR: db clear failed (see logs/report)", err=True)
            return 2
        report.add_op("clear", ok=removed, count=removed)
        typer.echo(f"removed={removed}")
        return 0

    runWithReport(ctx=ctx, commandName="db-clear", csvPath=None, runner=execute)

@app.callback()
def main(
    ctx: typer.Context,
    config: str | None = typer.Option(None, "--config", help="Path to config.yml"),
    envFile: str | None = typer.Option(None, "--env-file", help="Path to .env file (default: ./.env if present)"),
    runId: str | None = typer.Option(None, "--run-id", help="Run identifier (UUID). If omitted, generated."),
    logLevel: str | None = typer.Option(None, "--log-level", help="Log level: ERROR|WARN|INFO|DEBUG"),
    logDir: str | None = typer.Option(None, "--log-dir", help="Directory for logs."),
    reportDir: str | None = typer.Option(None, "--report-dir", help="Directory for reports."),
    dbPath: str | None = typer.Option(None, "--db-path", help="SQLite database file."),
    csvDelimiter: str | None = typer.Option(None, "--csv-delimiter", help="CSV field delimiter"),
):
    """
    Назначение:
        Глобальная инициализация CLI:
        - генерирует/принимает run_id
        - загружает настройки (CLI > ENV > config > defaults)
        - создаёт каталоги log/report
        - сохраняет всё в ctx.obj для подкоманд
    """
    if not runId:
        runId = generate_run_id()

    cliOverrides = {
        "log_level": logLevel,
        "log_dir": logDir,
        "report_dir": reportDir,
        "db_path": dbPath,
        "csv_delimiter": csvDelimiter,
    }
    try:
        loaded = loadSettings(config_path=config, cli_overrides=cliOverrides, env_file=envFile)
    except ValueError as exc:
        typer.echo(f"ERROR: invalid settings: {exc}", err=True)
        raise typer.Exit(code=2)

    ensureDir(loaded.settings.log_dir)
    ensureDir(loaded.settings.report_dir)

    ctx.obj = {
        "runId": runId,
        "settings": loaded.settings,
        "sources": loaded.sources_used,
        "configPath": config,
    }

@app.command("parse")
def parse(
    ctx: typer.Context,
    csv: str | None = typer.Option(None, "--csv", help="Path to input CSV"),
    onMismatch: str | None = typer.Option(None, "--on-mismatch", help="Rows with wrong field count: skip|collect"),
    pathConflict: str | None = typer.Option(None, "--path-conflict", help="Header path conflicts: overwrite|reject"),
    output: str | None = typer.Option(None, "--output", help="Write JSON to file instead of stdout"),
):
    runParseCommand(
        ctx,
        csvPath=csv,
        onMismatch=onMismatch,
        pathConflict=pathConflict,
        outputPath=output,
    )

@app.command("process-csv")
def processCsv(
    ctx: typer.Context,
    csv: str | None = typer.Option(None, "--csv", help="Path to input CSV (default: csv_file_path)"),
    onMismatch: str | None = typer.Option(None, "--on-mismatch", help="Rows with wrong field count: skip|collect"),
    pathConflict: str | None = typer.Option(None, "--path-conflict", help="Header path conflicts: overwrite|reject"),
):
    runProcessCsvCommand(ctx, csvPath=csv, onMismatch=onMismatch, pathConflict=pathConflict)

@app.command("users")
def users(
    ctx: typer.Context,
    output: str | None = typer.Option(None, "--output", help="Write JSON to file instead of stdout"),
):
    runUsersCommand(ctx, outputPath=output)

@app.command("export-csv")
def exportCsv(
    ctx: typer.Context,
    output: str | None = typer.Option(None, "--output", help="Write CSV to file instead of stdout"),
):
    runExportCsvCommand(ctx, outputPath=output)

@app.command("age-distribution")
def ageDistribution(ctx: typer.Context):
    runAgeDistributionCommand(ctx)

@app.command("serve")
def serve(
    ctx: typer.Context,
    host: str | None = typer.Option(None, "--host", help="Bind host (default: api_host)"),
    port: int | None = typer.Option(None, "--port", help="Bind port (default: api_port)"),
):
    import uvicorn

    from converter.api.app import create_app

    settings: Settings = ctx.obj["settings"]
    uvicorn.run(
        create_app(settings, run_id=ctx.obj["runId"]),
        host=host or settings.api_host,
        port=port or settings.api_port,
    )

@dbApp.command("status")
def dbStatus(ctx: typer.Context):
    runDbStatusCommand(ctx)

@dbApp.command("clear")
def dbClear(ctx: typer.Context):
    runDbClearCommand(ctx)

app.add_typer(dbApp, name="db")

from __future__ import annotations

import logging
import sqlite3
from contextlib import asynccontextmanager
from typing import Iterator

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse

from converter.common.run_id import generate_run_id
from converter.config import Settings
from converter.domain.parsing.document import DocumentParser
from converter.errors import AppError
from converter.infra.db.session import openUsersRepository
from converter.infra.db.users_repository import SqliteUsersRepository
from converter.infra.logging.setup import createServiceLogger, logEvent
from converter.infra.sources.csv_source import CsvSource
from converter.usecases.age_distribution_usecase import AgeDistributionUseCase
from converter.usecases.process_csv_usecase import ProcessCsvUseCase
from converter.usecases.users_usecase import UsersUseCase

ENDPOINTS = {
    "GET /users": "Get all users as JSON from database",
    "POST /process-csv": "Process CSV file and save to database",
    "GET /age-distribution": "Get age distribution of users",
}


def _internal_error(details: str) -> JSONResponse:
    return JSONResponse(status_code=500, content={"error": "Internal server error", "details": details})


def create_app(settings: Settings, run_id: str | None = None) -> FastAPI:
    """
    Назначение:
        Сборка HTTP API поверх тех же use-case, что и CLI.

    Поведение:
        - На каждый запрос открывается своё соединение SQLite (закрывается по завершении запроса).
        - lifespan: при старте гарантирует схему БД, при остановке пишет в лог.
    """
    service_run_id = run_id or generate_run_id()
    logger = createServiceLogger("api", service_run_id, settings.log_level, settings.log_dir)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        with openUsersRepository(settings.db_path):
            pass
        logEvent(logger, logging.INFO, service_run_id, "api", f"Database ready: {settings.db_path}")
        logEvent(logger, logging.INFO, service_run_id, "api", f"CSV file path: {settings.csv_file_path}")
        yield
        logEvent(logger, logging.INFO, service_run_id, "api", "Shutting down: closing HTTP server")

    app = FastAPI(title="CSV to JSON Converter API", lifespan=lifespan)
    app.state.settings = settings
    app.state.logger = logger
    app.state.run_id = service_run_id

    def get_repository() -> Iterator[SqliteUsersRepository]:
        with openUsersRepository(settings.db_path) as repository:
            yield repository

    @app.exception_handler(sqlite3.Error)
    async def sqlite_error_handler(request: Request, exc: sqlite3.Error) -> JSONResponse:
        logEvent(logger, logging.ERROR, service_run_id, "db", f"{request.method} {request.url.path} failed: {exc}")
        return _internal_error(str(exc))

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logEvent(logger, logging.ERROR, service_run_id, "api", f"{request.method} {request.url.path} failed: {exc!r}")
        return _internal_error(str(exc))

    @app.get("/")
    def root():
        return {"message": "CSV to JSON Converter API", "endpoints": ENDPOINTS}

    @app.get("/users")
    def list_users(repository: SqliteUsersRepository = Depends(get_repository)):
        return UsersUseCase(repository).list_documents()

    @app.post("/process-csv")
    def process_csv(repository: SqliteUsersRepository = Depends(get_repository)):
        if not settings.csv_file_path:
            return JSONResponse(
                status_code=400,
                content={"error": "CSV file path is not configured", "message": "Set CONVERTER_CSV_FILE_PATH"},
            )
        source = CsvSource(settings.csv_file_path)
        logEvent(logger, logging.INFO, service_run_id, "api", f"Looking for CSV file at: {source.resolved_path()}")

        usecase = ProcessCsvUseCase(
            repository,
            parser=DocumentParser(
                on_field_count_mismatch=settings.on_field_count_mismatch,
                path_conflict=settings.path_conflict,
                delimiter=settings.csv_delimiter,
            ),
            progress_every=settings.insert_progress_every,
        )
        try:
            result = usecase.run(source, logger=logger, run_id=service_run_id)
        except AppError as exc:
            logEvent(logger, logging.WARNING, service_run_id, "api", f"{exc.code.value}: {exc.message}")
            content = {"error": exc.message, "code": exc.code.value}
            content.update(exc.details)
            return JSONResponse(status_code=exc.code.http_status(), content=content)
        return result.to_response()

    @app.get("/age-distribution")
    def age_distribution(repository: SqliteUsersRepository = Depends(get_repository)):
        return AgeDistributionUseCase(repository).run().to_dict()

    return app


__all__ = ["create_app"]

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
import os

import yaml
from dotenv import load_dotenv

from converter.domain.parsing.document import FieldCountPolicy
from converter.domain.parsing.line_parser import DEFAULT_QUOTE
from converter.domain.parsing.path_tree import PathConflictPolicy

ENV_PREFIX = "CONVERTER_"
DEFAULT_ENV_FILE = ".env"


@dataclass(frozen=True)
class Settings:
    # Storage
    db_path: str = "./data/users.sqlite3"

    # Paths
    log_dir: str = "./logs"
    report_dir: str = "./reports"
    log_level: str = "INFO"

    # CSV
    csv_file_path: str | None = None
    csv_delimiter: str = ","
    on_field_count_mismatch: FieldCountPolicy = FieldCountPolicy.COLLECT_ERROR
    path_conflict: PathConflictPolicy = PathConflictPolicy.OVERWRITE

    # API
    api_host: str = "127.0.0.1"
    api_port: int = 3000

    # Misc
    report_items_limit: int = 200
    insert_progress_every: int = 1000


@dataclass(frozen=True)
class LoadedSettings:
    settings: Settings
    sources_used: list[str]


_ENV_KEYS = {
    "db_path": "DB_PATH",
    "log_dir": "LOG_DIR",
    "report_dir": "REPORT_DIR",
    "log_level": "LOG_LEVEL",
    "csv_file_path": "CSV_FILE_PATH",
    "csv_delimiter": "CSV_DELIMITER",
    "on_field_count_mismatch": "ON_MISMATCH",
    "path_conflict": "PATH_CONFLICT",
    "api_host": "API_HOST",
    "api_port": "API_PORT",
    "report_items_limit": "REPORT_ITEMS_LIMIT",
    "insert_progress_every": "INSERT_PROGRESS_EVERY",
}

_INT_KEYS = ("api_port", "report_items_limit", "insert_progress_every")


def _read_yaml_config(path: Path) -> dict:
    if not path.exists():
        return {}
    if not path.is_file():
        return {}
    with path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            return {}
        return data


def _env_get(name: str) -> str | None:
    v = os.getenv(name)
    if v is None or v.strip() == "":
        return None
    return v.strip()


def _load_env_file(env_file: str | None) -> bool:
    """
    Назначение:
        Подгружает .env в окружение процесса, не перетирая уже заданные переменные.

    Выходные данные:
        bool
            True, если файл найден и прочитан.
    """
    path = Path(env_file) if env_file else Path(DEFAULT_ENV_FILE)
    if not path.is_file():
        if env_file:
            raise ValueError(f"Env file not found: {env_file}")
        return False
    return load_dotenv(path, override=False)


def parse_int(name: str, v) -> int | None:
    if v is None:
        return None
    try:
        return int(v)
    except (TypeError, ValueError):
        raise ValueError(f"Invalid integer value for {name}: {v}") from None


def parse_delimiter(v) -> str:
    value = str(v)
    if len(value) != 1 or value == DEFAULT_QUOTE:
        raise ValueError(f"Invalid csv_delimiter: {v!r} (expected a single character other than {DEFAULT_QUOTE})")
    return value


def parse_mismatch_policy(v) -> FieldCountPolicy:
    if isinstance(v, FieldCountPolicy):
        return v
    try:
        return FieldCountPolicy(str(v).strip().lower())
    except ValueError:
        allowed = "|".join(p.value for p in FieldCountPolicy)
        raise ValueError(f"Invalid on_field_count_mismatch: {v} (expected {allowed})") from None


def parse_conflict_policy(v) -> PathConflictPolicy:
    if isinstance(v, PathConflictPolicy):
        return v
    try:
        return PathConflictPolicy(str(v).strip().lower())
    except ValueError:
        allowed = "|".join(p.value for p in PathConflictPolicy)
        raise ValueError(f"Invalid path_conflict: {v} (expected {allowed})") from None


def loadSettings(
    config_path: str | None,
    cli_overrides: dict,
    env_file: str | None = None,
) -> LoadedSettings:
    """
    Priority: CLI > ENV (.env included) > config > defaults
    """
    sources: list[str] = []
    defaults = Settings()

    # 1) config file
    cfg: dict = {}
    if config_path:
        cfg = _read_yaml_config(Path(config_path))
        if cfg:
            sources.append("config")

    # 2) env (+ .env)
    if _load_env_file(env_file):
        sources.append("dotenv")
    env = {key: _env_get(ENV_PREFIX + suffix) for key, suffix in _ENV_KEYS.items()}
    if any(v is not None for v in env.values()):
        sources.append("env")

    merged = {key: cfg.get(key, getattr(defaults, key)) for key in _ENV_KEYS}

    for key, value in env.items():
        if value is not None:
            merged[key] = value

    # 3) apply CLI overrides (only those explicitly passed)
    if any(v is not None for v in cli_overrides.values()):
        sources.append("cli")

    for k, v in cli_overrides.items():
        if v is None:
            continue
        merged[k] = v

    for key in _INT_KEYS:
        merged[key] = parse_int(key, merged[key])

    settings = Settings(
        db_path=str(merged["db_path"]),
        log_dir=str(merged["log_dir"]),
        report_dir=str(merged["report_dir"]),
        log_level=str(merged["log_level"]),
        csv_file_path=merged["csv_file_path"],
        csv_delimiter=parse_delimiter(merged["csv_delimiter"]),
        on_field_count_mismatch=parse_mismatch_policy(merged["on_field_count_mismatch"]),
        path_conflict=parse_conflict_policy(merged["path_conflict"]),
        api_host=str(merged["api_host"]),
        api_port=merged["api_port"],
        report_items_limit=merged["report_items_limit"],
        insert_progress_every=merged["insert_progress_every"],
    )

    return LoadedSettings(settings=settings, sources_used=sources)

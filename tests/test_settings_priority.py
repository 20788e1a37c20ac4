import pytest
from typer.testing import CliRunner

from converter.config import loadSettings
from converter.domain.parsing.document import FieldCountPolicy
from converter.domain.parsing.path_tree import PathConflictPolicy
from converter.main import app

runner = CliRunner()


@pytest.fixture(autouse=True)
def _isolated_env(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    for suffix in ("DB_PATH", "LOG_LEVEL", "ON_MISMATCH", "PATH_CONFLICT", "API_PORT", "CSV_DELIMITER"):
        monkeypatch.delenv(f"CONVERTER_{suffix}", raising=False)


def test_defaults():
    loaded = loadSettings(config_path=None, cli_overrides={})
    assert loaded.settings.db_path == "./data/users.sqlite3"
    assert loaded.settings.on_field_count_mismatch is FieldCountPolicy.COLLECT_ERROR
    assert loaded.settings.path_conflict is PathConflictPolicy.OVERWRITE
    assert loaded.settings.api_port == 3000
    assert loaded.sources_used == []


def test_priority_cli_over_env_over_config(tmp_path, monkeypatch):
    cfg = tmp_path / "config.yml"
    cfg.write_text(
        "\n".join([
            'db_path: "cfg.sqlite3"',
            "api_port: 1111",
            "on_field_count_mismatch: skip",
            "path_conflict: reject",
        ]),
        encoding="utf-8",
    )

    # ENV overrides config
    monkeypatch.setenv("CONVERTER_DB_PATH", "env.sqlite3")
    monkeypatch.setenv("CONVERTER_API_PORT", "2222")

    # CLI overrides env
    loaded = loadSettings(config_path=str(cfg), cli_overrides={"db_path": "cli.sqlite3"})

    assert loaded.settings.db_path == "cli.sqlite3"
    assert loaded.settings.api_port == 2222
    assert loaded.settings.on_field_count_mismatch is FieldCountPolicy.SKIP
    assert loaded.settings.path_conflict is PathConflictPolicy.REJECT
    assert loaded.sources_used == ["config", "env", "cli"]


def test_env_file_is_loaded_without_overriding_process_env(tmp_path, monkeypatch):
    env_file = tmp_path / "custom.env"
    env_file.write_text("CONVERTER_API_PORT=4444\nCONVERTER_LOG_LEVEL=DEBUG\n", encoding="utf-8")
    monkeypatch.setenv("CONVERTER_LOG_LEVEL", "ERROR")
    # registers the variable with monkeypatch so the value set by the file is undone
    monkeypatch.setenv("CONVERTER_API_PORT", "x")
    monkeypatch.delenv("CONVERTER_API_PORT")

    loaded = loadSettings(config_path=None, cli_overrides={}, env_file=str(env_file))

    assert loaded.settings.api_port == 4444
    assert loaded.settings.log_level == "ERROR"
    assert "dotenv" in loaded.sources_used


def test_missing_explicit_env_file_is_an_error(tmp_path):
    with pytest.raises(ValueError):
        loadSettings(config_path=None, cli_overrides={}, env_file=str(tmp_path / "nope.env"))


@pytest.mark.parametrize(
    "name, value",
    [
        ("CONVERTER_API_PORT", "eighty"),
        ("CONVERTER_ON_MISMATCH", "explode"),
        ("CONVERTER_PATH_CONFLICT", "merge"),
    ],
)
def test_invalid_values_are_rejected(monkeypatch, name, value):
    monkeypatch.setenv(name, value)
    with pytest.raises(ValueError):
        loadSettings(config_path=None, cli_overrides={})


def test_cli_exits_with_two_on_invalid_settings(monkeypatch):
    monkeypatch.setenv("CONVERTER_ON_MISMATCH", "explode")
    result = runner.invoke(app, ["db", "status"])
    assert result.exit_code == 2


@pytest.mark.parametrize("value", [";;", '"'])
def test_invalid_delimiter_is_rejected_at_load(monkeypatch, value):
    monkeypatch.setenv("CONVERTER_CSV_DELIMITER", value)
    with pytest.raises(ValueError):
        loadSettings(config_path=None, cli_overrides={})


def test_delimiter_from_config(tmp_path):
    cfg = tmp_path / "config.yml"
    cfg.write_text('csv_delimiter: ";"\n', encoding="utf-8")
    loaded = loadSettings(config_path=str(cfg), cli_overrides={})
    assert loaded.settings.csv_delimiter == ";"

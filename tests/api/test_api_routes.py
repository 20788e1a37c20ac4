from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from converter.api.app import create_app
from converter.config import Settings

SAMPLE_CSV = Path(__file__).resolve().parents[1] / "data" / "users.csv"


def _settings(tmp_path, **overrides):
    values = {
        "db_path": str(tmp_path / "users.sqlite3"),
        "log_dir": str(tmp_path / "logs"),
        "report_dir": str(tmp_path / "reports"),
        "csv_file_path": str(SAMPLE_CSV),
    }
    values.update(overrides)
    return Settings(**values)


@pytest.fixture()
def client(tmp_path):
    with TestClient(create_app(_settings(tmp_path), run_id="api-test")) as test_client:
        yield test_client


def test_root_lists_endpoints(client):
    response = client.get("/")
    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "CSV to JSON Converter API"
    assert "POST /process-csv" in body["endpoints"]


def test_users_empty_before_processing(client):
    response = client.get("/users")
    assert response.status_code == 200
    assert response.json() == []


def test_process_csv_then_read_back(client):
    response = client.post("/process-csv")
    assert response.status_code == 200
    body = response.json()
    assert body["recordsInserted"] == 3
    assert body["totalLines"] == 4
    assert body["errors"] == [{"line": 5, "error": "Invalid column count: expected 8, got 7"}]

    users = client.get("/users").json()
    assert [u["id"] for u in users] == [1, 2, 3]
    assert users[0]["name"] == "Rohit Prasad"
    assert users[0]["age"] == 35
    assert users[0]["address"]["city"] == "Pune"
    assert users[0]["additional_info"] == {"gender": "male"}


def test_age_distribution_after_processing(client):
    client.post("/process-csv")
    body = client.get("/age-distribution").json()
    assert body["total"] == 3
    assert [g["age_group"] for g in body["distribution"]] == ["< 20", "20 to 40", "40 to 60", "> 60"]
    assert [g["percentage"] for g in body["distribution"]] == ["33.33", "33.33", "33.33", "0.00"]


def test_age_distribution_empty(client):
    body = client.get("/age-distribution").json()
    assert body["total"] == 0
    assert all(g["percentage"] == "0" for g in body["distribution"])


def test_missing_csv_file_returns_404(tmp_path):
    settings = _settings(tmp_path, csv_file_path=str(tmp_path / "missing.csv"))
    with TestClient(create_app(settings)) as client:
        response = client.post("/process-csv")
    assert response.status_code == 404
    body = response.json()
    assert body["code"] == "CSV_NOT_FOUND"
    assert body["path"].endswith("missing.csv")


def test_empty_csv_file_returns_400(tmp_path):
    csv_path = tmp_path / "empty.csv"
    csv_path.write_text("name,age\n", encoding="utf-8")
    with TestClient(create_app(_settings(tmp_path, csv_file_path=str(csv_path)))) as client:
        response = client.post("/process-csv")
    assert response.status_code == 400
    assert response.json()["code"] == "CSV_EMPTY"


def test_unconfigured_csv_path_returns_400(tmp_path):
    with TestClient(create_app(_settings(tmp_path, csv_file_path=None))) as client:
        response = client.post("/process-csv")
    assert response.status_code == 400

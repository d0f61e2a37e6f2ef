from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from expo_grading.config import get_settings
from expo_grading.db.session import dispose_engine
from expo_grading.main import app


@pytest.fixture
def database_settings(monkeypatch, tmp_path):
    monkeypatch.setenv("EXPO_DATABASE_URL", f"sqlite:///{tmp_path / 'health.sqlite'}")
    monkeypatch.setenv("EXPO_PERSISTENCE_MODE", "database")
    get_settings.cache_clear()
    dispose_engine()
    yield
    dispose_engine()
    get_settings.cache_clear()


def test_health_endpoint_reports_mode() -> None:
    client = TestClient(app)
    response = client.get("/healthz")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"
    assert "persistence_mode" in response.json()


def test_database_health_endpoint_success(database_settings) -> None:
    client = TestClient(app)
    response = client.get("/healthz/database")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "persistence_mode": "database"}


def test_database_health_endpoint_failure(monkeypatch, database_settings) -> None:
    client = TestClient(app)

    def raise_runtime_error():
        raise RuntimeError("missing database url")

    monkeypatch.setattr("expo_grading.main.get_engine", raise_runtime_error)
    response = client.get("/healthz/database")
    assert response.status_code == 503
    assert response.json()["detail"] == "missing database url"

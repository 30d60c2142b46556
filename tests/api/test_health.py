"""Tests for health endpoints."""

import sqlite3
import pytest
from fastapi.testclient import TestClient

from crm_admin.api.app import create_app
from crm_admin.api.routers.health import check_database
from crm_admin.backup import BackupManager
from crm_admin.config import BackupConfig


@pytest.fixture
def sqlite_config(tmp_path):
    database_path = tmp_path / "dev.db"
    conn = sqlite3.connect(database_path)
    conn.execute("CREATE TABLE users (id INTEGER PRIMARY KEY)")
    conn.commit()
    conn.close()
    return BackupConfig(database_path=database_path, backup_dir=tmp_path / "backups")


def _client(config):
    app = create_app()
    app.state.backup_manager = BackupManager(config)
    return TestClient(app)


def test_check_database(sqlite_config, tmp_path):
    assert check_database(sqlite_config.database_path) is True
    assert check_database(tmp_path / "missing.db") is False

    not_sqlite = tmp_path / "plain.db"
    not_sqlite.write_bytes(b"this is not a database file at all, just bytes" * 4)
    assert check_database(not_sqlite) is False


def test_health_healthy(sqlite_config):
    sqlite_config.backup_dir.mkdir()

    data = _client(sqlite_config).get("/api/health").json()

    assert data["status"] == "healthy"
    assert data["database"] is True
    assert data["backup_dir"] is True


def test_health_degraded_without_backup_dir(sqlite_config):
    data = _client(sqlite_config).get("/api/health").json()

    assert data["status"] == "degraded"
    assert data["backup_dir"] is False


def test_health_unhealthy_and_not_ready(sqlite_config):
    sqlite_config.database_path.unlink()
    client = _client(sqlite_config)

    assert client.get("/api/health").json()["status"] == "unhealthy"
    assert client.get("/api/health/ready").status_code == 503


def test_liveness(sqlite_config):
    response = _client(sqlite_config).get("/api/health/live")

    assert response.status_code == 200
    assert response.json() == {"status": "alive"}

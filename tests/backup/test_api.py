"""Tests for backup API endpoints."""

import json
import shutil
import pytest
from pathlib import Path
from unittest.mock import patch
from fastapi.testclient import TestClient

from crm_admin.api.app import create_app
from crm_admin.api.auth import create_session_token
from crm_admin.backup import BackupManager

BASE = "/api/admin/backup"


@pytest.fixture
def mock_app(backup_config):
    """Create test FastAPI app backed by a temporary database and backup dir."""
    app = create_app()
    app.state.backup_manager = BackupManager(backup_config)
    return app


@pytest.fixture
def client(mock_app):
    """Create test client."""
    return TestClient(mock_app)


@pytest.fixture
def admin_headers():
    token = create_session_token("user-1", "ADMIN", email="admin@example.com", name="Admin")
    return {"Authorization": f"Bearer {token}"}


def _create(client, headers, **body):
    response = client.post(f"{BASE}/create", json=body, headers=headers)
    assert response.status_code == 200
    return response.json()


def test_list_backups_empty(client, admin_headers, backup_config):
    response = client.get(f"{BASE}/list", headers=admin_headers)

    assert response.status_code == 200
    assert response.json() == {"files": [], "count": 0}
    assert backup_config.backup_dir.is_dir()


def test_create_backup_endpoint(client, admin_headers):
    data = _create(client, admin_headers, type="manual", description="before migration")

    assert data["success"] is True
    assert data["filename"].startswith("backup_manual_")
    assert data["size"] == 1
    assert data["type"] == "manual"
    assert data["description"] == "before migration"
    assert data["created_by"] == "admin@example.com"


def test_create_backup_defaults(client, admin_headers):
    response = client.post(BASE, headers=admin_headers)

    assert response.status_code == 200
    assert response.json()["type"] == "manual"

    listing = client.get(BASE, headers=admin_headers).json()
    assert listing["count"] == 1
    assert listing["files"][0]["name"] == response.json()["filename"]


def test_create_backup_invalid_type(client, admin_headers):
    response = client.post(f"{BASE}/create", json={"type": "weekly"}, headers=admin_headers)

    assert response.status_code == 400
    assert response.json()["error"] == "validation_error"


def test_create_backup_database_missing(client, admin_headers, backup_config):
    backup_config.database_path.unlink()

    response = client.post(f"{BASE}/create", json={}, headers=admin_headers)

    assert response.status_code == 404
    assert response.json()["detail"] == "Database file not found"


def test_create_backup_is_audited(client, admin_headers):
    with patch("crm_admin.api.routers.backup.audit_service") as mock_audit:
        data = _create(client, admin_headers)

    mock_audit.log.assert_called_once()
    kwargs = mock_audit.log.call_args.kwargs
    assert kwargs["action"] == "BACKUP"
    assert kwargs["resource_id"] == data["filename"]
    assert kwargs["actor"] == "admin@example.com"


def test_list_backups_newest_first(client, admin_headers):
    first = _create(client, admin_headers, type="automatic")
    second = _create(client, admin_headers, type="manual")

    data = client.get(f"{BASE}/list", headers=admin_headers).json()

    assert data["count"] == 2
    assert [f["name"] for f in data["files"]] == [second["filename"], first["filename"]]
    assert [f["type"] for f in data["files"]] == ["manual", "automatic"]


def test_download_backup_endpoint(client, admin_headers):
    created = _create(client, admin_headers)

    response = client.get(f"{BASE}/download", params={"file": created["filename"]}, headers=admin_headers)

    assert response.status_code == 200
    assert response.content == b"A"
    assert response.headers["content-type"] == "application/octet-stream"
    assert response.headers["content-length"] == "1"
    assert response.headers["cache-control"] == "no-cache"
    assert f'filename="{created["filename"]}"' in response.headers["content-disposition"]


def test_download_backup_requires_filename(client, admin_headers):
    response = client.get(f"{BASE}/download", headers=admin_headers)

    assert response.status_code == 400
    assert response.json()["detail"] == "Filename is required"


@pytest.mark.parametrize("filename", ["../dev.db", "..\\dev.db", "backup.txt"])
def test_download_backup_invalid_filename(client, admin_headers, filename):
    response = client.get(f"{BASE}/download", params={"file": filename}, headers=admin_headers)

    assert response.status_code == 400
    assert response.json()["error"] == "validation_error"


def test_download_backup_not_found(client, admin_headers):
    response = client.get(f"{BASE}/download", params={"file": "missing.db"}, headers=admin_headers)

    assert response.status_code == 404
    assert "not found" in response.json()["detail"].lower()


def test_delete_backup_endpoint(client, admin_headers, backup_config):
    created = _create(client, admin_headers)

    response = client.request(
        "DELETE", f"{BASE}/delete", json={"filename": created["filename"]}, headers=admin_headers
    )

    assert response.status_code == 200
    data = response.json()
    assert "deleted" in data["message"].lower()
    assert data["deleted_by"] == "admin@example.com"
    assert not (backup_config.backup_dir / created["filename"]).exists()


def test_delete_backup_not_found(client, admin_headers):
    response = client.request("DELETE", f"{BASE}/delete", json={"filename": "missing.db"}, headers=admin_headers)

    assert response.status_code == 404
    assert "not found" in response.json()["detail"].lower()


def test_delete_backup_requires_filename(client, admin_headers):
    response = client.request("DELETE", f"{BASE}/delete", json={}, headers=admin_headers)

    assert response.status_code == 400
    assert response.json()["detail"] == "Filename is required"


def test_restore_backup_endpoint(client, admin_headers, backup_config):
    created = _create(client, admin_headers)
    backup_config.database_path.write_bytes(b"C")

    response = client.post(f"{BASE}/restore", json={"filename": created["filename"]}, headers=admin_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["restored_by"] == "admin@example.com"
    assert data["safety_copy"] == "dev_backup_before_restore.db"
    assert data["safety_copy_retained"] is True
    assert data["checksum_verified"] is True
    assert "dev_backup_before_restore.db" in data["note"]
    assert backup_config.database_path.read_bytes() == b"A"
    assert backup_config.safety_copy_path.read_bytes() == b"C"


def test_restore_backup_not_found(client, admin_headers, backup_config):
    response = client.post(f"{BASE}/restore", json={"filename": "missing.db"}, headers=admin_headers)

    assert response.status_code == 404
    assert backup_config.database_path.read_bytes() == b"A"


def test_restore_backup_failure_reports_rollback(client, admin_headers, backup_config, monkeypatch):
    created = _create(client, admin_headers)
    backup_config.database_path.write_bytes(b"C")
    real_copy2 = shutil.copy2
    backup_path = backup_config.backup_dir / created["filename"]

    def copy2(src, dst):
        if Path(src) == backup_path:
            raise OSError("I/O error")
        return real_copy2(src, dst)

    monkeypatch.setattr("crm_admin.backup.manager.shutil.copy2", copy2)

    with patch("crm_admin.api.routers.backup.audit_service") as mock_audit:
        response = client.post(
            f"{BASE}/restore", json={"filename": created["filename"]}, headers=admin_headers
        )

    assert response.status_code == 500
    data = response.json()
    assert data["error"] == "restore_failure"
    assert data["rolled_back"] is True
    assert data["state"] == "rolled_back"
    assert backup_config.database_path.read_bytes() == b"C"
    assert mock_audit.log.call_args.kwargs["status"] == "failure"


def test_backup_stats_endpoint(client, admin_headers):
    first = _create(client, admin_headers)
    second = _create(client, admin_headers)

    data = client.get(f"{BASE}/stats", headers=admin_headers).json()

    assert data["total_backups"] == 2
    assert data["total_size"] == first["size"] + second["size"]
    assert data["database_size"] == 1
    assert data["last_backup"] is not None


def test_backup_stats_empty(client, admin_headers):
    data = client.get(f"{BASE}/stats", headers=admin_headers).json()

    assert data["total_backups"] == 0
    assert data["total_size"] == 0
    assert data["last_backup"] is None


def test_filesystem_error_returns_structured_response(client, admin_headers, backup_config):
    backup_config.backup_dir.write_text("not a directory")

    response = client.get(f"{BASE}/list", headers=admin_headers)

    assert response.status_code == 500
    assert response.headers["content-type"] == "application/json"
    data = response.json()
    assert data["detail"] == "Internal server error"
    assert data["error"] == "io_error"
    assert "timestamp" in data


def test_list_backups_with_naive_sidecar_timestamp(client, admin_headers, backup_config):
    backup_config.backup_dir.mkdir()
    imported = backup_config.backup_dir / "imported.db"
    imported.write_bytes(b"data")
    (backup_config.backup_dir / "imported.db.json").write_text(json.dumps({
        "name": "imported.db",
        "type": "manual",
        "created_at": "2024-05-01T00:00:00",
        "size_bytes": 4,
        "checksum": "sha256:abc",
    }))
    (backup_config.backup_dir / "backup_manual_2024-03-01T08-00-00.db").write_bytes(b"old")

    response = client.get(f"{BASE}/list", headers=admin_headers)

    assert response.status_code == 200
    assert [f["name"] for f in response.json()["files"]] == [
        "imported.db",
        "backup_manual_2024-03-01T08-00-00.db",
    ]
    assert client.get(f"{BASE}/stats", headers=admin_headers).status_code == 200


def test_delete_directory_named_like_backup_is_not_found(client, admin_headers, backup_config):
    backup_config.backup_dir.mkdir()
    (backup_config.backup_dir / "folder.db").mkdir()

    response = client.request("DELETE", f"{BASE}/delete", json={"filename": "folder.db"}, headers=admin_headers)

    assert response.status_code == 404
    assert response.json()["error"] == "not_found"

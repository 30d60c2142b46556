"""Tests for session access control on admin endpoints."""

import pytest
from datetime import timedelta
from fastapi.testclient import TestClient
from jose import jwt

from crm_admin.api.app import create_app
from crm_admin.api.auth import create_session_token
from crm_admin.api.config import settings
from crm_admin.backup import BackupManager

LIST_URL = "/api/admin/backup/list"


@pytest.fixture
def client(backup_config):
    app = create_app()
    app.state.backup_manager = BackupManager(backup_config)
    return TestClient(app)


def test_missing_token_is_unauthorized(client):
    response = client.get(LIST_URL)

    assert response.status_code == 401
    assert response.json()["detail"] == "Unauthorized"


def test_garbage_token_is_unauthorized(client):
    response = client.get(LIST_URL, headers={"Authorization": "Bearer not-a-token"})

    assert response.status_code == 401


def test_token_signed_with_other_key_is_unauthorized(client):
    token = jwt.encode({"sub": "user-1", "role": "ADMIN"}, "other-secret", algorithm="HS256")

    response = client.get(LIST_URL, headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401


def test_expired_token_is_unauthorized(client):
    token = create_session_token("user-1", "ADMIN", expires_delta=timedelta(seconds=-10))

    response = client.get(LIST_URL, headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401


def test_token_without_role_is_unauthorized(client):
    token = jwt.encode({"sub": "user-1"}, settings.secret_key, algorithm=settings.session_algorithm)

    response = client.get(LIST_URL, headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401


@pytest.mark.parametrize("role", ["USER", "SALES", "admin"])
def test_non_admin_is_forbidden(client, role, backup_config):
    token = create_session_token("user-2", role, email="sales@example.com")

    response = client.post(
        "/api/admin/backup/create", json={}, headers={"Authorization": f"Bearer {token}"}
    )

    assert response.status_code == 403
    assert response.json()["detail"] == "Forbidden - Admin access required"
    assert not backup_config.backup_dir.exists()


def test_session_cookie_is_accepted(client):
    token = create_session_token("user-1", "ADMIN", email="admin@example.com")
    response = client.get(LIST_URL, headers={"Cookie": f"{settings.session_cookie_name}={token}"})

    assert response.status_code == 200

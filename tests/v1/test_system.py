# tests/v1/test_system.py
"""Tests for service-level endpoints and error rendering."""

import pytest
from fastapi import FastAPI, status
from fastapi.testclient import TestClient
from sqlalchemy import select

from kocmoc.core.settings import settings
from kocmoc.db import build_engine, create_tables
from kocmoc.main import app as fastapi_app
from kocmoc.models import Role, User
from kocmoc.services import ServiceContainer


def test_health(client: TestClient) -> None:
    response = client.get("/health")

    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"status": "ok"}


def test_request_validation_keeps_422(client: TestClient, alice: str, auth_headers) -> None:
    response = client.post("/api/v1/chats/group", json={"name": "Team"}, headers=auth_headers(alice))

    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


def test_startup_with_overridden_container_skips_bootstrap(
    app: FastAPI, container: ServiceContainer, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr(settings, "admin_email", "root@example.com")
    monkeypatch.setattr(settings, "admin_password", "admin-password")

    with TestClient(app) as test_client:
        assert test_client.get("/health").status_code == status.HTTP_200_OK

    assert container.store.query_one(select(User.id).where(User.email == "root@example.com")) is None


def test_startup_builds_container_and_bootstraps_admin(tmp_path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(settings, "database_url", f"sqlite:///{tmp_path / 'kocmoc.db'}")
    monkeypatch.setattr(settings, "use_testing_database", False)
    monkeypatch.setattr(settings, "admin_email", "root@example.com")
    monkeypatch.setattr(settings, "admin_password", "admin-password")
    engine = build_engine(settings.effective_database_url)
    create_tables(engine)
    engine.dispose()

    with TestClient(fastapi_app) as test_client:
        assert test_client.get("/health").status_code == status.HTTP_200_OK
        started: ServiceContainer = fastapi_app.state.container
        admin = started.store.query_one(select(User.role).where(User.email == "root@example.com"))
    del fastapi_app.state.container

    assert admin is not None
    assert admin.role == Role.ADMIN.value

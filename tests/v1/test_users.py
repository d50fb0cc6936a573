# tests/v1/test_users.py
"""Tests for user directory and profile endpoints."""

from __future__ import annotations

from collections.abc import Callable

from fastapi import status
from fastapi.testclient import TestClient

from kocmoc.models import Role

Headers = Callable[[str], dict[str, str]]


def test_list_users_excludes_caller(client: TestClient, alice: str, bob: str, carol: str, auth_headers: Headers) -> None:
    response = client.get("/api/v1/users/", headers=auth_headers(alice))

    assert response.status_code == status.HTTP_200_OK
    assert [u["display_name"] for u in response.json()] == ["Bob", "Carol"]
    assert all("password_hash" not in u for u in response.json())


def test_list_users_requires_auth(client: TestClient) -> None:
    assert client.get("/api/v1/users/").status_code == status.HTTP_401_UNAUTHORIZED


def test_search_users(client: TestClient, alice: str, bob: str, auth_headers: Headers) -> None:
    response = client.get("/api/v1/users/search/bo", headers=auth_headers(alice))

    assert response.status_code == status.HTTP_200_OK
    assert [u["id"] for u in response.json()] == [bob]


def test_get_user(client: TestClient, alice: str, bob: str, auth_headers: Headers) -> None:
    response = client.get(f"/api/v1/users/{bob}", headers=auth_headers(alice))

    assert response.status_code == status.HTTP_200_OK
    assert response.json()["email"] == "bob@example.com"
    assert client.get("/api/v1/users/missing", headers=auth_headers(alice)).status_code == status.HTTP_404_NOT_FOUND


def test_update_own_profile(client: TestClient, alice: str, auth_headers: Headers) -> None:
    response = client.put(f"/api/v1/users/{alice}", json={"display_name": "Alicia"}, headers=auth_headers(alice))

    assert response.status_code == status.HTTP_200_OK
    assert response.json()["display_name"] == "Alicia"


def test_update_other_profile_forbidden(client: TestClient, alice: str, bob: str, auth_headers: Headers) -> None:
    response = client.put(f"/api/v1/users/{bob}", json={"display_name": "Hacked"}, headers=auth_headers(alice))

    assert response.status_code == status.HTTP_403_FORBIDDEN
    assert response.json()["code"] == "forbidden"


def test_admin_updates_other_profile(client: TestClient, create_user, bob: str, auth_headers: Headers) -> None:
    admin_id = create_user("root@example.com", "Root", role=Role.ADMIN)

    response = client.put(f"/api/v1/users/{bob}", json={"avatar_url": "https://cdn/b.png"}, headers=auth_headers(admin_id))

    assert response.status_code == status.HTTP_200_OK
    assert response.json()["avatar_url"] == "https://cdn/b.png"


def test_update_without_fields(client: TestClient, alice: str, auth_headers: Headers) -> None:
    response = client.put(f"/api/v1/users/{alice}", json={}, headers=auth_headers(alice))

    assert response.status_code == status.HTTP_400_BAD_REQUEST

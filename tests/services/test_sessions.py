# tests/services/test_sessions.py
"""Tests for bearer-token session management."""

from __future__ import annotations

import pytest
from jose import jwt
from sqlalchemy import delete, func, select

from kocmoc.core.errors import AuthFailure, UnauthenticatedError
from kocmoc.db import Store
from kocmoc.models import AuthSession, Role, User
from kocmoc.services import ServiceContainer, SessionManager


def _session_count(store: Store, user_id: str) -> int:
    row = store.query_one(
        select(func.count().label("n")).select_from(AuthSession).where(AuthSession.user_id == user_id)
    )
    assert row is not None
    return row.n


def test_issue_then_validate_returns_identity(container: ServiceContainer, alice: str) -> None:
    token = container.sessions.issue(alice)

    identity = container.sessions.validate(token)

    assert identity.user_id == alice
    assert identity.email == "alice@example.com"
    assert identity.display_name == "Alice"
    assert identity.role is Role.USER
    assert identity.token == token
    assert not identity.is_admin


def test_each_issue_creates_a_new_session(container: ServiceContainer, store: Store, alice: str) -> None:
    first = container.sessions.issue(alice)
    second = container.sessions.issue(alice)

    assert first != second
    assert _session_count(store, alice) == 2
    # Both devices stay signed in.
    assert container.sessions.validate(first).user_id == alice
    assert container.sessions.validate(second).user_id == alice


def test_revoked_token_is_rejected(container: ServiceContainer, alice: str) -> None:
    token = container.sessions.issue(alice)
    container.sessions.revoke(token)

    with pytest.raises(UnauthenticatedError) as excinfo:
        container.sessions.validate(token)

    assert excinfo.value.reason is AuthFailure.REVOKED


def test_revoke_unknown_token_is_noop(container: ServiceContainer) -> None:
    container.sessions.revoke("never-issued")


def test_revoke_all_removes_every_session(container: ServiceContainer, store: Store, alice: str, bob: str) -> None:
    tokens = [container.sessions.issue(alice) for _ in range(3)]
    bob_token = container.sessions.issue(bob)

    assert container.sessions.revoke_all(alice) == 3
    assert _session_count(store, alice) == 0
    for token in tokens:
        with pytest.raises(UnauthenticatedError):
            container.sessions.validate(token)
    assert container.sessions.validate(bob_token).user_id == bob


def test_expired_token_is_rejected(store: Store, alice: str) -> None:
    manager = SessionManager(store, secret_key="test-secret-key", ttl_minutes=-1)
    token = manager.issue(alice)

    with pytest.raises(UnauthenticatedError) as excinfo:
        manager.validate(token)

    assert excinfo.value.reason is AuthFailure.EXPIRED


@pytest.mark.parametrize("token", ["not-a-jwt", "a.b.c"])
def test_malformed_token_is_rejected(container: ServiceContainer, token: str) -> None:
    with pytest.raises(UnauthenticatedError) as excinfo:
        container.sessions.validate(token)
    assert excinfo.value.reason is AuthFailure.MALFORMED


def test_token_signed_with_other_key_is_malformed(container: ServiceContainer, alice: str) -> None:
    forged = jwt.encode({"sub": alice}, "some-other-key", algorithm="HS256")

    with pytest.raises(UnauthenticatedError) as excinfo:
        container.sessions.validate(forged)

    assert excinfo.value.reason is AuthFailure.MALFORMED


def test_token_without_subject_is_malformed(container: ServiceContainer) -> None:
    token = jwt.encode({"jti": "x"}, "test-secret-key", algorithm="HS256")

    with pytest.raises(UnauthenticatedError) as excinfo:
        container.sessions.validate(token)

    assert excinfo.value.reason is AuthFailure.MALFORMED


def test_empty_token_is_missing(container: ServiceContainer) -> None:
    with pytest.raises(UnauthenticatedError) as excinfo:
        container.sessions.validate("")
    assert excinfo.value.reason is AuthFailure.MISSING


def test_token_of_deleted_user_is_unknown(container: ServiceContainer, store: Store, alice: str) -> None:
    token = container.sessions.issue(alice)
    store.execute(delete(User).where(User.id == alice))

    with pytest.raises(UnauthenticatedError) as excinfo:
        container.sessions.validate(token)

    assert excinfo.value.reason is AuthFailure.UNKNOWN


def test_session_rows_cascade_with_user(container: ServiceContainer, store: Store, alice: str) -> None:
    container.sessions.issue(alice)
    store.execute(delete(User).where(User.id == alice))

    assert _session_count(store, alice) == 0


def test_admin_identity(container: ServiceContainer, create_user) -> None:
    admin_id = create_user("root@example.com", "Root", role=Role.ADMIN)

    identity = container.sessions.validate(container.sessions.issue(admin_id))

    assert identity.is_admin

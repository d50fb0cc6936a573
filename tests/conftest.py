# tests/conftest.py
from __future__ import annotations

import os
from collections.abc import Callable, Iterator
from datetime import datetime, timedelta

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import insert
from sqlalchemy.pool import StaticPool

os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("DATABASE_URL", "sqlite://")

from kocmoc.api.v1.dependencies import get_container
from kocmoc.core.errors import DeliveryError
from kocmoc.core.security import hash_password
from kocmoc.core.settings import Settings
from kocmoc.db import Store, build_engine, create_tables, drop_tables
from kocmoc.db.time import utcnow
from kocmoc.main import app as fastapi_app
from kocmoc.models import Role, User
from kocmoc.services import ServiceContainer

DEFAULT_PASSWORD = "correct horse battery"


class RecordingMailer:
    """Mailer double that keeps every message and can be told to fail."""

    def __init__(self) -> None:
        self.sent: list[tuple[str, str, str]] = []
        self.fail = False

    def send(self, to_address: str, subject: str, body: str) -> None:
        if self.fail:
            raise DeliveryError("Failed to deliver email")
        self.sent.append((to_address, subject, body))

    def last_code(self) -> str:
        """Return the six-digit code from the most recent message."""
        body = self.sent[-1][2]
        return body.split("code: ", 1)[1][:6]


class SteppingClock:
    """Deterministic clock: starts at the real current time and ticks on every read."""

    def __init__(self, start: datetime | None = None, step: timedelta = timedelta(milliseconds=1)) -> None:
        self.now = start or utcnow()
        self.step = step

    def __call__(self) -> datetime:
        self.now += self.step
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now += delta


@pytest.fixture()
def store() -> Iterator[Store]:
    engine = build_engine("sqlite://", poolclass=StaticPool)
    create_tables(engine)
    store = Store(engine=engine).open()
    try:
        yield store
    finally:
        drop_tables(engine)
        engine.dispose()


@pytest.fixture()
def test_settings() -> Settings:
    return Settings(SECRET_KEY="test-secret-key", MESSAGE_PAGE_MAX=50)  # type: ignore[call-arg]


@pytest.fixture()
def mailer() -> RecordingMailer:
    return RecordingMailer()


@pytest.fixture()
def clock() -> SteppingClock:
    return SteppingClock()


@pytest.fixture()
def container(
    store: Store,
    test_settings: Settings,
    mailer: RecordingMailer,
    clock: SteppingClock,
) -> ServiceContainer:
    return ServiceContainer(store, test_settings, mailer=mailer, clock=clock)


@pytest.fixture()
def create_user(store: Store) -> Callable[..., str]:
    """Insert an account directly and return its id."""

    def _create(
        email: str,
        display_name: str | None = None,
        *,
        password: str = DEFAULT_PASSWORD,
        role: Role = Role.USER,
    ) -> str:
        result = store.execute(
            insert(User).values(
                email=email,
                password_hash=hash_password(password),
                display_name=display_name or email.split("@")[0].title(),
                role=role.value,
                online=False,
            )
        )
        return result.inserted_id

    return _create


@pytest.fixture()
def alice(create_user: Callable[..., str]) -> str:
    return create_user("alice@example.com", "Alice")


@pytest.fixture()
def bob(create_user: Callable[..., str]) -> str:
    return create_user("bob@example.com", "Bob")


@pytest.fixture()
def carol(create_user: Callable[..., str]) -> str:
    return create_user("carol@example.com", "Carol")


@pytest.fixture()
def app(container: ServiceContainer) -> Iterator[FastAPI]:
    fastapi_app.dependency_overrides[get_container] = lambda: container
    try:
        yield fastapi_app
    finally:
        fastapi_app.dependency_overrides.pop(get_container, None)


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


@pytest.fixture()
def auth_headers(container: ServiceContainer) -> Callable[[str], dict[str, str]]:
    """Return a factory issuing a fresh bearer session for a user id."""

    def _headers(user_id: str) -> dict[str, str]:
        token = container.sessions.issue(user_id)
        return {"Authorization": f"Bearer {token}"}

    return _headers

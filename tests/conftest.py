"""Shared fixtures for the notification engine test-suite."""

from __future__ import annotations

import os
from collections.abc import Iterator
from datetime import datetime

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

# Keep the module level engine away from the working directory.
os.environ["DATABASE_URL"] = "sqlite://"

from notification_engine.config import Settings
from notification_engine.domain.entities import (
    DeliveryRecord,
    DeliveryStatus,
    IdentityUser,
    NotificationRequest,
    ProjectOwner,
    UserProfile,
)
from notification_engine.infrastructure import models  # noqa: F401  # register tables
from notification_engine.infrastructure.database import Base
from notification_engine.infrastructure.repositories import (
    DeliveryRecordRepository,
    ProjectRepository,
    UserProfileRepository,
)
from notification_engine.utils import now_in_app_timezone


class RecordingSender:
    """Channel sender double remembering every call and optionally failing."""

    def __init__(self, channel: str, *, error: Exception | None = None) -> None:
        self.channel = channel
        self.error = error
        self.calls: list[tuple] = []

    def send(self, recipient, request) -> None:
        self.calls.append((recipient, request))
        if self.error is not None:
            raise self.error


class FakeIdentityProvider:
    """Identity provider double backed by a dictionary."""

    def __init__(self, users: dict[str, IdentityUser] | None = None) -> None:
        self.users = dict(users or {})
        self.requested: list[str] = []

    def get_user(self, user_id: str) -> IdentityUser | None:
        self.requested.append(user_id)
        return self.users.get(user_id)


@pytest.fixture()
def engine():
    """Return an isolated in-memory database with every table created."""

    test_engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=test_engine)
    yield test_engine
    Base.metadata.drop_all(bind=test_engine)
    test_engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture()
def session(session_factory) -> Iterator[Session]:
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def settings() -> Settings:
    return Settings(
        _env_file=None,
        database_url="sqlite://",
        app_name="Apporte",
        system_url="https://app.example.com",
    )


@pytest.fixture()
def senders() -> dict[str, RecordingSender]:
    return {
        channel: RecordingSender(channel)
        for channel in ("email", "whatsapp", "sms", "in_app")
    }


def make_request(**overrides) -> NotificationRequest:
    values = {
        "event_type": "PROJECT_READY",
        "entity_type": "project",
        "entity_id": "p1",
        "channels": ["email"],
        "recipient_types": ["project_owner"],
        "context": {},
    }
    values.update(overrides)
    return NotificationRequest.create(**values)


def save_user(
    session: Session,
    user_id: str,
    email: str,
    *,
    name: str | None = None,
    phone: str | None = None,
    roles: list[str] | None = None,
    last_sync: datetime | None = None,
) -> UserProfile:
    profile = UserProfile(
        id=user_id,
        email=email,
        name=name,
        phone=phone,
        roles=list(roles or []),
        last_sync=last_sync or now_in_app_timezone(),
    )
    return UserProfileRepository(session).save(profile)


def save_project(
    session: Session, project_id: str, owner_id: str, owner_email: str, owner_name: str | None = None
) -> ProjectOwner:
    owner = ProjectOwner(
        project_id=project_id,
        owner_id=owner_id,
        owner_email=owner_email,
        owner_name=owner_name,
    )
    return ProjectRepository(session).save(owner)


def save_record(
    session: Session,
    *,
    user_id: str = "u1",
    event_type: str = "PROJECT_READY",
    channel: str = "email",
    status: DeliveryStatus = DeliveryStatus.ERROR,
    payload_snapshot: str | None = None,
    error_message: str | None = None,
    created_at: datetime | None = None,
) -> DeliveryRecord:
    record = DeliveryRecord(
        id=None,
        user_id=user_id,
        event_type=event_type,
        channel=channel,
        status=status,
        payload_snapshot=payload_snapshot,
        error_message=error_message,
        created_at=created_at or now_in_app_timezone(),
        sent_at=now_in_app_timezone() if status is DeliveryStatus.SENT else None,
    )
    return DeliveryRecordRepository(session).create(record)


@pytest.fixture()
def app(session_factory, senders):
    """Return the FastAPI application wired to the test database and senders."""

    from fastapi import FastAPI

    from main import create_app
    from notification_engine.application.use_cases.notifications import ResolutionCache
    from notification_engine.infrastructure.database import get_db
    from notification_engine.interfaces.api.dependencies import (
        get_channel_senders,
        get_resolution_cache,
    )

    application: FastAPI = create_app()

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    application.dependency_overrides[get_db] = override_get_db
    application.dependency_overrides[get_channel_senders] = lambda: senders
    application.dependency_overrides[get_resolution_cache] = lambda: ResolutionCache(0)
    application.state.identity_provider = None
    return application


@pytest.fixture()
def client(app):
    from fastapi.testclient import TestClient

    return TestClient(app)


@pytest.fixture()
def login(app):
    """Return a helper authenticating every request as a caller with ``roles``."""

    from notification_engine.infrastructure.security import AuthenticatedUser
    from notification_engine.interfaces.api.dependencies import get_current_user

    def _login(user_id: str = "caller", *roles: str) -> AuthenticatedUser:
        user = AuthenticatedUser(user_id=user_id, username=user_id, roles=frozenset(roles))
        app.dependency_overrides[get_current_user] = lambda: user
        return user

    return _login

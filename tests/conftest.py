"""Pytest configuration and fixtures."""

import os
from types import SimpleNamespace
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from fornada.database import Base, get_db
from fornada.main import app
from fornada.services.notification_service import DeliveryStatus
from fornada.tasks.notifications import notify_establishment_followers, notify_user


class AuthHeaders(dict):
    """Dict subclass that also stores the user's id and email."""

    def __init__(self, *args, user_id: int | None = None, email: str | None = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.user_id = user_id
        self.email = email


class RecordingTransport:
    """Push transport that records deliveries and answers from a status map."""

    def __init__(self, statuses: dict[str, DeliveryStatus] | None = None):
        self.statuses = statuses or {}
        self.sent: list[tuple[dict, str]] = []

    def send(self, subscription_info: dict, data: str) -> DeliveryStatus:
        self.sent.append((subscription_info, data))
        status = self.statuses.get(subscription_info["endpoint"], DeliveryStatus.DELIVERED)
        if isinstance(status, Exception):
            raise status
        return status


# Use test database - PostgreSQL when DATABASE_URL is set, SQLite otherwise
if os.getenv("DATABASE_URL"):
    SQLALCHEMY_DATABASE_URL = os.getenv("DATABASE_URL").replace("/fornada", "/fornada_test")
else:
    SQLALCHEMY_DATABASE_URL = "sqlite:///./test.db"

connect_args = {"check_same_thread": False} if "sqlite" in SQLALCHEMY_DATABASE_URL else {}
engine = create_engine(SQLALCHEMY_DATABASE_URL, connect_args=connect_args)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="session", autouse=True)
def setup_test_database():
    """Create test database schema once at the start of the test session."""
    if "postgresql" in SQLALCHEMY_DATABASE_URL:
        from sqlalchemy_utils import create_database, database_exists

        if not database_exists(SQLALCHEMY_DATABASE_URL):
            create_database(SQLALCHEMY_DATABASE_URL)

    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture(scope="function", autouse=True)
def db():
    """Create a fresh database session for each test with cleanup."""
    session = TestingSessionLocal()

    yield session

    # Clean up all data after test
    session.rollback()
    for table in reversed(Base.metadata.sorted_tables):
        session.execute(table.delete())
    session.commit()
    session.close()


@pytest.fixture(autouse=True)
def queued_tasks():
    """Keep Celery tasks from reaching the broker; exposes the delay mocks."""
    with (
        patch.object(notify_user, "delay") as notify_user_delay,
        patch.object(notify_establishment_followers, "delay") as notify_followers_delay,
    ):
        yield SimpleNamespace(
            notify_user=notify_user_delay,
            notify_establishment_followers=notify_followers_delay,
        )


@pytest.fixture(scope="function")
def client(db):
    """Create a test client with database override."""

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def register(client, email: str, role: str = "cliente", name: str = "Test User") -> AuthHeaders:
    """Register a user and return auth headers for it."""
    response = client.post(
        "/api/v1/auth/register",
        json={"email": email, "password": "testpass123", "name": name, "role": role},
    )
    assert response.status_code == 201
    data = response.json()
    return AuthHeaders(
        {"Authorization": f"Bearer {data['access_token']}"},
        user_id=data["user"]["id"],
        email=email,
    )


@pytest.fixture
def auth_headers(client):
    """Create a customer account and return auth headers with user info."""
    return register(client, "test@example.com")


@pytest.fixture
def owner_headers(client):
    """Create an establishment account and return auth headers with user info."""
    return register(client, "padaria@example.com", role="estabelecimento", name="Padaria Dona Lena")


@pytest.fixture
def transport_factory():
    """Factory for recording push transports."""
    return RecordingTransport


@pytest.fixture
def session_factory():
    """Session factory bound to the test database."""
    return TestingSessionLocal


@pytest.fixture
def register_user(client):
    """Register extra accounts: ``register_user(email, role="cliente")``."""

    def _register(email: str, role: str = "cliente", name: str = "Test User") -> AuthHeaders:
        return register(client, email, role=role, name=name)

    return _register

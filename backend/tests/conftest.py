"""Pytest configuration and fixtures."""

from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from api.plaid import _get_plaid_client
from database import Base, get_db
from main import app
from services.transaction_store import TransactionStore, get_transaction_store
# Pytest fixtures - imported to make them available to tests
from tests.fixtures import (  # noqa: F401
    institution,
    plaid_item,
)
from tests.fixtures.mocks import MockPlaidClient


@pytest.fixture(name="engine")
def engine_fixture():
    """Create an in-memory SQLite engine shared by every session in a test."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture(name="session_factory")
def session_factory_fixture(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(name="db")
def db_fixture(session_factory):
    """Session for seeding and inspecting the test database.

    Commit seeded rows before calling the store: the store opens its own
    sessions on the same underlying connection.
    """
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(name="store")
def store_fixture(session_factory):
    return TransactionStore(session_factory)


class FakeClock:
    """Stands in for the store's UTC clock so lease ages can be stepped."""

    def __init__(self):
        self.now = datetime.now(timezone.utc).replace(tzinfo=None)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


@pytest.fixture(name="fake_clock")
def fake_clock_fixture():
    clock = FakeClock()
    with patch("services.transaction_store._utcnow_naive", clock):
        yield clock


@pytest.fixture(name="mock_plaid_client")
def mock_plaid_client_fixture():
    """Mock Plaid client with nothing scripted."""
    return MockPlaidClient()


def _make_client(db, store, plaid_client) -> TestClient:
    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_transaction_store] = lambda: store
    app.dependency_overrides[_get_plaid_client] = lambda: plaid_client
    return TestClient(app)


@pytest.fixture(name="client")
def client_fixture(db, store, mock_plaid_client):
    """Create a test client with the test database and mocked Plaid."""
    client = _make_client(db, store, mock_plaid_client)
    yield client
    app.dependency_overrides.clear()


@pytest.fixture(name="make_client")
def make_client_fixture(db, store):
    """Factory for test clients backed by a specific mock Plaid client."""

    def _factory(plaid_client: MockPlaidClient) -> TestClient:
        return _make_client(db, store, plaid_client)

    yield _factory
    app.dependency_overrides.clear()

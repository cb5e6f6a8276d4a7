"""Shared fixtures: in-memory database, controllable clock, API client."""

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient
from sqlmodel import SQLModel

from wildlife_tracker.config import Settings
from wildlife_tracker.context import AppContext
from wildlife_tracker.database.connection import create_db_engine, create_session_factory
from wildlife_tracker.main import create_app
from wildlife_tracker.services.sighting_store import SightingStore


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime = datetime(2026, 5, 1, 9, 30, 0, tzinfo=timezone.utc)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def engine():
    engine = create_db_engine("sqlite://")
    SQLModel.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def store(db, clock) -> SightingStore:
    return SightingStore(db, expiry_window=timedelta(hours=1), clock=clock)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        database_url="sqlite://",
        sweep_enabled=False,
        auto_create_tables=True,
        r2_account_id="account",
        r2_access_key_id="access-key",
        r2_secret_access_key="secret",
        r2_bucket_name="test-bucket",
        r2_public_base_url="https://media.example.com",
    )


@pytest.fixture
def app_context(settings, engine, clock) -> AppContext:
    return AppContext.create(settings, engine=engine, clock=clock)


@pytest.fixture
def client(app_context):
    app = create_app(context=app_context)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def r2_client(monkeypatch) -> MagicMock:
    """Replace the boto3 S3 client used for R2 uploads."""
    mock_client = MagicMock()
    monkeypatch.setattr(
        "wildlife_tracker.services.r2_storage.boto3.client",
        lambda *args, **kwargs: mock_client,
    )
    return mock_client

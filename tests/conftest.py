"""Shared fixtures: in-memory database, settings and fake provider backend."""
from typing import Callable, Optional

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session

from answer_engine.config import Settings
from answer_engine.database import create_db_engine, init_db
from answer_engine.main import create_app
from tests.helpers import FakeProviders


@pytest.fixture
def settings() -> Settings:
    return Settings(
        DATABASE_URL="sqlite://",
        GOOGLE_GEMINI_API_KEY="test-gemini-key",
        GOOGLE_CSE_API_KEY="test-cse-key",
        GOOGLE_CSE_CX="test-cx",
    )


@pytest.fixture
def engine(settings):
    engine = create_db_engine(settings.DATABASE_URL)
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def providers() -> FakeProviders:
    return FakeProviders()


@pytest.fixture
def make_client(settings, providers) -> Callable[..., TestClient]:
    """Build a TestClient (lifespan running) with providers mocked."""
    clients = []

    def _make(app_settings: Optional[Settings] = None) -> TestClient:
        app = create_app(app_settings or settings, http_client=providers.client())
        client = TestClient(app)
        client.__enter__()
        clients.append(client)
        return client

    yield _make
    for client in clients:
        client.__exit__(None, None, None)


@pytest.fixture
def client(make_client) -> TestClient:
    return make_client()

"""Pytest configuration and fixtures for readlisten tests.

Test isolation strategy:
- Each test gets its own SQLite database file with the schema created from
  the ORM metadata, so tests never share state
- The process-wide session factory is pointed at that database, so routes,
  services and Celery task bodies all see the same data
- Storage and speech synthesis use in-memory fakes
- The job dispatcher is replaced with a recorder; no broker is needed
"""

import os
import sys
from collections.abc import Generator
from pathlib import Path
from typing import Any

# Settings are read lazily, but must be in place before the app module loads
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ["READLISTEN_ENV"] = "test"
os.environ["SUPABASE_JWT_SECRET"] = "test-supabase-jwt-secret-0123456789abcdef0123456789"
os.environ["CORS_ALLOWED_ORIGINS"] = "https://llm-crl.netlify.com,http://localhost:5173"

# Add repo root to sys.path for importing top-level packages (e.g., apps)
_repo_root = Path(__file__).parent.parent.parent
if str(_repo_root) not in sys.path:
    sys.path.insert(0, str(_repo_root))

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import Engine
from sqlalchemy.orm import Session, sessionmaker

from readlisten.api.deps import get_job_dispatcher
from readlisten.app import add_request_id_middleware, create_app
from readlisten.auth.verifier import SharedSecretVerifier
from readlisten.config import clear_settings_cache
from readlisten.db.engine import create_db_engine
from readlisten.db.models import Base
from readlisten.db.session import create_session_factory, set_session_factory
from readlisten.services.speech import SpeechSynthesisError
from readlisten.storage.client import FakeStorageClient
from tests.helpers import TEST_JWT_SECRET, create_test_user_id


class FakeSpeechGateway:
    """Records synthesis calls; fails when ``fail_status`` is set."""

    def __init__(self, audio: bytes = b"ID3-fake-audio-bytes"):
        self.audio = audio
        self.calls: list[str] = []
        self.fail_status: int | None = None

    def synthesize(self, text: str) -> bytes:
        self.calls.append(text)
        if self.fail_status is not None:
            raise SpeechSynthesisError(self.fail_status, "upstream refused")
        return self.audio


class RecordingDispatcher:
    """Stands in for the Celery dispatch; keeps (payload, request_id) pairs."""

    def __init__(self):
        self.jobs: list[tuple[dict[str, Any], str | None]] = []
        self.error: Exception | None = None

    def __call__(self, payload: dict[str, Any], request_id: str | None = None) -> None:
        if self.error is not None:
            raise self.error
        self.jobs.append((payload, request_id))


@pytest.fixture
def engine(tmp_path: Path) -> Generator[Engine, None, None]:
    """A fresh SQLite database per test."""
    engine = create_db_engine(f"sqlite:///{tmp_path / 'readlisten.db'}")
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine: Engine) -> Generator[sessionmaker[Session], None, None]:
    """Session factory bound to the test database, installed process-wide."""
    factory = create_session_factory(engine)
    set_session_factory(factory)
    yield factory
    set_session_factory(None)


@pytest.fixture
def db_session(session_factory: sessionmaker[Session]) -> Generator[Session, None, None]:
    """A session for arranging and inspecting rows.

    Data written through it must be committed before the API or a task body
    can see it.
    """
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def storage() -> FakeStorageClient:
    return FakeStorageClient()


@pytest.fixture
def speech() -> FakeSpeechGateway:
    return FakeSpeechGateway()


@pytest.fixture
def dispatcher() -> RecordingDispatcher:
    return RecordingDispatcher()


@pytest.fixture
def app(
    session_factory: sessionmaker[Session],
    storage: FakeStorageClient,
    dispatcher: RecordingDispatcher,
) -> FastAPI:
    """The full application wired to the test database and fakes."""
    app = create_app(token_verifier=SharedSecretVerifier(TEST_JWT_SECRET), storage=storage)
    app.dependency_overrides[get_job_dispatcher] = lambda: dispatcher
    add_request_id_middleware(app, log_requests=False)
    return app


@pytest.fixture
def client(app: FastAPI) -> Generator[TestClient, None, None]:
    with TestClient(app) as client:
        yield client


@pytest.fixture
def test_user_id():
    """Generate a random UUID for a test user."""
    return create_test_user_id()


@pytest.fixture(autouse=True)
def reset_settings_cache():
    """Reset the settings cache before each test."""
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture(autouse=True)
def no_storage_prefix(monkeypatch):
    monkeypatch.delenv("STORAGE_TEST_PREFIX", raising=False)

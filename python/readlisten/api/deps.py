"""FastAPI dependencies for route handlers.

Common dependencies like database sessions, the token verifier, storage and
the job dispatcher. Tests swap any of them through app.dependency_overrides.
"""

from fastapi import Request

from readlisten.auth.verifier import TokenVerifier
from readlisten.db.session import get_db, get_session_factory
from readlisten.services.listening_audio import JobDispatcher, enqueue_listening_audio_job
from readlisten.storage.client import StorageClientBase

__all__ = [
    "get_db",
    "get_job_dispatcher",
    "get_session_factory",
    "get_storage",
    "get_token_verifier",
]


def get_token_verifier(request: Request) -> TokenVerifier:
    """Get the verifier created at startup (shared with AuthMiddleware)."""
    return request.app.state.token_verifier


def get_storage(request: Request) -> StorageClientBase:
    """Get the shared storage client from app state."""
    return request.app.state.storage


def get_job_dispatcher() -> JobDispatcher:
    """Get the function that queues listening audio jobs (Celery by default)."""
    return enqueue_listening_audio_job

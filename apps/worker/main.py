"""Celery worker entrypoint.

Run with: celery -A apps.worker.main:celery_app worker -Q audio,default --loglevel=info
Beat (orphaned lock sweep): celery -A apps.worker.main:celery_app beat

This module imports the Celery app and explicitly registers all tasks.
Task definitions are in the readlisten.tasks package - no autodiscovery.

Logging Convention:
- All task log entries include request_id, task_name, task_id when available
- create_listening_audio receives the submitting request's request_id

Queue Configuration:
- audio: Listening audio generation (one speech call + upload per task)
- default: Periodic maintenance (stale lock sweep)

Concurrency Notes:
- Tasks are I/O bound (speech API, storage); prefork concurrency of a few
  processes per container is enough
- Same-item exclusion comes from the database lock, not from worker count
"""

from celery.signals import worker_process_init

from readlisten.celery import celery_app
from readlisten.logging import configure_logging, get_logger

# =============================================================================
# Task Registration (explicit imports - no autodiscovery)
# =============================================================================

# Each import registers the task with the celery_app
from readlisten.tasks import create_listening_audio, sweep_stale_audio_locks  # noqa: F401

# =============================================================================
# Worker Lifecycle
# =============================================================================


@worker_process_init.connect
def setup_worker_logging(**kwargs):
    """Configure structlog when worker process starts.

    Worker logs then use the same JSON format as the API.
    """
    configure_logging()
    logger = get_logger(__name__)
    logger.info("celery_worker_started", queues=["audio", "default"])


# Export celery_app for Celery to find
# Command: celery -A apps.worker.main:celery_app worker ...
__all__ = ["celery_app"]

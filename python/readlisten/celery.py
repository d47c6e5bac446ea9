"""Celery application configuration.

Central configuration for Celery used by both API (for enqueuing)
and worker (for executing tasks).

Usage:
    from readlisten.tasks import create_listening_audio
    create_listening_audio.apply_async(kwargs=payload, queue="audio")
"""

from celery import Celery

from readlisten.config import get_settings

settings = get_settings()

# Create Celery app
celery_app = Celery("readlisten")

# Configure from settings
celery_app.conf.broker_url = settings.effective_celery_broker_url
celery_app.conf.result_backend = settings.effective_celery_result_backend

# Task configuration
celery_app.conf.task_serializer = "json"
celery_app.conf.result_serializer = "json"
celery_app.conf.accept_content = ["json"]
celery_app.conf.timezone = "UTC"
celery_app.conf.enable_utc = True

# Queue routing
celery_app.conf.task_routes = {
    "create_listening_audio": {"queue": "audio"},
    "sweep_stale_audio_locks": {"queue": "default"},
}

# Default queue
celery_app.conf.task_default_queue = "default"

# Orphaned lock sweep
celery_app.conf.beat_schedule = {
    "sweep-stale-audio-locks": {
        "task": "sweep_stale_audio_locks",
        "schedule": float(settings.audio_lock_sweep_interval_s),
    },
}

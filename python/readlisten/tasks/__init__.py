"""Celery tasks for readlisten.

Tasks are explicitly imported here to register them with Celery.
No autodiscovery - all tasks must be imported in this module.

Usage in API (enqueue):
    from readlisten.tasks import create_listening_audio
    create_listening_audio.apply_async(
        kwargs={"user_id": user_id, "rl_item_id": rl_item_id, "r_item": text},
        queue="audio",
    )
"""

from readlisten.tasks.create_listening_audio import create_listening_audio
from readlisten.tasks.sweep_stale_audio_locks import sweep_stale_audio_locks

__all__ = ["create_listening_audio", "sweep_stale_audio_locks"]

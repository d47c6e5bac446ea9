"""Celery task for listening audio generation.

This task:
1. Reserves the content item (compare-and-set on the in-progress sentinel)
2. Synthesizes the text via the speech gateway
3. Uploads the audio and derives its URL
4. Links the new l_item and debits the user's tokens

- max_retries=0: a failed job releases the lock and the user resubmits
- The return value is for logging only; nothing consumes it
"""

from readlisten.celery import celery_app
from readlisten.config import get_settings
from readlisten.db.session import get_session_factory
from readlisten.logging import clear_task_context, configure_task_logging, get_logger
from readlisten.services.listening_audio import run_listening_audio_job
from readlisten.services.speech import OpenAISpeechGateway
from readlisten.storage.client import get_storage_client

logger = get_logger(__name__)


@celery_app.task(bind=True, max_retries=0, acks_late=False, name="create_listening_audio")
def create_listening_audio(
    self,
    user_id: str | None = None,
    rl_item_id: int | None = None,
    r_item: str | None = None,
    request_id: str | None = None,
) -> dict:
    """Generate listening audio for one content item.

    Args:
        user_id: UUID of the user paying for the job.
        rl_item_id: Content item to attach the audio to.
        r_item: Text to synthesize.
        request_id: Optional request ID for log correlation.
    """
    configure_task_logging(
        request_id=request_id,
        task_name="create_listening_audio",
        task_id=self.request.id,
        rl_item_id=rl_item_id,
        user_id=user_id,
    )
    settings = get_settings()

    # Get session factory (worker doesn't use FastAPI DI)
    db = get_session_factory()()
    try:
        return run_listening_audio_job(
            db,
            {"user_id": user_id, "rl_item_id": rl_item_id, "r_item": r_item},
            speech=OpenAISpeechGateway.from_settings(settings),
            storage=get_storage_client(settings),
            settings=settings,
        )
    finally:
        db.close()
        clear_task_context()

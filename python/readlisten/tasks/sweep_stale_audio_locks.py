"""Orphaned audio lock sweeper task.

Celery beat job: sweep_stale_audio_locks
- A worker that dies between reserve and release leaves the in-progress
  sentinel behind, and the item can never get audio again.
- Query: l_item_id = sentinel AND audio_requested_at < now() - AUDIO_LOCK_STALE_S
- Clear via conditional update (re-checks the sentinel and the age)
- Log count + oldest age
"""

from datetime import UTC, datetime, timedelta

from sqlalchemy.exc import SQLAlchemyError

from readlisten.celery import celery_app
from readlisten.config import get_settings
from readlisten.db.session import get_session_factory
from readlisten.logging import clear_task_context, configure_task_logging, get_logger
from readlisten.services.rl_items import clear_stale_lock, find_stale_locks

logger = get_logger(__name__)


def _age_seconds(now: datetime, requested_at: datetime | None) -> int | None:
    if requested_at is None:
        return None
    if requested_at.tzinfo is None:
        # SQLite hands back naive timestamps; they are stored as UTC
        requested_at = requested_at.replace(tzinfo=UTC)
    return int((now - requested_at).total_seconds())


def sweep_audio_locks(stale_after_s: int | None = None, now: datetime | None = None) -> int:
    """Clear in-progress locks older than ``stale_after_s``.

    Returns:
        Number of locks cleared.
    """
    if stale_after_s is None:
        stale_after_s = get_settings().audio_lock_stale_s
    now = now or datetime.now(UTC)
    threshold = now - timedelta(seconds=stale_after_s)

    db = get_session_factory()()
    cleared = 0
    try:
        stale = find_stale_locks(db, threshold)
        if not stale:
            return 0

        oldest_age = 0
        for rl_item_id, requested_at in stale:
            age = _age_seconds(now, requested_at)
            if age is not None:
                oldest_age = max(oldest_age, age)

            if clear_stale_lock(db, rl_item_id, threshold):
                cleared += 1
                logger.info("audio_lock_cleared", rl_item_id=rl_item_id, age_seconds=age)

        db.commit()

        logger.info(
            "audio_lock_sweep_complete",
            cleared_count=cleared,
            total_stale=len(stale),
            oldest_age_seconds=oldest_age,
        )
        return cleared

    except SQLAlchemyError as e:
        logger.error("audio_lock_sweep_error", error=str(e))
        db.rollback()
        return 0
    finally:
        db.close()


@celery_app.task(bind=True, max_retries=0, name="sweep_stale_audio_locks")
def sweep_stale_audio_locks(self) -> int:
    configure_task_logging(task_name="sweep_stale_audio_locks", task_id=self.request.id)
    try:
        return sweep_audio_locks()
    finally:
        clear_task_context()

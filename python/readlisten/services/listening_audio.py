"""Listening audio pipeline service.

Three entry points:

- submit_listening_audio: eligibility checks and asynchronous dispatch
  (POST /create-listening-audio). Never waits for the worker and never writes.
- run_listening_audio_job: the worker body (Celery task create_listening_audio).
- resign_listening_url / get_listening_url: download URL derivation for an
  existing l_item (POST /resign-listening-url, GET /l_items/{uid}).

Worker stages:
    reserve -> synthesize -> upload -> link -> debit -> done

Reserve is a compare-and-set on ``l_item_id IS NULL`` committed before the
speech call, so a second submission sees the item as in progress. A job that
loses the reservation exits without side effects. Any failure after reserve
rolls back, releases the lock, and deletes an uploaded but unlinked object.
"""

from collections.abc import Callable
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from readlisten.config import Settings, get_settings
from readlisten.db.models import AudioRefState, LItem
from readlisten.db.session import transaction
from readlisten.errors import ApiError, ApiErrorCode, ConflictError, NotFoundError
from readlisten.logging import get_logger
from readlisten.services import rl_items as rl_items_service
from readlisten.services import tokens as tokens_service
from readlisten.services.speech import SpeechGateway
from readlisten.storage.client import StorageClientBase, StorageError
from readlisten.storage.paths import build_audio_path

logger = get_logger(__name__)

AUDIO_QUEUE = "audio"

# (payload, request_id) -> None; raises if the job could not be queued
JobDispatcher = Callable[[dict[str, Any], str | None], None]


class AudioLockLostError(Exception):
    """The item's in-progress lock was gone when the worker tried to link."""


# =============================================================================
# Submission
# =============================================================================


def enqueue_listening_audio_job(payload: dict[str, Any], request_id: str | None = None) -> None:
    """Queue the worker task on the audio queue.

    Raises whatever the broker client raises; the caller turns it into a 500.
    """
    from readlisten.tasks import create_listening_audio

    create_listening_audio.apply_async(
        kwargs={**payload, "request_id": request_id},
        queue=AUDIO_QUEUE,
    )


def submit_listening_audio(
    db: Session,
    *,
    user_id: UUID,
    rl_item_id: int,
    dispatch: JobDispatcher,
    settings: Settings | None = None,
    request_id: str | None = None,
) -> dict[str, Any]:
    """Check eligibility and hand the job to the worker.

    Order: item exists -> no audio and no job running -> enough tokens -> dispatch.
    No state is mutated here; the worker takes the lock.

    Raises:
        NotFoundError: Item missing (404).
        ConflictError: Audio in progress or already exists (409).
        ApiError(E_INSUFFICIENT_TOKENS): Balance below the minimum (402).
        ApiError(E_DB_ERROR / E_DISPATCH_FAILED): Store or broker failure (500).
    """
    if settings is None:
        settings = get_settings()

    try:
        item = rl_items_service.get_rl_item(db, rl_item_id)
    except SQLAlchemyError as e:
        logger.exception("rl_item_fetch_failed", rl_item_id=rl_item_id, error=str(e))
        raise ApiError(ApiErrorCode.E_DB_ERROR, "DB error fetching rl_item") from e

    ref = item.audio_ref
    if ref.state is AudioRefState.in_progress:
        raise ConflictError(
            ApiErrorCode.E_AUDIO_IN_PROGRESS, "audio creation already in progress"
        )
    if ref.state is AudioRefState.ready:
        raise ConflictError(ApiErrorCode.E_AUDIO_EXISTS, "l_item already exists")

    try:
        balance = tokens_service.get_balance(db, user_id)
    except SQLAlchemyError as e:
        logger.exception("token_balance_fetch_failed", user_id=str(user_id), error=str(e))
        raise ApiError(ApiErrorCode.E_DB_ERROR, "DB error fetching tokens") from e

    if not tokens_service.has_sufficient_tokens(balance, settings.min_tokens_required):
        logger.info(
            "listening_audio_insufficient_tokens",
            user_id=str(user_id),
            rl_item_id=rl_item_id,
            total=balance.total,
            required=settings.min_tokens_required,
        )
        raise ApiError(ApiErrorCode.E_INSUFFICIENT_TOKENS, "Insufficient tokens")

    payload = {"user_id": str(user_id), "rl_item_id": rl_item_id, "r_item": item.r_item}
    try:
        dispatch(payload, request_id)
    except Exception as e:
        logger.exception("listening_audio_dispatch_failed", rl_item_id=rl_item_id, error=str(e))
        raise ApiError(ApiErrorCode.E_DISPATCH_FAILED, "failed to dispatch audio job") from e

    logger.info("listening_audio_dispatched", user_id=str(user_id), rl_item_id=rl_item_id)
    return {"status": "processing", "rl_item_id": rl_item_id}


# =============================================================================
# Worker
# =============================================================================


def _parse_payload(payload: dict[str, Any]) -> tuple[UUID, int, str] | None:
    user_id = payload.get("user_id")
    rl_item_id = payload.get("rl_item_id")
    r_item = payload.get("r_item")
    if not user_id or rl_item_id in (None, "") or not r_item:
        return None
    try:
        return UUID(str(user_id)), int(rl_item_id), str(r_item)
    except (TypeError, ValueError):
        return None


def run_listening_audio_job(
    db: Session,
    payload: dict[str, Any],
    *,
    speech: SpeechGateway,
    storage: StorageClientBase,
    settings: Settings | None = None,
) -> dict[str, Any]:
    """Generate, store, link, and pay for one item's listening audio.

    Returns a status dict for logging: ``completed``, ``skipped`` (bad payload
    or lost reservation), or ``failed`` (rolled back).
    """
    if settings is None:
        settings = get_settings()

    parsed = _parse_payload(payload)
    if parsed is None:
        logger.error("listening_audio_invalid_payload", keys=sorted(payload))
        return {"status": "skipped", "reason": "invalid_payload"}
    user_id, rl_item_id, text = parsed

    with transaction(db):
        reserved = rl_items_service.reserve_audio_lock(db, rl_item_id)
    if not reserved:
        logger.info("listening_audio_skipped", rl_item_id=rl_item_id, reason="not_reservable")
        return {"status": "skipped", "reason": "not_reservable", "rl_item_id": rl_item_id}

    logger.info("listening_audio_started", rl_item_id=rl_item_id, user_id=str(user_id))

    stage = "synthesize"
    uploaded_key: str | None = None
    try:
        audio = speech.synthesize(text)

        stage = "upload"
        uid = uuid4()
        key = build_audio_path(uid, settings.audio_extension)
        storage.upload_object(key, audio, content_type=settings.audio_content_type)
        uploaded_key = key

        stage = "sign"
        if settings.storage_public:
            url = storage.public_url(key)
        else:
            url = storage.sign_download(key, expires_in=settings.signed_url_expiry_s)

        stage = "link"
        with transaction(db):
            db.add(LItem(uid=uid, rl_item_id=rl_item_id, s3_key=key, public_url=url))
            db.flush()
            if not rl_items_service.link_audio(db, rl_item_id, uid):
                raise AudioLockLostError(f"lock on rl_item {rl_item_id} was released")

            stage = "debit"
            balance = tokens_service.debit_for_audio_job(
                db, user_id, settings.min_tokens_required
            )
        uploaded_key = None
    except Exception as e:
        _roll_back(db, storage, rl_item_id, uploaded_key, stage=stage, error=e)
        return {"status": "failed", "stage": stage, "rl_item_id": rl_item_id, "error": str(e)}

    logger.info(
        "listening_audio_completed",
        rl_item_id=rl_item_id,
        l_item_uid=str(uid),
        s3_key=key,
        free=balance.free,
        paid=balance.paid,
    )
    return {
        "status": "completed",
        "rl_item_id": rl_item_id,
        "l_item_uid": str(uid),
        "s3_key": key,
    }


def _roll_back(
    db: Session,
    storage: StorageClientBase,
    rl_item_id: int,
    uploaded_key: str | None,
    *,
    stage: str,
    error: Exception,
) -> None:
    logger.error(
        "listening_audio_failed",
        rl_item_id=rl_item_id,
        stage=stage,
        error=str(error),
        error_type=type(error).__name__,
        upstream_status=getattr(error, "status", None),
    )

    try:
        db.rollback()
        with transaction(db):
            rl_items_service.release_audio_lock(db, rl_item_id)
    except SQLAlchemyError as e:
        # The stale-lock sweep clears it later
        logger.error("listening_audio_rollback_failed", rl_item_id=rl_item_id, error=str(e))

    if uploaded_key is not None:
        storage.delete_object(uploaded_key)
        logger.info("listening_audio_upload_discarded", rl_item_id=rl_item_id, s3_key=uploaded_key)


# =============================================================================
# Download URLs
# =============================================================================


def get_l_item(db: Session, uid: UUID) -> LItem:
    """Fetch a live l_item.

    Raises:
        NotFoundError: No such l_item (404).
        ApiError(E_L_ITEM_DELETED): Soft-deleted (410).
        ApiError(E_DB_ERROR): Store failure (500).
    """
    try:
        l_item = db.get(LItem, uid)
    except SQLAlchemyError as e:
        logger.exception("l_item_fetch_failed", l_item_uid=str(uid), error=str(e))
        raise ApiError(ApiErrorCode.E_DB_ERROR, "DB error fetching l_item") from e

    if l_item is None:
        raise NotFoundError(ApiErrorCode.E_L_ITEM_NOT_FOUND, "l_item not found")
    if l_item.is_deleted:
        raise ApiError(ApiErrorCode.E_L_ITEM_DELETED, "l_item is deleted")
    return l_item


def resign_listening_url(
    db: Session,
    uid: UUID,
    *,
    storage: StorageClientBase,
    settings: Settings | None = None,
) -> str:
    """Derive a usable download URL for an l_item. Nothing is persisted.

    Public buckets return the recorded URL. Otherwise the object is signed
    again with the configured expiry. Items without a storage key fall back
    to their recorded URL.
    """
    if settings is None:
        settings = get_settings()

    l_item = get_l_item(db, uid)

    if settings.storage_public and l_item.public_url:
        return l_item.public_url

    if not l_item.s3_key:
        if l_item.public_url:
            return l_item.public_url
        raise ApiError(ApiErrorCode.E_STORAGE_MISSING, "No s3_key for l_item")

    try:
        url = storage.sign_download(l_item.s3_key, expires_in=settings.signed_url_expiry_s)
    except StorageError as e:
        logger.error("listening_url_sign_failed", l_item_uid=str(uid), error=e.message)
        raise ApiError(ApiErrorCode.E_SIGN_DOWNLOAD_FAILED, "failed to sign url") from e

    logger.info("listening_url_resigned", l_item_uid=str(uid))
    return url


def get_listening_url(
    db: Session,
    uid: UUID,
    *,
    storage: StorageClientBase,
    settings: Settings | None = None,
) -> dict[str, Any]:
    """Return the l_item's last known URL, signing one if none is recorded."""
    l_item = get_l_item(db, uid)
    url = l_item.public_url
    if not url:
        url = resign_listening_url(db, uid, storage=storage, settings=settings)
    return {"uid": str(l_item.uid), "public_url": url}

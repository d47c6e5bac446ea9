"""Content item (rl_items) service.

Owns every transition of ``rl_items.l_item_id``:

    Empty ──reserve──▶ Locked ──link──▶ Ready
                         │
                         └──release / sweep──▶ Empty

Each transition is a conditional UPDATE on the expected current value, so a
writer that lost a race matches zero rows instead of clobbering the winner.
None of these functions commit; callers own the transaction.
"""

from datetime import UTC, datetime
from uuid import UUID

from sqlalchemy import delete, select, update
from sqlalchemy.orm import Session

from readlisten.db.models import AudioRef, RlItem
from readlisten.db.session import transaction
from readlisten.errors import ApiErrorCode, NotFoundError
from readlisten.logging import get_logger

logger = get_logger(__name__)

_LOCKED = AudioRef.locked().to_column()


def get_rl_item(db: Session, rl_item_id: int) -> RlItem:
    """Fetch a content item by id.

    Raises:
        NotFoundError(E_RL_ITEM_NOT_FOUND): No such item.
    """
    item = db.get(RlItem, rl_item_id)
    if item is None:
        raise NotFoundError(ApiErrorCode.E_RL_ITEM_NOT_FOUND, "rl_item not found")
    return item


def get_owned_rl_item(db: Session, viewer_id: UUID, rl_item_id: int) -> RlItem:
    """Fetch a content item the viewer owns.

    Items owned by someone else are reported as missing so ids can't be probed.
    """
    item = get_rl_item(db, rl_item_id)
    if item.owner_id != viewer_id:
        raise NotFoundError(ApiErrorCode.E_RL_ITEM_NOT_FOUND, "rl_item not found")
    return item


def get_listening_state(db: Session, viewer_id: UUID, rl_item_id: int) -> dict:
    """Return the item's audio reference in wire form."""
    ref = get_owned_rl_item(db, viewer_id, rl_item_id).audio_ref
    return {
        "rl_item_id": rl_item_id,
        "state": ref.state.value,
        "l_item_id": str(ref.uid) if ref.uid else None,
    }


def delete_rl_item(db: Session, viewer_id: UUID, rl_item_id: int) -> str:
    """Delete a content item on behalf of its owner.

    Items with no audio are removed outright ("hard"). Items with audio, or
    with a job in flight, are only flagged ``delete_requested`` ("requested")
    so the audio artifact and the running job are left intact.
    """
    with transaction(db):
        item = get_owned_rl_item(db, viewer_id, rl_item_id)

        if item.audio_ref.is_empty:
            result = db.execute(
                delete(RlItem)
                .where(RlItem.id == rl_item_id, RlItem.l_item_id.is_(None))
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 1:
                db.expunge(item)
                logger.info("rl_item_deleted", rl_item_id=rl_item_id, mode="hard")
                return "hard"

        # Audio exists or a job took the lock between the read and the delete
        db.execute(
            update(RlItem)
            .where(RlItem.id == rl_item_id)
            .values(delete_requested=True)
            .execution_options(synchronize_session=False)
        )

    logger.info("rl_item_deleted", rl_item_id=rl_item_id, mode="requested")
    return "requested"


def reserve_audio_lock(db: Session, rl_item_id: int, now: datetime | None = None) -> bool:
    """Empty -> Locked. Returns False if the item is not Empty (or is gone)."""
    result = db.execute(
        update(RlItem)
        .where(RlItem.id == rl_item_id, RlItem.l_item_id.is_(None))
        .values(l_item_id=_LOCKED, audio_requested_at=now or datetime.now(UTC))
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def link_audio(db: Session, rl_item_id: int, uid: UUID) -> bool:
    """Locked -> Ready(uid). Returns False if the lock is no longer held."""
    result = db.execute(
        update(RlItem)
        .where(RlItem.id == rl_item_id, RlItem.l_item_id == _LOCKED)
        .values(l_item_id=AudioRef.ready(uid).to_column(), audio_requested_at=None)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def release_audio_lock(db: Session, rl_item_id: int) -> bool:
    """Locked -> Empty. Returns False if the item was not Locked."""
    result = db.execute(
        update(RlItem)
        .where(RlItem.id == rl_item_id, RlItem.l_item_id == _LOCKED)
        .values(l_item_id=None, audio_requested_at=None)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def find_stale_locks(db: Session, older_than: datetime) -> list[tuple[int, datetime | None]]:
    """List (id, audio_requested_at) of items locked since before ``older_than``.

    Locks with no timestamp are treated as stale.
    """
    rows = db.execute(
        select(RlItem.id, RlItem.audio_requested_at)
        .where(
            RlItem.l_item_id == _LOCKED,
            (RlItem.audio_requested_at.is_(None)) | (RlItem.audio_requested_at < older_than),
        )
        .order_by(RlItem.id)
    ).all()
    return [(row.id, row.audio_requested_at) for row in rows]


def clear_stale_lock(db: Session, rl_item_id: int, older_than: datetime) -> bool:
    """Locked (stale) -> Empty, re-checking staleness in the UPDATE itself."""
    result = db.execute(
        update(RlItem)
        .where(
            RlItem.id == rl_item_id,
            RlItem.l_item_id == _LOCKED,
            (RlItem.audio_requested_at.is_(None)) | (RlItem.audio_requested_at < older_than),
        )
        .values(l_item_id=None, audio_requested_at=None)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1

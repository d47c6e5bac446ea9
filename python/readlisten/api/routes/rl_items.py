"""Content item routes (Bearer-authenticated).

Routes are transport-only:
- Extract viewer from request.state
- Call exactly one service function
- Return the response model or raise ApiError
"""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from readlisten.api.deps import get_db
from readlisten.auth.middleware import Viewer, get_viewer
from readlisten.schemas.listening import DeleteRlItemOut, ListeningStateOut
from readlisten.services import rl_items as rl_items_service

router = APIRouter()


@router.get("/rl_items/{rl_item_id}/listening")
def get_listening_state(
    rl_item_id: int,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    """Current audio state of the viewer's content item.

    Polled by the client while a job runs. Returns 404 for items the viewer
    does not own (masks existence).
    """
    result = rl_items_service.get_listening_state(db, viewer.user_id, rl_item_id)
    return ListeningStateOut(**result).model_dump()


@router.delete("/rl_items/{rl_item_id}")
def delete_rl_item(
    rl_item_id: int,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    """Delete the viewer's content item (hard, or flagged when audio exists)."""
    mode = rl_items_service.delete_rl_item(db, viewer.user_id, rl_item_id)
    return DeleteRlItemOut(deleted=mode).model_dump()

"""Listening audio item routes (Bearer-authenticated)."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from readlisten.api.deps import get_db, get_storage
from readlisten.auth.middleware import Viewer, get_viewer
from readlisten.config import get_settings
from readlisten.errors import ApiErrorCode, NotFoundError
from readlisten.schemas.listening import ListeningUrlOut
from readlisten.services import listening_audio as listening_service
from readlisten.storage.client import StorageClientBase

router = APIRouter()


@router.get("/l_items/{uid}")
def get_l_item(
    uid: str,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    storage: Annotated[StorageClientBase, Depends(get_storage)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    """Last known download URL of an l_item.

    The URL may be a signed one that has since expired; clients repair that
    through POST /resign-listening-url. Malformed ids read as not found.
    """
    try:
        l_item_uid = UUID(uid)
    except ValueError as e:
        raise NotFoundError(ApiErrorCode.E_L_ITEM_NOT_FOUND, "l_item not found") from e

    result = listening_service.get_listening_url(
        db, l_item_uid, storage=storage, settings=get_settings()
    )
    return ListeningUrlOut(**result).model_dump()

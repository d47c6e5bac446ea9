"""Current user endpoints.

Returns information about the authenticated viewer.
"""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from readlisten.api.deps import get_db
from readlisten.auth.middleware import Viewer, get_viewer
from readlisten.config import get_settings
from readlisten.schemas.listening import TokenBalanceOut
from readlisten.services import tokens as tokens_service

router = APIRouter()


@router.get("/me/tokens")
def get_my_tokens(
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    """Get the viewer's token balance.

    Provisions the ledger row with the default free allowance on first call.
    """
    balance = tokens_service.ensure_token_balance(
        db, viewer.user_id, default_free=get_settings().default_free_tokens
    )
    return TokenBalanceOut(
        user_id=str(balance.user_id), free=balance.free, paid=balance.paid
    ).model_dump()

"""Listening audio job routes.

Browser-callable endpoints. The credential travels in the JSON body as
``jwt_token``, so these routes verify it themselves rather than relying on
AuthMiddleware.

Routes are transport-only:
- Validate presence of body fields
- Verify the credential
- Call exactly one service function
"""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Body, Depends, Request
from sqlalchemy.orm import Session

from readlisten.api.deps import get_db, get_job_dispatcher, get_storage, get_token_verifier
from readlisten.auth.verifier import TokenVerifier, authenticate
from readlisten.config import get_settings
from readlisten.errors import ApiErrorCode, InvalidRequestError, NotFoundError
from readlisten.logging import set_user_id
from readlisten.responses import ok_envelope
from readlisten.schemas.listening import (
    CreateListeningAudioRequest,
    ListeningJobOut,
    ResignedUrlOut,
    ResignListeningUrlRequest,
)
from readlisten.services import listening_audio as listening_service
from readlisten.services.listening_audio import JobDispatcher
from readlisten.storage.client import StorageClientBase

router = APIRouter()


@router.post("/create-listening-audio")
def create_listening_audio(
    request: Request,
    verifier: Annotated[TokenVerifier, Depends(get_token_verifier)],
    dispatch: Annotated[JobDispatcher, Depends(get_job_dispatcher)],
    db: Annotated[Session, Depends(get_db)],
    body: Annotated[CreateListeningAudioRequest | None, Body()] = None,
) -> dict:
    """Queue listening audio generation for a content item.

    Replies as soon as the job is handed to the worker; the client polls
    GET /rl_items/{id}/listening for the outcome.
    """
    if body is None or not body.is_complete:
        raise InvalidRequestError(
            ApiErrorCode.E_INVALID_REQUEST, "jwt_token and rl_item_id are required"
        )

    user_id = authenticate(verifier, body.jwt_token)
    set_user_id(str(user_id))

    result = listening_service.submit_listening_audio(
        db,
        user_id=user_id,
        rl_item_id=body.rl_item_id,
        dispatch=dispatch,
        settings=get_settings(),
        request_id=getattr(request.state, "request_id", None),
    )
    return ListeningJobOut(**result).model_dump()


@router.post("/resign-listening-url", dependencies=[Depends(ok_envelope)])
def resign_listening_url(
    verifier: Annotated[TokenVerifier, Depends(get_token_verifier)],
    storage: Annotated[StorageClientBase, Depends(get_storage)],
    db: Annotated[Session, Depends(get_db)],
    body: Annotated[ResignListeningUrlRequest | None, Body()] = None,
) -> dict:
    """Derive a fresh download URL for an existing l_item.

    Error bodies on this route carry ``ok: false``.
    """
    if body is None or not body.is_complete:
        raise InvalidRequestError(
            ApiErrorCode.E_INVALID_REQUEST, "jwt_token and l_item_uid required"
        )

    user_id = authenticate(verifier, body.jwt_token)
    set_user_id(str(user_id))

    try:
        uid = UUID(body.l_item_uid)
    except ValueError as e:
        raise NotFoundError(ApiErrorCode.E_L_ITEM_NOT_FOUND, "l_item not found") from e

    url = listening_service.resign_listening_url(
        db, uid, storage=storage, settings=get_settings()
    )
    return ResignedUrlOut(public_url=url).model_dump()

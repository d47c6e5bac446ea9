"""Pydantic schemas for request/response validation."""

from readlisten.schemas.listening import (
    CreateListeningAudioRequest,
    DeleteRlItemOut,
    ListeningJobOut,
    ListeningStateOut,
    ListeningUrlOut,
    ResignedUrlOut,
    ResignListeningUrlRequest,
    TokenBalanceOut,
)

__all__ = [
    "CreateListeningAudioRequest",
    "DeleteRlItemOut",
    "ListeningJobOut",
    "ListeningStateOut",
    "ListeningUrlOut",
    "ResignedUrlOut",
    "ResignListeningUrlRequest",
    "TokenBalanceOut",
]

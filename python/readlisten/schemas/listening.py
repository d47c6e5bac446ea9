"""Listening audio Pydantic schemas.

Request fields are all optional at the schema level: the endpoints report
missing fields with their own fixed messages instead of a validation dump.
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict


class CreateListeningAudioRequest(BaseModel):
    """Body of POST /create-listening-audio."""

    model_config = ConfigDict(extra="ignore")

    jwt_token: str | None = None
    rl_item_id: int | None = None

    @property
    def is_complete(self) -> bool:
        return bool(self.jwt_token) and bool(self.rl_item_id)


class ResignListeningUrlRequest(BaseModel):
    """Body of POST /resign-listening-url."""

    model_config = ConfigDict(extra="ignore")

    jwt_token: str | None = None
    l_item_uid: str | None = None

    @property
    def is_complete(self) -> bool:
        return bool(self.jwt_token) and bool(self.l_item_uid)


class ListeningJobOut(BaseModel):
    status: Literal["processing"] = "processing"
    rl_item_id: int


class ResignedUrlOut(BaseModel):
    ok: Literal[True] = True
    public_url: str


class ListeningStateOut(BaseModel):
    """Audio reference of a content item, as polled by the client."""

    rl_item_id: int
    state: Literal["empty", "in_progress", "ready"]
    l_item_id: str | None


class ListeningUrlOut(BaseModel):
    uid: str
    public_url: str


class DeleteRlItemOut(BaseModel):
    deleted: Literal["hard", "requested"]


class TokenBalanceOut(BaseModel):
    user_id: str
    free: int
    paid: int

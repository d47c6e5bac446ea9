"""Test helpers for authentication and common test data.

Provides:
- Token minting for test authentication (HS256, shared secret)
- Header generation for Bearer-authenticated requests
- Row builders for rl_items, l_items and tokens
"""

import time
from uuid import UUID, uuid4

import jwt
from sqlalchemy.orm import Session

from readlisten.db.models import AudioRef, LItem, RlItem, TokenBalance

# Must match SUPABASE_JWT_SECRET set in conftest
TEST_JWT_SECRET = "test-supabase-jwt-secret-0123456789abcdef0123456789"
DEFAULT_EXPIRES_IN = 3600  # 1 hour

DEFAULT_TEXT = "The quick brown fox jumps over the lazy dog."


def mint_test_token(
    user_id: UUID | str,
    expires_in: int = DEFAULT_EXPIRES_IN,
    secret: str = TEST_JWT_SECRET,
    **extra_claims,
) -> str:
    """Mint a valid test access token, shaped like a Supabase one.

    Args:
        user_id: The user ID to set as the `sub` claim.
        expires_in: Token validity in seconds from now.
        secret: HS256 signing secret.
        **extra_claims: Additional claims to include in the token.
    """
    now = int(time.time())
    payload = {
        "sub": str(user_id),
        "aud": "authenticated",
        "role": "authenticated",
        "iat": now,
        "exp": now + expires_in,
        **extra_claims,
    }
    return jwt.encode(payload, secret, algorithm="HS256")


def mint_expired_token(user_id: UUID | str) -> str:
    """Mint a token that expired 1 hour ago (well past the clock skew)."""
    return mint_test_token(user_id, expires_in=-3600)


def mint_token_with_bad_signature(user_id: UUID | str) -> str:
    """Mint a token signed with a different secret."""
    return mint_test_token(user_id, secret="some-other-project-secret-0123456789abcdef")


def auth_headers(user_id: UUID | str, **token_kwargs) -> dict[str, str]:
    """Return headers dict with valid Authorization for the given user."""
    token = mint_test_token(user_id, **token_kwargs)
    return {"Authorization": f"Bearer {token}"}


def create_test_user_id() -> UUID:
    return uuid4()


# =============================================================================
# Row builders (each commits so API sessions see the data)
# =============================================================================


def create_rl_item(
    db: Session,
    owner_id: UUID | None = None,
    *,
    r_item: str | None = DEFAULT_TEXT,
    audio_ref: AudioRef | None = None,
    title: str = "Test item",
) -> int:
    item = RlItem(
        owner_id=owner_id,
        title=title,
        r_item=r_item,
        l_item_id=(audio_ref or AudioRef.empty()).to_column(),
    )
    db.add(item)
    db.commit()
    return item.id


def create_l_item(
    db: Session,
    rl_item_id: int | None = None,
    *,
    s3_key: str | None = None,
    public_url: str | None = None,
    is_deleted: bool = False,
) -> UUID:
    uid = uuid4()
    if s3_key is None:
        s3_key = f"files/{uid}.aac"
    db.add(
        LItem(
            uid=uid,
            rl_item_id=rl_item_id,
            s3_key=s3_key or None,
            public_url=public_url,
            is_deleted=is_deleted,
        )
    )
    db.commit()
    return uid


def set_token_balance(db: Session, user_id: UUID, free: int = 0, paid: int = 0) -> None:
    row = db.get(TokenBalance, user_id)
    if row is None:
        db.add(TokenBalance(user_id=user_id, free=free, paid=paid))
    else:
        row.free = free
        row.paid = paid
    db.commit()


def read_rl_item(db: Session, rl_item_id: int) -> RlItem | None:
    """Fresh read that bypasses the identity map."""
    db.expire_all()
    return db.get(RlItem, rl_item_id)


def read_token_balance(db: Session, user_id: UUID) -> tuple[int, int] | None:
    db.expire_all()
    row = db.get(TokenBalance, user_id)
    return None if row is None else (row.free, row.paid)


# =============================================================================
# Client SDK fakes
# =============================================================================


class FakeListeningApi:
    """In-memory stand-in for ReadListenClient.

    ``refs`` is consumed one per poll (the last one repeats); an Exception
    instance in it is raised instead. Set ``resign_gate`` to hold re-sign
    calls until the test releases them.
    """

    def __init__(self, refs=None, url="https://cdn.test/signed?v=1"):
        self.refs = list(refs or [])
        self.url = url
        self.poll_calls = 0
        self.url_calls = 0
        self.resign_calls = 0
        self.resign_gate = None
        self.probe_results: list[bool] = []
        self.url_error: Exception | None = None

    async def get_audio_ref(self, rl_item_id: int) -> AudioRef:
        self.poll_calls += 1
        ref = self.refs.pop(0) if len(self.refs) > 1 else self.refs[0]
        if isinstance(ref, Exception):
            raise ref
        return ref

    async def get_listening_url(self, uid) -> str:
        self.url_calls += 1
        if self.url_error is not None:
            raise self.url_error
        return self.url

    async def resign_listening_url(self, uid) -> str:
        self.resign_calls += 1
        if self.resign_gate is not None:
            await self.resign_gate.wait()
        return f"https://cdn.test/signed?v={self.resign_calls + 1}"

    async def probe_url(self, url: str) -> bool:
        return self.probe_results.pop(0) if self.probe_results else True

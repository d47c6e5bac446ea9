"""SQLAlchemy ORM models for readlisten.

Defines the tables touched by the listening-audio pipeline using SQLAlchemy 2.x
declarative patterns:

- rl_items: reading/listening content items (the job's source record)
- l_items: generated listening audio artifacts
- tokens: per-user credit ledger

rl_items.l_item_id is read and written only through readlisten.audio_ref.AudioRef.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Text,
    Uuid,
    false,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from readlisten.audio_ref import AUDIO_IN_PROGRESS_SENTINEL, AudioRef, AudioRefState

__all__ = [
    "AUDIO_IN_PROGRESS_SENTINEL",
    "AudioRef",
    "AudioRefState",
    "Base",
    "LItem",
    "RlItem",
    "TokenBalance",
]


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


# =============================================================================
# Models
# =============================================================================


class RlItem(Base):
    """Reading/listening content item.

    Owned by the creating user. The listening pipeline reads r_item (source
    text) and mutates l_item_id / audio_requested_at.
    """

    __tablename__ = "rl_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    owner_id: Mapped[UUID | None] = mapped_column(Uuid, nullable=True)
    title: Mapped[str | None] = mapped_column(Text, nullable=True)
    r_item: Mapped[str | None] = mapped_column(Text, nullable=True)
    l_item_id: Mapped[UUID | None] = mapped_column(Uuid, nullable=True)
    delete_requested: Mapped[bool] = mapped_column(
        Boolean, server_default=false(), default=False, nullable=False
    )
    # Set when a job takes the lock; cleared with it. Drives the stale-lock sweep.
    audio_requested_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    __table_args__ = (Index("ix_rl_items_l_item_id", "l_item_id"),)

    @property
    def audio_ref(self) -> AudioRef:
        """The item's audio reference as a tagged value."""
        return AudioRef.from_column(self.l_item_id)


class LItem(Base):
    """Generated listening audio artifact.

    Created once by the worker after synthesis and upload succeed. The audio
    bytes live in storage under s3_key; public_url is the last known URL
    (stable public URL, or a signed URL that expires).
    """

    __tablename__ = "l_items"

    uid: Mapped[UUID] = mapped_column(Uuid, primary_key=True)
    rl_item_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("rl_items.id", ondelete="SET NULL"),
        nullable=True,
    )
    s3_key: Mapped[str | None] = mapped_column(Text, nullable=True)
    public_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_deleted: Mapped[bool] = mapped_column(
        Boolean, server_default=false(), default=False, nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )


class TokenBalance(Base):
    """Per-user credit ledger.

    Debited by the listening worker after a successful job: free credits are
    consumed first, the remainder comes out of paid.
    """

    __tablename__ = "tokens"

    user_id: Mapped[UUID] = mapped_column(Uuid, primary_key=True)
    free: Mapped[int] = mapped_column(Integer, server_default="0", default=0, nullable=False)
    paid: Mapped[int] = mapped_column(Integer, server_default="0", default=0, nullable=False)
    free_renewal_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    __table_args__ = (CheckConstraint("free >= 0", name="ck_tokens_free_non_negative"),)

    @property
    def total(self) -> int:
        return self.free + self.paid

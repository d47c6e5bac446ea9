"""Database module for readlisten.

Provides engine creation, session management, transaction helpers, and ORM models.
"""

from readlisten.db.engine import create_db_engine, get_engine
from readlisten.db.models import (
    AUDIO_IN_PROGRESS_SENTINEL,
    AudioRef,
    AudioRefState,
    Base,
    LItem,
    RlItem,
    TokenBalance,
)
from readlisten.db.session import get_db, transaction

__all__ = [
    # Engine and session
    "create_db_engine",
    "get_engine",
    "get_db",
    "transaction",
    # Base
    "Base",
    # Audio reference
    "AUDIO_IN_PROGRESS_SENTINEL",
    "AudioRef",
    "AudioRefState",
    # Models
    "RlItem",
    "LItem",
    "TokenBalance",
]

"""Token ledger service.

Per-user credit balance split into ``free`` and ``paid``. Free credits are
spent first. Balances are read by the submission endpoint (eligibility) and
decremented by the worker after a successful job.
"""

from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import case, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from readlisten.db.models import TokenBalance
from readlisten.db.session import transaction
from readlisten.logging import get_logger

logger = get_logger(__name__)


class TokenLedgerError(Exception):
    """The ledger row needed for a debit does not exist."""


@dataclass(frozen=True)
class Balance:
    user_id: UUID
    free: int
    paid: int

    @property
    def total(self) -> int:
        return self.free + self.paid


def get_balance(db: Session, user_id: UUID) -> Balance:
    """Read a user's balance. A missing row reads as zero."""
    row = db.execute(
        select(TokenBalance.free, TokenBalance.paid).where(TokenBalance.user_id == user_id)
    ).first()
    if row is None:
        return Balance(user_id=user_id, free=0, paid=0)
    return Balance(user_id=user_id, free=row.free, paid=row.paid)


def has_sufficient_tokens(balance: Balance, required: int) -> bool:
    return balance.total >= required


def ensure_token_balance(db: Session, user_id: UUID, default_free: int = 0) -> Balance:
    """Provision the user's ledger row if absent and return the balance.

    Race-safe and idempotent: uses INSERT ... ON CONFLICT DO NOTHING so
    concurrent first requests converge on one row.
    """
    dialect = db.get_bind().dialect.name
    insert = sqlite.insert if dialect == "sqlite" else postgresql.insert

    with transaction(db):
        db.execute(
            insert(TokenBalance)
            .values(user_id=user_id, free=default_free, paid=0)
            .on_conflict_do_nothing(index_elements=["user_id"])
        )

    return get_balance(db, user_id)


def debit_for_audio_job(db: Session, user_id: UUID, required: int) -> Balance:
    """Debit ``required`` credits in a single UPDATE against the current row.

    Both SET expressions read the pre-update row, so concurrent debits for the
    same user serialize on the row lock instead of overwriting each other.
    Does not commit; the caller owns the transaction.

    Raises:
        TokenLedgerError: The user has no ledger row.
    """
    use_from_free = case((TokenBalance.free < required, TokenBalance.free), else_=required)

    row = db.execute(
        update(TokenBalance)
        .where(TokenBalance.user_id == user_id)
        .values(
            free=TokenBalance.free - use_from_free,
            paid=TokenBalance.paid - (required - use_from_free),
        )
        .returning(TokenBalance.free, TokenBalance.paid)
        .execution_options(synchronize_session=False)
    ).first()

    if row is None:
        raise TokenLedgerError(f"no token balance for user {user_id}")

    if row.paid < 0:
        logger.warning(
            "token_balance_negative",
            user_id=str(user_id),
            free=row.free,
            paid=row.paid,
            debited=required,
        )

    return Balance(user_id=user_id, free=row.free, paid=row.paid)

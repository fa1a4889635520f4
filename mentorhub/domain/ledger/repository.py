"""Ledger repository - Balance updates and transaction rows"""

from typing import Optional

from sqlalchemy import func, update
from sqlalchemy.orm import Session, joinedload

from ...models import Transaction, User

# Float balances; sub-cent drift is not an overdraft
BALANCE_TOLERANCE = 0.005


class LedgerRepository:
    """Repository for ledger database operations. Never commits; the caller owns the transaction."""

    @staticmethod
    def get_by_idempotency_key(db: Session, user_id: int, key: str) -> Optional[Transaction]:
        return (
            db.query(Transaction)
            .filter(Transaction.user_id == user_id, Transaction.idempotency_key == key)
            .first()
        )

    @staticmethod
    def apply_delta(db: Session, user_id: int, amount: float) -> bool:
        """
        Add `amount` to the user's balance in one conditional UPDATE.

        Debits only match while the resulting balance stays non-negative.
        Returns False when no row matched (unknown user or insufficient funds).
        """
        stmt = update(User).where(User.id == user_id)
        if amount < 0:
            stmt = stmt.where(User.balance + amount >= -BALANCE_TOLERANCE)
        stmt = stmt.values(balance=User.balance + amount).execution_options(synchronize_session="fetch")
        result = db.execute(stmt)
        return result.rowcount == 1

    @staticmethod
    def get_balance(db: Session, user_id: int) -> Optional[float]:
        return db.query(User.balance).filter(User.id == user_id).scalar()

    @staticmethod
    def add_transaction(db: Session, **fields) -> Transaction:
        transaction = Transaction(**fields)
        db.add(transaction)
        db.flush()
        return transaction

    @staticmethod
    def list_for_user(db: Session, user_id: int, limit: Optional[int] = None) -> list[Transaction]:
        """Newest first, with the related user loaded"""
        query = (
            db.query(Transaction)
            .options(joinedload(Transaction.related_user))
            .filter(Transaction.user_id == user_id)
            .order_by(Transaction.created_at.desc(), Transaction.id.desc())
        )
        if limit:
            query = query.limit(limit)
        return query.all()

    @staticmethod
    def sum_completed(db: Session, user_id: int) -> float:
        total = (
            db.query(func.coalesce(func.sum(Transaction.amount), 0.0))
            .filter(Transaction.user_id == user_id, Transaction.status == "completed")
            .scalar()
        )
        return float(total or 0.0)

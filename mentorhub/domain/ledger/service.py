"""Ledger service - the only code path that changes a user's balance"""

import logging
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...database import run_in_transaction
from ...models import Transaction, User
from ...shared.validators import round_money
from .repository import BALANCE_TOLERANCE, LedgerRepository

logger = logging.getLogger(__name__)

TRANSACTION_TYPES = {
    "purchase",
    "session_payment",
    "session_earning",
    "refund",
    "payout",
    "credit",
    "add_funds",
}


class InsufficientFundsError(HTTPException):
    """Debit refused because it would take the balance below zero"""

    def __init__(self, detail: str = "Insufficient balance"):
        super().__init__(status_code=402, detail=detail)


class LedgerService:
    """
    Applies signed deltas to balances and records one Transaction per change.

    `apply` joins the caller's database transaction and never commits, so a
    booking or payout can debit and insert its own rows atomically.
    """

    def __init__(self, db: Session):
        self.db = db
        self.repo = LedgerRepository()

    def apply(
        self,
        user_id: int,
        amount: float,
        type: str,
        description: str,
        *,
        session_id: Optional[int] = None,
        group_session_id: Optional[int] = None,
        related_user_id: Optional[int] = None,
        meta: Optional[dict] = None,
        idempotency_key: Optional[str] = None,
        insufficient_message: Optional[str] = None,
    ) -> Transaction:
        if type not in TRANSACTION_TYPES:
            raise ValueError(f"Unknown transaction type: {type}")

        amount = round_money(amount)

        if idempotency_key:
            existing = self.repo.get_by_idempotency_key(self.db, user_id, idempotency_key)
            if existing:
                logger.info(f"🔁 Idempotent replay for user {user_id} key {idempotency_key}")
                return existing

        if not self.repo.apply_delta(self.db, user_id, amount):
            balance = self.repo.get_balance(self.db, user_id)
            if balance is None:
                raise HTTPException(status_code=404, detail="User not found")
            logger.warning(f"⚠️ Insufficient balance for user {user_id}: needs {-amount:.2f}, has {balance:.2f}")
            raise InsufficientFundsError(
                insufficient_message
                or f"Insufficient balance. Required: ${-amount:.2f}, available: ${balance:.2f}"
            )

        balance_after = round_money(self.repo.get_balance(self.db, user_id))
        transaction = self.repo.add_transaction(
            self.db,
            user_id=user_id,
            type=type,
            amount=amount,
            balance_after=balance_after,
            status="completed",
            description=description,
            session_id=session_id,
            group_session_id=group_session_id,
            related_user_id=related_user_id,
            meta=meta or {},
            idempotency_key=idempotency_key,
        )
        logger.info(f"💰 Ledger {type} {amount:+.2f} for user {user_id} (balance {balance_after:.2f})")
        return transaction

    def _commit_single(self, operation) -> Transaction:
        """Run a standalone ledger write in its own committed unit of work"""
        transaction = run_in_transaction(self.db, operation)
        self.db.refresh(transaction)
        return transaction

    def add_funds(self, user: User, amount: float) -> Transaction:
        if amount is None or amount <= 0:
            raise HTTPException(status_code=400, detail="Invalid amount")

        return self._commit_single(
            lambda: self.apply(user.id, amount, "add_funds", f"Added ${amount:.2f} to wallet")
        )

    def purchase_credits(self, user: User, amount: float, credits: int, payment_id: str) -> Transaction:
        """Credit a purchased package; the payment id makes a resubmitted purchase a no-op"""
        if not amount or amount <= 0 or not credits or credits <= 0 or not payment_id:
            raise HTTPException(status_code=400, detail="Amount, credits, and payment ID are required")

        return self._commit_single(
            lambda: self.apply(
                user.id,
                amount,
                "purchase",
                f"Purchased {credits} credits",
                meta={"credits": credits, "paymentId": payment_id},
                idempotency_key=f"purchase:{payment_id}",
            )
        )

    def get_balance(self, user: User) -> float:
        return round_money(self.repo.get_balance(self.db, user.id) or 0.0)

    def list_transactions(self, user: User, limit: Optional[int] = None) -> list[Transaction]:
        return self.repo.list_for_user(self.db, user.id, limit)

    def reconcile(self, user_id: int) -> dict:
        """Compare the stored balance with the sum of completed ledger rows"""
        balance = self.repo.get_balance(self.db, user_id)
        if balance is None:
            raise HTTPException(status_code=404, detail="User not found")

        ledger_total = self.repo.sum_completed(self.db, user_id)
        consistent = abs(balance - ledger_total) < BALANCE_TOLERANCE
        if not consistent:
            logger.error(f"❌ Ledger mismatch for user {user_id}: balance {balance} vs ledger {ledger_total}")
        return {
            "userId": user_id,
            "balance": round_money(balance),
            "ledgerTotal": round_money(ledger_total),
            "consistent": consistent,
        }

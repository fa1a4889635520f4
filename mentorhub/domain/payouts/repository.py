"""Payout repository - payout rows in the ledger and payout-eligible mentors"""

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from ...models import MentorProfile, Transaction, User


class PayoutRepository:
    @staticmethod
    def list_payouts(db: Session, user_id: int, offset: int, limit: int) -> list[Transaction]:
        return (
            db.query(Transaction)
            .filter(Transaction.user_id == user_id, Transaction.type == "payout")
            .order_by(Transaction.created_at.desc(), Transaction.id.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )

    @staticmethod
    def payout_summary(db: Session, user_id: int) -> tuple[float, int, object]:
        """(total paid out as a positive amount, payout count, latest payout time)"""
        total, count, latest = (
            db.query(func.sum(Transaction.amount), func.count(Transaction.id), func.max(Transaction.created_at))
            .filter(
                Transaction.user_id == user_id,
                Transaction.type == "payout",
                Transaction.status == "completed",
            )
            .one()
        )
        return (-float(total) if total else 0.0), int(count or 0), latest

    @staticmethod
    def auto_payout_candidates(db: Session, minimum: float) -> list[User]:
        mentors = (
            db.query(User)
            .join(MentorProfile, MentorProfile.user_id == User.id)
            .options(joinedload(User.mentor_profile))
            .filter(MentorProfile.status == "approved", User.balance >= minimum)
            .all()
        )
        return [m for m in mentors if m.is_mentor and (m.payout_settings or {}).get("auto_payout")]

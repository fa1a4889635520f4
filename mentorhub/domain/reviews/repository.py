"""Review repository"""

from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from ...models import Review


class ReviewRepository:
    @staticmethod
    def get_for_session(db: Session, session_id: int, reviewer_id: int) -> Optional[Review]:
        return (
            db.query(Review).filter(Review.session_id == session_id, Review.reviewer_id == reviewer_id).first()
        )

    @staticmethod
    def list_for_mentor(db: Session, mentor_id: int, offset: int = 0, limit: int = 10) -> list[Review]:
        return (
            db.query(Review)
            .options(joinedload(Review.reviewer), joinedload(Review.session))
            .filter(Review.mentor_id == mentor_id)
            .order_by(Review.created_at.desc(), Review.id.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )

    @staticmethod
    def count_for_mentor(db: Session, mentor_id: int) -> int:
        return db.query(Review).filter(Review.mentor_id == mentor_id).count()

    @staticmethod
    def rating_counts(db: Session, mentor_id: int) -> dict[int, int]:
        rows = (
            db.query(Review.rating, func.count(Review.id))
            .filter(Review.mentor_id == mentor_id)
            .group_by(Review.rating)
            .all()
        )
        return {int(rating): int(count) for rating, count in rows}

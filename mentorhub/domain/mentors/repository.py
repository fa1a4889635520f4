"""Mentor repository - Database operations for mentor profiles and their activity"""

from datetime import datetime
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from ...models import MentoringSession, MentorProfile, Review, User


class MentorRepository:
    """Repository for mentor database operations"""

    @staticmethod
    def get_user_with_profile(db: Session, user_id: int) -> Optional[User]:
        return db.query(User).options(joinedload(User.mentor_profile)).filter(User.id == user_id).first()

    @staticmethod
    def list_approved(
        db: Session,
        min_price: Optional[float] = None,
        max_price: Optional[float] = None,
        min_rating: Optional[float] = None,
        max_rating: Optional[float] = None,
        exclude_ids: Optional[set[int]] = None,
    ) -> list[User]:
        """Approved mentors, with numeric filters applied in SQL"""
        query = (
            db.query(User)
            .join(MentorProfile, MentorProfile.user_id == User.id)
            .options(joinedload(User.mentor_profile))
            .filter(MentorProfile.status == "approved", User.blocked.is_(False))
        )
        if min_price is not None:
            query = query.filter(MentorProfile.hourly_rate >= min_price)
        if max_price is not None:
            query = query.filter(MentorProfile.hourly_rate <= max_price)
        if min_rating is not None:
            query = query.filter(MentorProfile.rating >= min_rating)
        if max_rating is not None:
            query = query.filter(MentorProfile.rating <= max_rating)
        if exclude_ids:
            query = query.filter(User.id.notin_(exclude_ids))
        # Role membership lives in a JSON list; filter it here to stay dialect-neutral
        return [u for u in query.all() if u.is_mentor]

    @staticmethod
    def completed_sessions(db: Session, mentor_id: int, since: Optional[datetime] = None) -> list[MentoringSession]:
        query = db.query(MentoringSession).filter(
            MentoringSession.mentor_id == mentor_id, MentoringSession.status == "completed"
        )
        if since is not None:
            query = query.filter(MentoringSession.start_time >= since)
        return query.all()

    @staticmethod
    def review_aggregate(db: Session, mentor_id: int) -> tuple[float, int]:
        average, total = (
            db.query(func.avg(Review.rating), func.count(Review.id)).filter(Review.mentor_id == mentor_id).one()
        )
        return float(average or 0.0), int(total or 0)

    @staticmethod
    def sessions_as_mentee(db: Session, user_id: int) -> list[MentoringSession]:
        return (
            db.query(MentoringSession)
            .filter(MentoringSession.mentee_id == user_id)
            .order_by(MentoringSession.created_at.desc())
            .all()
        )

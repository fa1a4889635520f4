"""Review service - session reviews and mentor rating aggregates"""

import logging
import math

from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...models import MentoringSession, Review, User
from ..notifications.service import NotificationService
from .repository import ReviewRepository
from .schemas import ReviewCreate

logger = logging.getLogger(__name__)

RATING_VALUES = (1, 2, 3, 4, 5)
RECENT_LIMIT = 10


class ReviewService:
    def __init__(self, db: Session):
        self.db = db
        self.repo = ReviewRepository()
        self.notifications = NotificationService(db)

    def _get_mentor(self, mentor_id: int) -> User:
        mentor = self.db.query(User).filter(User.id == mentor_id).first()
        if not mentor or not mentor.is_mentor:
            raise HTTPException(status_code=404, detail="Mentor not found")
        return mentor

    def _recompute_rating(self, mentor_id: int) -> None:
        """Store the mentor's average rating and review count on their profile"""
        counts = self.repo.rating_counts(self.db, mentor_id)
        total = sum(counts.values())
        average = sum(r * c for r, c in counts.items()) / total if total else 0.0

        mentor = self.db.query(User).filter(User.id == mentor_id).first()
        if mentor and mentor.mentor_profile:
            mentor.mentor_profile.rating = round(average, 2)
            mentor.mentor_profile.review_count = total

    def create(self, data: ReviewCreate, user: User) -> Review:
        session = self.db.query(MentoringSession).filter(MentoringSession.id == data.sessionId).first()
        if not session:
            raise HTTPException(status_code=404, detail="Session not found")
        if session.mentee_id != user.id:
            raise HTTPException(status_code=403, detail="Only the mentee can review this session")
        if session.status != "completed":
            raise HTTPException(status_code=400, detail="You can only review completed sessions")
        if self.repo.get_for_session(self.db, session.id, user.id):
            raise HTTPException(status_code=400, detail="You have already reviewed this session")

        review = Review(
            session_id=session.id,
            reviewer_id=user.id,
            mentor_id=session.mentor_id,
            rating=data.rating,
            comment=data.comment,
        )
        try:
            self.db.add(review)
            self.db.flush()
            self._recompute_rating(session.mentor_id)
            self.notifications.new_review(review)
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise HTTPException(status_code=400, detail="You have already reviewed this session") from e

        self.db.refresh(review)
        logger.info(f"⭐ Review {review.id} ({review.rating}) for mentor {review.mentor_id}")
        return review

    def list_for_mentor(self, mentor_id: int, page: int = 1, limit: int = 10) -> tuple[list[Review], dict]:
        self._get_mentor(mentor_id)
        total = self.repo.count_for_mentor(self.db, mentor_id)
        reviews = self.repo.list_for_mentor(self.db, mentor_id, offset=(page - 1) * limit, limit=limit)
        return reviews, {
            "currentPage": page,
            "totalPages": math.ceil(total / limit) if limit else 0,
            "totalReviews": total,
        }

    def stats(self, mentor_id: int) -> dict:
        self._get_mentor(mentor_id)
        counts = self.repo.rating_counts(self.db, mentor_id)
        distribution = {rating: counts.get(rating, 0) for rating in RATING_VALUES}
        total = sum(distribution.values())
        average = sum(r * c for r, c in distribution.items()) / total if total else 0.0
        return {"averageRating": round(average, 2), "totalReviews": total, "ratingDistribution": distribution}

    def recent_for_current_mentor(self, user: User) -> list[Review]:
        return self.repo.list_for_mentor(self.db, user.id, limit=RECENT_LIMIT)

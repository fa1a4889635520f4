"""Mentor service - applications, discovery, profile and dashboard data"""

import logging
import math
from datetime import date, datetime, timedelta
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import MentoringSession, MentorProfile, User, empty_weekly_availability
from ...shared.time_utils import utcnow
from ...shared.validators import round_money
from ..sessions.repository import SessionRepository
from .repository import MentorRepository
from .schemas import MentorApplication, MentorProfileUpdate

logger = logging.getLogger(__name__)

SORT_FIELDS = {
    "rating": lambda u: u.mentor_profile.rating or 0.0,
    "price": lambda u: u.mentor_profile.hourly_rate or 0.0,
    "reviews": lambda u: u.mentor_profile.review_count or 0,
}

TREND_MONTHS = 6
UPCOMING_LIMIT = 10
RECOMMENDATION_LIMIT = 5


def _months_back(today: date, months: int) -> list[tuple[int, int]]:
    """(year, month) pairs for the last `months` months, oldest first, ending with the current one"""
    pairs = []
    year, month = today.year, today.month
    for _ in range(months):
        pairs.append((year, month))
        month -= 1
        if month == 0:
            year, month = year - 1, 12
    return list(reversed(pairs))


class MentorService:
    """Service layer for mentor business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = MentorRepository()
        self.sessions = SessionRepository()

    def _require_profile(self, user: User) -> MentorProfile:
        if not user.is_mentor or not user.mentor_profile:
            raise HTTPException(status_code=404, detail="Mentor profile not found")
        return user.mentor_profile

    # ------------------------------------------------------------------
    # Application
    # ------------------------------------------------------------------

    def apply(self, user: User, data: MentorApplication) -> User:
        if not data.bio or not data.bio.strip() or not data.expertise or data.hourlyRate is None:
            raise HTTPException(status_code=400, detail="Missing required fields: bio, expertise, or hourlyRate")

        profile = user.mentor_profile
        if profile and profile.status in ("approved", "pending"):
            detail = (
                "User is already an approved mentor"
                if profile.status == "approved"
                else "User has a pending mentor application"
            )
            raise HTTPException(status_code=400, detail=detail)

        if profile is None:
            profile = MentorProfile(user_id=user.id, weekly_availability=empty_weekly_availability())
            self.db.add(profile)
            user.mentor_profile = profile

        profile.bio = data.bio.strip()
        profile.expertise = data.expertise
        profile.hourly_rate = round_money(data.hourlyRate)
        profile.status = "pending"
        profile.rejection_reason = None

        if "mentor" not in (user.roles or []):
            user.roles = [*(user.roles or []), "mentor"]

        self.db.commit()
        self.db.refresh(user)
        logger.info(f"📝 Mentor application submitted by user {user.id}")
        return user

    # ------------------------------------------------------------------
    # Discovery
    # ------------------------------------------------------------------

    def search(
        self,
        search: Optional[str] = None,
        expertise: Optional[str] = None,
        min_price: Optional[float] = None,
        max_price: Optional[float] = None,
        min_rating: Optional[float] = None,
        max_rating: Optional[float] = None,
        sort_by: str = "rating",
        sort_order: str = "desc",
        page: int = 1,
        limit: int = 10,
    ) -> tuple[list[User], dict]:
        if sort_by not in SORT_FIELDS:
            raise HTTPException(status_code=400, detail=f"sortBy must be one of: {', '.join(SORT_FIELDS)}")
        if sort_order not in ("asc", "desc"):
            raise HTTPException(status_code=400, detail="sortOrder must be 'asc' or 'desc'")

        mentors = self.repo.list_approved(
            self.db, min_price=min_price, max_price=max_price, min_rating=min_rating, max_rating=max_rating
        )

        if expertise:
            wanted = expertise.strip().lower()
            mentors = [
                m for m in mentors if any(wanted == e.lower() for e in (m.mentor_profile.expertise or []))
            ]

        if search:
            needle = search.strip().lower()
            mentors = [
                m
                for m in mentors
                if needle in m.full_name.lower()
                or needle in (m.mentor_profile.bio or "").lower()
                or any(needle in e.lower() for e in (m.mentor_profile.expertise or []))
            ]

        mentors.sort(key=SORT_FIELDS[sort_by], reverse=sort_order == "desc")

        total = len(mentors)
        offset = (page - 1) * limit
        pagination = {
            "total": total,
            "pages": math.ceil(total / limit) if limit else 0,
            "page": page,
            "limit": limit,
        }
        return mentors[offset : offset + limit], pagination

    def get_public_mentor(self, mentor_id: int) -> User:
        user = self.repo.get_user_with_profile(self.db, mentor_id)
        if not user or not user.is_mentor or not user.mentor_profile or user.mentor_profile.status != "approved":
            raise HTTPException(status_code=404, detail="Mentor not found")
        return user

    def get_current_mentor(self, user: User) -> User:
        self._require_profile(user)
        return user

    def recommended(self, user: User) -> list[tuple[User, list[str]]]:
        """Approved mentors matching the user's interests or past topics, excluding mentors already booked"""
        history = self.repo.sessions_as_mentee(self.db, user.id)
        interests = {i.lower() for i in (user.interests or [])}
        past_topics = {s.topic.lower() for s in history}
        wanted = interests | past_topics
        if not wanted:
            return []

        booked = {s.mentor_id for s in history} | {user.id}
        candidates = []
        for mentor in self.repo.list_approved(self.db, exclude_ids=booked):
            matching = [e for e in (mentor.mentor_profile.expertise or []) if e.lower() in wanted]
            if matching:
                candidates.append((mentor, matching))

        candidates.sort(
            key=lambda pair: (pair[0].mentor_profile.rating or 0.0, pair[0].mentor_profile.review_count or 0),
            reverse=True,
        )
        return candidates[:RECOMMENDATION_LIMIT]

    # ------------------------------------------------------------------
    # Profile
    # ------------------------------------------------------------------

    def update_profile(self, user: User, data: MentorProfileUpdate) -> User:
        profile = self._require_profile(user)

        if data.bio is not None:
            profile.bio = data.bio.strip()
        if data.expertise is not None:
            profile.expertise = data.expertise
        if data.hourlyRate is not None:
            profile.hourly_rate = round_money(data.hourlyRate)

        self.db.commit()
        self.db.refresh(user)
        logger.info(f"✅ Mentor profile updated for user {user.id}")
        return user

    # ------------------------------------------------------------------
    # Dashboard
    # ------------------------------------------------------------------

    def stats(self, user: User) -> dict:
        self._require_profile(user)

        completed = self.repo.completed_sessions(self.db, user.id)
        average_rating, total_reviews = self.repo.review_aggregate(self.db, user.id)

        months = _months_back(utcnow().date(), TREND_MONTHS)
        buckets = {pair: {"sessions": 0, "earnings": 0.0} for pair in months}
        for session in completed:
            key = (session.start_time.year, session.start_time.month)
            if key in buckets:
                buckets[key]["sessions"] += 1
                buckets[key]["earnings"] += session.price

        return {
            "totalSessions": len(completed),
            "totalEarnings": round_money(sum(s.price for s in completed)),
            "totalStudents": len({s.mentee_id for s in completed}),
            "averageRating": round(average_rating, 2),
            "totalReviews": total_reviews,
            "trends": [
                {
                    "year": year,
                    "month": month,
                    "sessions": buckets[(year, month)]["sessions"],
                    "earnings": round_money(buckets[(year, month)]["earnings"]),
                }
                for year, month in months
            ],
        }

    def upcoming_sessions(
        self,
        user: User,
        statuses: Optional[list[str]] = None,
        upcoming: bool = False,
        day: Optional[date] = None,
    ) -> list[MentoringSession]:
        start_from = start_before = None
        if upcoming:
            start_from = utcnow()
        if day is not None:
            start_from = datetime(day.year, day.month, day.day)
            start_before = start_from + timedelta(days=1)

        return self.sessions.list_for_mentor(
            self.db,
            user.id,
            statuses=statuses,
            start_from=start_from,
            start_before=start_before,
            limit=UPCOMING_LIMIT,
        )

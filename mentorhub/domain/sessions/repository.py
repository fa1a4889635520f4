"""Session repository - Database operations for one-on-one sessions"""

from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session, joinedload

from ...models import MentoringSession, MentorProfile, User

# Longest bookable session; bounds the look-back window of overlap queries
MAX_SESSION_MINUTES = 240

ACTIVE_STATUSES = ("pending", "accepted", "confirmed")


class SessionRepository:
    """Repository for session database operations"""

    @staticmethod
    def get_by_id(db: Session, session_id: int) -> Optional[MentoringSession]:
        return (
            db.query(MentoringSession)
            .options(joinedload(MentoringSession.mentor), joinedload(MentoringSession.mentee))
            .filter(MentoringSession.id == session_id)
            .first()
        )

    @staticmethod
    def get_approved_mentor(db: Session, mentor_id: int) -> Optional[User]:
        """An unblocked user holding an approved mentor profile; role is checked by the caller"""
        return (
            db.query(User)
            .join(MentorProfile, MentorProfile.user_id == User.id)
            .options(joinedload(User.mentor_profile))
            .filter(User.id == mentor_id, MentorProfile.status == "approved", User.blocked.is_(False))
            .first()
        )

    @staticmethod
    def find_overlapping(
        db: Session,
        mentor_id: int,
        start: datetime,
        end: datetime,
        exclude_session_id: Optional[int] = None,
    ) -> list[MentoringSession]:
        """Non-cancelled sessions of the mentor intersecting [start, end)"""
        query = db.query(MentoringSession).filter(
            MentoringSession.mentor_id == mentor_id,
            MentoringSession.status != "cancelled",
            MentoringSession.start_time < end,
            MentoringSession.start_time > start - timedelta(minutes=MAX_SESSION_MINUTES),
        )
        if exclude_session_id is not None:
            query = query.filter(MentoringSession.id != exclude_session_id)
        return [s for s in query.all() if s.end_time > start]

    @staticmethod
    def list_for_user(db: Session, user_id: int) -> list[MentoringSession]:
        return (
            db.query(MentoringSession)
            .options(joinedload(MentoringSession.mentor), joinedload(MentoringSession.mentee))
            .filter(or_(MentoringSession.mentor_id == user_id, MentoringSession.mentee_id == user_id))
            .order_by(MentoringSession.start_time.desc(), MentoringSession.id.desc())
            .all()
        )

    @staticmethod
    def list_for_mentor(
        db: Session,
        mentor_id: int,
        statuses: Optional[list[str]] = None,
        start_from: Optional[datetime] = None,
        start_before: Optional[datetime] = None,
        limit: Optional[int] = None,
    ) -> list[MentoringSession]:
        query = (
            db.query(MentoringSession)
            .options(joinedload(MentoringSession.mentee))
            .filter(MentoringSession.mentor_id == mentor_id)
        )
        if statuses:
            query = query.filter(MentoringSession.status.in_(statuses))
        if start_from is not None:
            query = query.filter(MentoringSession.start_time >= start_from)
        if start_before is not None:
            query = query.filter(MentoringSession.start_time < start_before)
        query = query.order_by(MentoringSession.start_time.asc())
        if limit:
            query = query.limit(limit)
        return query.all()

    @staticmethod
    def list_starting_between(db: Session, start: datetime, end: datetime) -> list[MentoringSession]:
        """Accepted/confirmed sessions starting in the window that have not been reminded"""
        return (
            db.query(MentoringSession)
            .filter(
                MentoringSession.status.in_(("accepted", "confirmed")),
                MentoringSession.start_time >= start,
                MentoringSession.start_time < end,
                MentoringSession.reminder_sent.is_(False),
            )
            .all()
        )

    @staticmethod
    def add(db: Session, **fields) -> MentoringSession:
        session = MentoringSession(**fields)
        db.add(session)
        db.flush()
        return session

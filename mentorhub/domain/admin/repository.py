"""Admin repository - moderation queries across users and mentor profiles"""

from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session, joinedload

from ...models import ChatMessage, GroupSession, MentoringSession, MentorProfile, Review, Transaction, User


class AdminRepository:
    @staticmethod
    def list_users(db: Session) -> list[User]:
        return (
            db.query(User)
            .options(joinedload(User.mentor_profile))
            .order_by(User.created_at.desc(), User.id.desc())
            .all()
        )

    @staticmethod
    def get_user(db: Session, user_id: int) -> Optional[User]:
        return db.query(User).options(joinedload(User.mentor_profile)).filter(User.id == user_id).first()

    @staticmethod
    def users_by_profile_status(db: Session, status: str) -> list[User]:
        return (
            db.query(User)
            .join(MentorProfile, MentorProfile.user_id == User.id)
            .options(joinedload(User.mentor_profile))
            .filter(MentorProfile.status == status)
            .order_by(MentorProfile.created_at.asc())
            .all()
        )

    @staticmethod
    def count_users(db: Session) -> int:
        return db.query(User).count()

    @staticmethod
    def count_profiles(db: Session, status: str) -> int:
        return db.query(MentorProfile).filter(MentorProfile.status == status).count()

    @staticmethod
    def count_sessions(db: Session, status: Optional[str] = None) -> int:
        query = db.query(MentoringSession)
        if status:
            query = query.filter(MentoringSession.status == status)
        return query.count()

    @staticmethod
    def count_group_sessions(db: Session) -> int:
        return db.query(GroupSession).count()

    @staticmethod
    def has_history(db: Session, user_id: int) -> bool:
        """True when other users' records reference this user"""
        checks = (
            db.query(MentoringSession.id).filter(
                or_(MentoringSession.mentor_id == user_id, MentoringSession.mentee_id == user_id)
            ),
            db.query(GroupSession.id).filter(GroupSession.mentor_id == user_id),
            db.query(Review.id).filter(or_(Review.reviewer_id == user_id, Review.mentor_id == user_id)),
            db.query(ChatMessage.id).filter(ChatMessage.sender_id == user_id),
            db.query(Transaction.id).filter(Transaction.related_user_id == user_id),
        )
        return any(q.first() is not None for q in checks)

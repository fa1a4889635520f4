"""Group session repository"""

from datetime import datetime
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session, joinedload, selectinload

from ...models import GroupSession, GroupSessionParticipant, User


class GroupSessionRepository:
    @staticmethod
    def _base_query(db: Session):
        return db.query(GroupSession).options(
            joinedload(GroupSession.mentor).joinedload(User.mentor_profile),
            selectinload(GroupSession.participants).joinedload(GroupSessionParticipant.user),
        )

    @classmethod
    def get_by_id(cls, db: Session, group_session_id: int) -> Optional[GroupSession]:
        return cls._base_query(db).filter(GroupSession.id == group_session_id).first()

    @classmethod
    def find(
        cls,
        db: Session,
        mentor_id: Optional[int] = None,
        skill_level: Optional[str] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        search: Optional[str] = None,
    ) -> list[GroupSession]:
        query = cls._base_query(db)
        if mentor_id is not None:
            query = query.filter(GroupSession.mentor_id == mentor_id)
        if skill_level:
            query = query.filter(GroupSession.skill_level == skill_level)
        if start_date is not None:
            query = query.filter(GroupSession.start_time >= start_date)
        if end_date is not None:
            query = query.filter(GroupSession.start_time <= end_date)
        if search:
            pattern = f"%{search.strip()}%"
            query = query.filter(or_(GroupSession.title.ilike(pattern), GroupSession.description.ilike(pattern)))
        return query.order_by(GroupSession.start_time.asc()).all()

    @staticmethod
    def count_participants(db: Session, group_session_id: int) -> int:
        return (
            db.query(GroupSessionParticipant)
            .filter(GroupSessionParticipant.group_session_id == group_session_id)
            .count()
        )

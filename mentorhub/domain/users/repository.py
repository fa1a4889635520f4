"""User repository - Database operations for accounts"""

from typing import Optional

from sqlalchemy.orm import Session, joinedload

from ...models import User


class UserRepository:
    """Repository for user database operations"""

    @staticmethod
    def get_by_id(db: Session, user_id: int) -> Optional[User]:
        return (
            db.query(User).options(joinedload(User.mentor_profile)).filter(User.id == user_id).first()
        )

    @staticmethod
    def get_by_email(db: Session, email: str) -> Optional[User]:
        return db.query(User).filter(User.email == email.lower()).first()

    @staticmethod
    def username_exists(db: Session, username: str, exclude_user_id: Optional[int] = None) -> bool:
        query = db.query(User.id).filter(User.username == username)
        if exclude_user_id is not None:
            query = query.filter(User.id != exclude_user_id)
        return query.first() is not None

    @staticmethod
    def create_user(db: Session, **fields) -> User:
        user = User(**fields)
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    @staticmethod
    def save(db: Session, user: User) -> User:
        db.commit()
        db.refresh(user)
        return user

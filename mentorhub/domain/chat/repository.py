"""Chat repository"""

from typing import Optional

from sqlalchemy.orm import Session, selectinload

from ...models import Chat, ChatMessage, User


class ChatRepository:
    @staticmethod
    def list_for_user(db: Session, user_id: int) -> list[Chat]:
        return (
            db.query(Chat)
            .options(selectinload(Chat.participants))
            .filter(Chat.participants.any(User.id == user_id))
            .order_by(Chat.updated_at.desc(), Chat.id.desc())
            .all()
        )

    @staticmethod
    def get_for_user(db: Session, chat_id: int, user_id: int) -> Optional[Chat]:
        return (
            db.query(Chat)
            .options(selectinload(Chat.participants))
            .filter(Chat.id == chat_id, Chat.participants.any(User.id == user_id))
            .first()
        )

    @classmethod
    def find_between(cls, db: Session, user_a: int, user_b: int) -> Optional[Chat]:
        wanted = {user_a, user_b}
        for chat in cls.list_for_user(db, user_a):
            if {p.id for p in chat.participants} == wanted:
                return chat
        return None

    @staticmethod
    def messages(db: Session, chat_id: int) -> list[ChatMessage]:
        return (
            db.query(ChatMessage)
            .options(selectinload(ChatMessage.sender))
            .filter(ChatMessage.chat_id == chat_id)
            .order_by(ChatMessage.id.asc())
            .all()
        )

    @staticmethod
    def mark_read(db: Session, chat_id: int, reader_id: int) -> int:
        return (
            db.query(ChatMessage)
            .filter(
                ChatMessage.chat_id == chat_id,
                ChatMessage.sender_id != reader_id,
                ChatMessage.read.is_(False),
            )
            .update({ChatMessage.read: True}, synchronize_session="fetch")
        )

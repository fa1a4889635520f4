"""Chat service - two-party conversations, messages and unread counters"""

import logging
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import Chat, ChatMessage, User
from ...shared.time_utils import utcnow
from ..notifications.service import queue_emit
from .repository import ChatRepository
from .schemas import ConversationCreate, MessageCreate, MessageResponse

logger = logging.getLogger(__name__)


class ChatService:
    """Service layer for chat"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = ChatRepository()

    def _get_user(self, user_id: int, detail: str) -> User:
        user = self.db.query(User).filter(User.id == user_id).first()
        if not user:
            raise HTTPException(status_code=404, detail=detail)
        return user

    def _get_chat(self, chat_id: int, user: User) -> Chat:
        chat = self.repo.get_for_user(self.db, chat_id, user.id)
        if not chat:
            raise HTTPException(status_code=404, detail="Chat not found")
        return chat

    def _find_or_create(self, user: User, other: User, session_id: Optional[int] = None) -> tuple[Chat, bool]:
        if other.id == user.id:
            raise HTTPException(status_code=400, detail="You cannot start a conversation with yourself")

        chat = self.repo.find_between(self.db, user.id, other.id)
        if chat:
            return chat, False

        chat = Chat(session_id=session_id, unread_counts={str(user.id): 0, str(other.id): 0}, updated_at=utcnow())
        chat.participants = [user, other]
        self.db.add(chat)
        self.db.flush()
        return chat, True

    def list_chats(self, user: User) -> list[Chat]:
        return self.repo.list_for_user(self.db, user.id)

    def create_conversation(self, data: ConversationCreate, user: User) -> tuple[Chat, bool]:
        other = self._get_user(data.participantId, "Participant not found")
        chat, created = self._find_or_create(user, other, data.sessionId)
        self.db.commit()
        if created:
            logger.info(f"💬 Chat {chat.id} created between users {user.id} and {other.id}")
        return chat, created

    def get_messages(self, chat_id: int, user: User) -> tuple[Chat, list[ChatMessage]]:
        chat = self._get_chat(chat_id, user)
        return chat, self.repo.messages(self.db, chat.id)

    def send_message(self, data: MessageCreate, user: User) -> ChatMessage:
        if data.conversationId is not None:
            chat = self._get_chat(data.conversationId, user)
            recipient = next((p for p in chat.participants if p.id != user.id), None)
            if recipient is None:
                raise HTTPException(status_code=400, detail="Conversation has no recipient")
        else:
            recipient = self._get_user(data.recipientId, "Recipient not found")
            chat, _ = self._find_or_create(user, recipient, data.sessionId)

        now = utcnow()
        message = ChatMessage(chat_id=chat.id, sender_id=user.id, content=data.content, timestamp=now, read=False)
        self.db.add(message)

        counts = dict(chat.unread_counts or {})
        counts[str(recipient.id)] = int(counts.get(str(recipient.id), 0)) + 1
        chat.unread_counts = counts
        chat.last_message_content = data.content
        chat.last_message_at = now
        chat.updated_at = now
        self.db.flush()

        message.sender = user
        queue_emit(self.db, recipient.id, "new_message", MessageResponse.from_model(message).model_dump(mode="json"))
        self.db.commit()
        self.db.refresh(message)
        logger.info(f"💬 Message {message.id} sent in chat {chat.id}")
        return message

    def mark_read(self, chat_id: int, user: User) -> int:
        chat = self._get_chat(chat_id, user)
        updated = self.repo.mark_read(self.db, chat.id, user.id)

        counts = dict(chat.unread_counts or {})
        counts[str(user.id)] = 0
        chat.unread_counts = counts
        self.db.commit()
        return updated

    def unread_counts(self, user: User) -> dict:
        by_chat = {
            chat.id: int((chat.unread_counts or {}).get(str(user.id), 0)) for chat in self.list_chats(user)
        }
        return {"total": sum(by_chat.values()), "byChat": by_chat}

"""Chat schemas"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator


class ConversationCreate(BaseModel):
    participantId: int
    sessionId: Optional[int] = None


class MessageCreate(BaseModel):
    content: str = Field(min_length=1, max_length=2000)
    recipientId: Optional[int] = None
    conversationId: Optional[int] = None
    sessionId: Optional[int] = None

    @field_validator("content")
    @classmethod
    def strip_content(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Message content cannot be empty")
        return v

    @model_validator(mode="after")
    def require_target(self):
        if self.recipientId is None and self.conversationId is None:
            raise ValueError("recipientId or conversationId is required")
        return self


class ChatUser(BaseModel):
    id: int
    username: str
    firstName: str
    lastName: str
    avatar: Optional[str] = None

    @classmethod
    def from_model(cls, user) -> "ChatUser":
        return cls(
            id=user.id,
            username=user.username,
            firstName=user.first_name,
            lastName=user.last_name,
            avatar=user.avatar,
        )


class MessageResponse(BaseModel):
    id: int
    chatId: int
    sender: ChatUser
    content: str
    timestamp: Optional[datetime] = None
    read: bool

    @classmethod
    def from_model(cls, message) -> "MessageResponse":
        return cls(
            id=message.id,
            chatId=message.chat_id,
            sender=ChatUser.from_model(message.sender),
            content=message.content,
            timestamp=message.timestamp,
            read=bool(message.read),
        )


class LastMessage(BaseModel):
    content: str
    timestamp: Optional[datetime] = None


class ChatResponse(BaseModel):
    id: int
    participants: list[ChatUser]
    otherParticipant: Optional[ChatUser] = None
    sessionId: Optional[int] = None
    lastMessage: Optional[LastMessage] = None
    unreadCount: int = 0
    updatedAt: Optional[datetime] = None

    @classmethod
    def for_user(cls, chat, user_id: int) -> "ChatResponse":
        other = next((p for p in chat.participants if p.id != user_id), None)
        last = None
        if chat.last_message_content is not None:
            last = LastMessage(content=chat.last_message_content, timestamp=chat.last_message_at)
        return cls(
            id=chat.id,
            participants=[ChatUser.from_model(p) for p in chat.participants],
            otherParticipant=ChatUser.from_model(other) if other else None,
            sessionId=chat.session_id,
            lastMessage=last,
            unreadCount=int((chat.unread_counts or {}).get(str(user_id), 0)),
            updatedAt=chat.updated_at,
        )


class ChatMessagesResponse(BaseModel):
    chat: ChatResponse
    messages: list[MessageResponse]


class UnreadCountResponse(BaseModel):
    total: int
    byChat: dict[int, int]

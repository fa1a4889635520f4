"""Chat router"""

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...models import User
from ...rate_limiter import message_limiter
from .schemas import (
    ChatMessagesResponse,
    ChatResponse,
    ConversationCreate,
    MessageCreate,
    MessageResponse,
    UnreadCountResponse,
)
from .service import ChatService

router = APIRouter(prefix="/chat", tags=["Chat"])


def get_chat_service(db: Session = Depends(get_db)) -> ChatService:
    """Dependency injection for ChatService"""
    return ChatService(db)


@router.get("/conversations", response_model=list[ChatResponse])
async def list_conversations(
    current_user: User = Depends(get_current_user),
    service: ChatService = Depends(get_chat_service),
):
    return [ChatResponse.for_user(c, current_user.id) for c in service.list_chats(current_user)]


@router.post("/conversations", response_model=ChatResponse)
async def create_conversation(
    data: ConversationCreate,
    response: Response,
    current_user: User = Depends(get_current_user),
    service: ChatService = Depends(get_chat_service),
):
    """Open the conversation with another user, reusing an existing one"""
    chat, created = service.create_conversation(data, current_user)
    response.status_code = 201 if created else 200
    return ChatResponse.for_user(chat, current_user.id)


@router.get("/conversations/{chat_id}/messages", response_model=ChatMessagesResponse)
async def get_messages(
    chat_id: int,
    current_user: User = Depends(get_current_user),
    service: ChatService = Depends(get_chat_service),
):
    chat, messages = service.get_messages(chat_id, current_user)
    return ChatMessagesResponse(
        chat=ChatResponse.for_user(chat, current_user.id),
        messages=[MessageResponse.from_model(m) for m in messages],
    )


@router.put("/conversations/{chat_id}/read")
async def mark_conversation_read(
    chat_id: int,
    current_user: User = Depends(get_current_user),
    service: ChatService = Depends(get_chat_service),
):
    updated = service.mark_read(chat_id, current_user)
    return {"chatId": chat_id, "updated": updated}


@router.post("/messages", response_model=MessageResponse, status_code=201)
async def send_message(
    data: MessageCreate,
    _: None = Depends(message_limiter),
    current_user: User = Depends(get_current_user),
    service: ChatService = Depends(get_chat_service),
):
    return MessageResponse.from_model(service.send_message(data, current_user))


@router.get("/unread-count", response_model=UnreadCountResponse)
async def get_unread_count(
    current_user: User = Depends(get_current_user),
    service: ChatService = Depends(get_chat_service),
):
    return service.unread_counts(current_user)

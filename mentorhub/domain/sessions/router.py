"""Session router - booking, lifecycle and video endpoints"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...models import User
from ...rate_limiter import session_limiter, video_token_limiter
from .schemas import (
    FeedbackRequest,
    JoinRoomResponse,
    RescheduleRequest,
    SessionCreate,
    SessionEnvelope,
    SessionListResponse,
    SessionResponse,
    VideoTokenResponse,
)
from .service import SessionService

router = APIRouter(prefix="/sessions", tags=["Sessions"])


def get_session_service(db: Session = Depends(get_db)) -> SessionService:
    """Dependency injection for SessionService"""
    return SessionService(db)


def _envelope(session) -> SessionEnvelope:
    return SessionEnvelope(session=SessionResponse.from_model(session))


@router.post("", response_model=SessionEnvelope, status_code=201)
def book_session(
    data: SessionCreate,
    _: None = Depends(session_limiter),
    current_user: User = Depends(get_current_user),
    service: SessionService = Depends(get_session_service),
):
    """Book a session with a mentor, paying the price from the caller's balance"""
    return _envelope(service.book(data, current_user))


@router.get("", response_model=SessionListResponse)
def list_sessions(
    current_user: User = Depends(get_current_user),
    service: SessionService = Depends(get_session_service),
):
    sessions = service.list_sessions(current_user)
    return SessionListResponse(sessions=[SessionResponse.from_model(s) for s in sessions])


@router.get("/{session_id}", response_model=SessionEnvelope)
def get_session(
    session_id: int,
    current_user: User = Depends(get_current_user),
    service: SessionService = Depends(get_session_service),
):
    return _envelope(service.get_session(session_id, current_user))


@router.post("/{session_id}/accept", response_model=SessionEnvelope)
def accept_session(
    session_id: int,
    current_user: User = Depends(get_current_user),
    service: SessionService = Depends(get_session_service),
):
    return _envelope(service.accept(session_id, current_user))


@router.post("/{session_id}/confirm", response_model=SessionEnvelope)
def confirm_session(
    session_id: int,
    current_user: User = Depends(get_current_user),
    service: SessionService = Depends(get_session_service),
):
    return _envelope(service.confirm(session_id, current_user))


@router.post("/{session_id}/complete", response_model=SessionEnvelope)
async def complete_session(
    session_id: int,
    current_user: User = Depends(get_current_user),
    service: SessionService = Depends(get_session_service),
):
    return _envelope(await service.complete(session_id, current_user))


@router.post("/{session_id}/cancel", response_model=SessionEnvelope)
def cancel_session(
    session_id: int,
    current_user: User = Depends(get_current_user),
    service: SessionService = Depends(get_session_service),
):
    return _envelope(service.cancel(session_id, current_user))


@router.post("/{session_id}/reschedule", response_model=SessionEnvelope)
def reschedule_session(
    session_id: int,
    data: RescheduleRequest,
    current_user: User = Depends(get_current_user),
    service: SessionService = Depends(get_session_service),
):
    return _envelope(service.reschedule(session_id, data, current_user))


@router.post("/{session_id}/feedback", response_model=SessionEnvelope)
def leave_feedback(
    session_id: int,
    data: FeedbackRequest,
    current_user: User = Depends(get_current_user),
    service: SessionService = Depends(get_session_service),
):
    return _envelope(service.leave_feedback(session_id, data, current_user))


# ============================================================================
# VIDEO
# ============================================================================


@router.api_route("/{session_id}/token", methods=["GET", "POST"], response_model=VideoTokenResponse)
def get_video_token(
    session_id: int,
    _: None = Depends(video_token_limiter),
    current_user: User = Depends(get_current_user),
    service: SessionService = Depends(get_session_service),
):
    return service.video_token(session_id, current_user)


@router.post("/{session_id}/join", response_model=JoinRoomResponse)
async def join_session(
    session_id: int,
    current_user: User = Depends(get_current_user),
    service: SessionService = Depends(get_session_service),
):
    return await service.join(session_id, current_user)

"""Group session router"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...auth import get_current_user, require_mentor
from ...database import get_db
from ...models import User
from .schemas import (
    GroupSessionCreate,
    GroupSessionEnvelope,
    GroupSessionListResponse,
    GroupSessionResponse,
    GroupSessionUpdate,
)
from .service import GroupSessionService

router = APIRouter(prefix="/group-sessions", tags=["Group Sessions"])


def get_group_session_service(db: Session = Depends(get_db)) -> GroupSessionService:
    """Dependency injection for GroupSessionService"""
    return GroupSessionService(db)


def _envelope(gs) -> GroupSessionEnvelope:
    return GroupSessionEnvelope(groupSession=GroupSessionResponse.from_model(gs))


@router.get("", response_model=GroupSessionListResponse)
def list_group_sessions(
    status: Optional[str] = None,
    mentor: Optional[int] = None,
    topic: Optional[str] = None,
    skillLevel: Optional[str] = None,
    startDate: Optional[datetime] = None,
    endDate: Optional[datetime] = None,
    search: Optional[str] = None,
    service: GroupSessionService = Depends(get_group_session_service),
):
    sessions = service.list_sessions(
        status=status,
        mentor_id=mentor,
        topic=topic,
        skill_level=skillLevel,
        start_date=startDate,
        end_date=endDate,
        search=search,
    )
    return GroupSessionListResponse(groupSessions=[GroupSessionResponse.from_model(gs) for gs in sessions])


@router.get("/{group_session_id}", response_model=GroupSessionEnvelope)
def get_group_session(
    group_session_id: int,
    service: GroupSessionService = Depends(get_group_session_service),
):
    return _envelope(service.get_session(group_session_id))


@router.post("", response_model=GroupSessionEnvelope, status_code=201)
def create_group_session(
    data: GroupSessionCreate,
    current_user: User = Depends(require_mentor),
    service: GroupSessionService = Depends(get_group_session_service),
):
    return _envelope(service.create(data, current_user))


@router.patch("/{group_session_id}", response_model=GroupSessionEnvelope)
def update_group_session(
    group_session_id: int,
    data: GroupSessionUpdate,
    current_user: User = Depends(require_mentor),
    service: GroupSessionService = Depends(get_group_session_service),
):
    return _envelope(service.update(group_session_id, data, current_user))


@router.patch("/{group_session_id}/cancel", response_model=GroupSessionEnvelope)
def cancel_group_session(
    group_session_id: int,
    current_user: User = Depends(require_mentor),
    service: GroupSessionService = Depends(get_group_session_service),
):
    return _envelope(service.cancel(group_session_id, current_user))


@router.post("/{group_session_id}/join", response_model=GroupSessionEnvelope)
def join_group_session(
    group_session_id: int,
    current_user: User = Depends(get_current_user),
    service: GroupSessionService = Depends(get_group_session_service),
):
    return _envelope(service.join(group_session_id, current_user))


@router.delete("/{group_session_id}/leave", response_model=GroupSessionEnvelope)
def leave_group_session(
    group_session_id: int,
    current_user: User = Depends(get_current_user),
    service: GroupSessionService = Depends(get_group_session_service),
):
    return _envelope(service.leave(group_session_id, current_user))

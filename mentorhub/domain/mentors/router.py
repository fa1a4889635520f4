"""Mentor router - application, discovery, profile and dashboard endpoints"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user, require_mentor
from ...database import get_db
from ...models import User
from ..sessions.schemas import SessionListResponse, SessionResponse
from .schemas import (
    MentorApplication,
    MentorDetail,
    MentorProfileUpdate,
    MentorSearchResponse,
    MentorStats,
    MentorSummary,
)
from .service import MentorService

router = APIRouter(prefix="/mentors", tags=["Mentors"])


def get_mentor_service(db: Session = Depends(get_db)) -> MentorService:
    """Dependency injection for MentorService"""
    return MentorService(db)


# Static paths are registered before /{mentor_id}


@router.post("/apply")
async def apply_as_mentor(
    data: MentorApplication,
    current_user: User = Depends(get_current_user),
    service: MentorService = Depends(get_mentor_service),
):
    user = service.apply(current_user, data)
    return {"message": "Mentor application submitted successfully", "mentor": MentorDetail.from_model(user)}


@router.get("/stats", response_model=MentorStats)
async def get_mentor_stats(
    current_user: User = Depends(require_mentor),
    service: MentorService = Depends(get_mentor_service),
):
    return service.stats(current_user)


@router.get("/sessions", response_model=SessionListResponse)
async def get_upcoming_sessions(
    status: Optional[list[str]] = Query(None),
    upcoming: bool = False,
    date: Optional[date] = None,
    current_user: User = Depends(require_mentor),
    service: MentorService = Depends(get_mentor_service),
):
    sessions = service.upcoming_sessions(current_user, statuses=status, upcoming=upcoming, day=date)
    return SessionListResponse(sessions=[SessionResponse.from_model(s) for s in sessions])


@router.get("/recommended")
async def get_recommended_mentors(
    current_user: User = Depends(get_current_user),
    service: MentorService = Depends(get_mentor_service),
):
    recommendations = service.recommended(current_user)
    return {"mentors": [MentorSummary.from_model(m, matching) for m, matching in recommendations]}


@router.get("/me", response_model=MentorDetail)
async def get_current_mentor(
    current_user: User = Depends(get_current_user),
    service: MentorService = Depends(get_mentor_service),
):
    return MentorDetail.from_model(service.get_current_mentor(current_user))


@router.put("/profile", response_model=MentorDetail)
async def update_mentor_profile(
    data: MentorProfileUpdate,
    current_user: User = Depends(require_mentor),
    service: MentorService = Depends(get_mentor_service),
):
    return MentorDetail.from_model(service.update_profile(current_user, data))


@router.get("", response_model=MentorSearchResponse)
async def search_mentors(
    search: Optional[str] = None,
    expertise: Optional[str] = None,
    minPrice: Optional[float] = Query(None, ge=0),
    maxPrice: Optional[float] = Query(None, ge=0),
    minRating: Optional[float] = Query(None, ge=0, le=5),
    maxRating: Optional[float] = Query(None, ge=0, le=5),
    sortBy: str = "rating",
    sortOrder: str = "desc",
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    service: MentorService = Depends(get_mentor_service),
):
    """Public mentor search over approved mentors"""
    mentors, pagination = service.search(
        search=search,
        expertise=expertise,
        min_price=minPrice,
        max_price=maxPrice,
        min_rating=minRating,
        max_rating=maxRating,
        sort_by=sortBy,
        sort_order=sortOrder,
        page=page,
        limit=limit,
    )
    return {"mentors": [MentorSummary.from_model(m) for m in mentors], "pagination": pagination}


@router.get("/{mentor_id}", response_model=MentorDetail)
async def get_mentor(
    mentor_id: int,
    service: MentorService = Depends(get_mentor_service),
):
    return MentorDetail.from_model(service.get_public_mentor(mentor_id))

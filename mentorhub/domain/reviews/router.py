"""Review router"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user, require_mentor
from ...database import get_db
from ...models import User
from .schemas import ReviewCreate, ReviewListResponse, ReviewResponse, ReviewStats
from .service import ReviewService

router = APIRouter(prefix="/reviews", tags=["Reviews"])


def get_review_service(db: Session = Depends(get_db)) -> ReviewService:
    """Dependency injection for ReviewService"""
    return ReviewService(db)


@router.post("", status_code=201)
async def create_review(
    data: ReviewCreate,
    current_user: User = Depends(get_current_user),
    service: ReviewService = Depends(get_review_service),
):
    review = service.create(data, current_user)
    return {"message": "Review created successfully", "review": ReviewResponse.from_model(review)}


@router.get("/mentor/me", response_model=ReviewListResponse)
async def get_current_mentor_reviews(
    current_user: User = Depends(require_mentor),
    service: ReviewService = Depends(get_review_service),
):
    reviews = service.recent_for_current_mentor(current_user)
    return ReviewListResponse(reviews=[ReviewResponse.from_model(r) for r in reviews])


@router.get("/mentor/{mentor_id}", response_model=ReviewListResponse)
async def get_mentor_reviews(
    mentor_id: int,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    service: ReviewService = Depends(get_review_service),
):
    reviews, pagination = service.list_for_mentor(mentor_id, page, limit)
    return {"reviews": [ReviewResponse.from_model(r) for r in reviews], "pagination": pagination}


@router.get("/mentor/{mentor_id}/stats", response_model=ReviewStats)
async def get_mentor_review_stats(
    mentor_id: int,
    service: ReviewService = Depends(get_review_service),
):
    return service.stats(mentor_id)

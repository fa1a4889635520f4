"""Review schemas"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class ReviewCreate(BaseModel):
    sessionId: int
    rating: int = Field(ge=1, le=5)
    comment: str = Field(min_length=10, max_length=500)

    @field_validator("comment")
    @classmethod
    def strip_comment(cls, v):
        v = v.strip()
        if len(v) < 10:
            raise ValueError("Comment must be at least 10 characters")
        return v


class Reviewer(BaseModel):
    id: int
    name: str
    avatar: Optional[str] = None


class ReviewedSession(BaseModel):
    id: int
    topic: str
    startTime: datetime
    duration: int


class ReviewResponse(BaseModel):
    id: int
    rating: int
    comment: str
    mentorId: int
    reviewer: Optional[Reviewer] = None
    session: Optional[ReviewedSession] = None
    createdAt: Optional[datetime] = None

    @classmethod
    def from_model(cls, review) -> "ReviewResponse":
        reviewer = None
        if review.reviewer:
            reviewer = Reviewer(
                id=review.reviewer.id, name=review.reviewer.full_name, avatar=review.reviewer.avatar
            )
        session = None
        if review.session:
            session = ReviewedSession(
                id=review.session.id,
                topic=review.session.topic,
                startTime=review.session.start_time,
                duration=review.session.duration,
            )
        return cls(
            id=review.id,
            rating=review.rating,
            comment=review.comment,
            mentorId=review.mentor_id,
            reviewer=reviewer,
            session=session,
            createdAt=review.created_at,
        )


class ReviewPagination(BaseModel):
    currentPage: int
    totalPages: int
    totalReviews: int


class ReviewListResponse(BaseModel):
    reviews: list[ReviewResponse]
    pagination: Optional[ReviewPagination] = None


class ReviewStats(BaseModel):
    averageRating: float
    totalReviews: int
    ratingDistribution: dict[int, int]

"""Mentor domain schemas"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

from ...shared.validators import clean_string_list


class MentorApplication(BaseModel):
    """Fields are checked by the service so a missing one is a 400"""

    bio: Optional[str] = None
    expertise: Optional[list[str]] = None
    hourlyRate: Optional[float] = Field(default=None, ge=0)

    @field_validator("expertise")
    @classmethod
    def clean_expertise(cls, v):
        if v is None:
            return v
        return clean_string_list(v)


class MentorProfileUpdate(BaseModel):
    bio: Optional[str] = None
    expertise: Optional[list[str]] = None
    hourlyRate: Optional[float] = Field(default=None, ge=0)

    @field_validator("expertise")
    @classmethod
    def clean_expertise(cls, v):
        if v is None:
            return v
        return clean_string_list(v)


class MentorSummary(BaseModel):
    id: int
    firstName: str
    lastName: str
    email: Optional[str] = None
    avatar: Optional[str] = None
    bio: str = ""
    expertise: list[str] = []
    hourlyRate: float = 0.0
    rating: float = 0.0
    reviewCount: int = 0
    matchingInterests: Optional[list[str]] = None

    @classmethod
    def from_model(cls, user, matching: Optional[list[str]] = None) -> "MentorSummary":
        p = user.mentor_profile
        return cls(
            id=user.id,
            firstName=user.first_name,
            lastName=user.last_name,
            email=user.email,
            avatar=user.avatar,
            bio=(p.bio if p else "") or "",
            expertise=(p.expertise if p else []) or [],
            hourlyRate=p.hourly_rate if p else 0.0,
            rating=p.rating if p else 0.0,
            reviewCount=p.review_count if p else 0,
            matchingInterests=matching,
        )


class MentorDetail(MentorSummary):
    status: str
    rejectionReason: Optional[str] = None
    weeklyAvailability: dict[str, Any] = {}
    createdAt: Optional[datetime] = None

    @classmethod
    def from_model(cls, user) -> "MentorDetail":
        summary = MentorSummary.from_model(user)
        p = user.mentor_profile
        return cls(
            **summary.model_dump(exclude={"matchingInterests"}),
            status=p.status,
            rejectionReason=p.rejection_reason,
            weeklyAvailability=p.weekly_availability or {},
            createdAt=user.created_at,
        )


class Pagination(BaseModel):
    total: int
    pages: int
    page: int
    limit: int


class MentorSearchResponse(BaseModel):
    mentors: list[MentorSummary]
    pagination: Pagination


class MonthlyTrend(BaseModel):
    year: int
    month: int
    sessions: int
    earnings: float


class MentorStats(BaseModel):
    totalSessions: int
    totalEarnings: float
    totalStudents: int
    averageRating: float
    totalReviews: int
    trends: list[MonthlyTrend]

"""User domain schemas - registration, login, tokens and profile"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ...shared.validators import clean_string_list, normalize_email


class RegisterRequest(BaseModel):
    email: str
    password: str = Field(min_length=6)
    firstName: str = Field(min_length=1)
    lastName: str = Field(min_length=1)

    @field_validator("email")
    @classmethod
    def validate_email(cls, v):
        return normalize_email(v)

    @field_validator("firstName", "lastName")
    @classmethod
    def strip_names(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Name cannot be blank")
        return v


class LoginRequest(BaseModel):
    email: str
    password: str

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, v):
        return v.strip().lower()


class RefreshTokenRequest(BaseModel):
    refreshToken: Optional[str] = None


class ProfileUpdate(BaseModel):
    """Any subset of profile fields; mentor fields apply only to mentors"""

    email: Optional[str] = None
    firstName: Optional[str] = None
    lastName: Optional[str] = None
    username: Optional[str] = None
    interests: Optional[list[str]] = None
    bio: Optional[str] = None
    expertise: Optional[list[str]] = None
    hourlyRate: Optional[float] = Field(default=None, ge=0)

    @field_validator("interests", "expertise")
    @classmethod
    def clean_lists(cls, v):
        if v is None:
            return v
        return clean_string_list(v)


class MentorProfileSummary(BaseModel):
    status: str
    bio: Optional[str] = None
    expertise: list[str] = []
    hourlyRate: float
    rating: float
    reviewCount: int


class UserResponse(BaseModel):
    id: int
    username: str
    email: str
    firstName: str
    lastName: str
    avatar: Optional[str] = None
    roles: list[str]
    balance: float
    blocked: bool
    interests: list[str] = []
    mentorProfile: Optional[MentorProfileSummary] = None
    createdAt: Optional[datetime] = None

    @classmethod
    def from_model(cls, user) -> "UserResponse":
        profile = None
        if user.mentor_profile:
            p = user.mentor_profile
            profile = MentorProfileSummary(
                status=p.status,
                bio=p.bio,
                expertise=p.expertise or [],
                hourlyRate=p.hourly_rate,
                rating=p.rating,
                reviewCount=p.review_count,
            )
        return cls(
            id=user.id,
            username=user.username,
            email=user.email,
            firstName=user.first_name,
            lastName=user.last_name,
            avatar=user.avatar,
            roles=user.roles or [],
            balance=round(user.balance or 0.0, 2),
            blocked=bool(user.blocked),
            interests=user.interests or [],
            mentorProfile=profile,
            createdAt=user.created_at,
        )


class TokenPair(BaseModel):
    accessToken: str
    refreshToken: str


class AuthResponse(BaseModel):
    user: UserResponse
    tokens: TokenPair


class RefreshResponse(BaseModel):
    accessToken: str
    refreshToken: str
    user: UserResponse


class MessageResponse(BaseModel):
    message: str

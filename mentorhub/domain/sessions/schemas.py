"""Session domain schemas"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ...shared.time_utils import to_naive_utc


class SessionCreate(BaseModel):
    mentorId: int
    topic: str = Field(min_length=1, max_length=255)
    startTime: datetime
    duration: int = Field(default=60, ge=30, le=240)

    @field_validator("topic")
    @classmethod
    def strip_topic(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Topic is required")
        return v

    @field_validator("startTime")
    @classmethod
    def naive_utc(cls, v):
        return to_naive_utc(v)


class RescheduleRequest(BaseModel):
    startTime: datetime

    @field_validator("startTime")
    @classmethod
    def naive_utc(cls, v):
        return to_naive_utc(v)


class FeedbackRequest(BaseModel):
    rating: int = Field(ge=1, le=5)
    comment: Optional[str] = Field(default=None, max_length=1000)


class SessionParticipant(BaseModel):
    id: int
    firstName: str
    lastName: str
    email: str
    avatar: Optional[str] = None
    expertise: Optional[list[str]] = None

    @classmethod
    def from_model(cls, user, with_expertise: bool = False) -> "SessionParticipant":
        expertise = None
        if with_expertise and user.mentor_profile:
            expertise = user.mentor_profile.expertise or []
        return cls(
            id=user.id,
            firstName=user.first_name,
            lastName=user.last_name,
            email=user.email,
            avatar=user.avatar,
            expertise=expertise,
        )


class Feedback(BaseModel):
    rating: int
    comment: Optional[str] = None


class SessionResponse(BaseModel):
    id: int
    mentor: Optional[SessionParticipant] = None
    mentee: Optional[SessionParticipant] = None
    topic: str
    startTime: datetime
    endTime: datetime
    duration: int
    price: float
    status: str
    meetingLink: Optional[str] = None
    feedback: Optional[Feedback] = None
    cancelledBy: Optional[int] = None
    cancelledAt: Optional[datetime] = None
    createdAt: Optional[datetime] = None

    @classmethod
    def from_model(cls, s) -> "SessionResponse":
        feedback = None
        if s.feedback_rating is not None:
            feedback = Feedback(rating=s.feedback_rating, comment=s.feedback_comment)
        return cls(
            id=s.id,
            mentor=SessionParticipant.from_model(s.mentor, with_expertise=True) if s.mentor else None,
            mentee=SessionParticipant.from_model(s.mentee) if s.mentee else None,
            topic=s.topic,
            startTime=s.start_time,
            endTime=s.end_time,
            duration=s.duration,
            price=s.price,
            status=s.status,
            meetingLink=s.meeting_link,
            feedback=feedback,
            cancelledBy=s.cancelled_by,
            cancelledAt=s.cancelled_at,
            createdAt=s.created_at,
        )


class SessionEnvelope(BaseModel):
    session: SessionResponse


class SessionListResponse(BaseModel):
    sessions: list[SessionResponse]


class VideoTokenResponse(BaseModel):
    token: str
    roomId: str
    identity: str


class JoinRoomResponse(BaseModel):
    roomId: str
    sessionId: int

"""Group session schemas"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

from ...shared.time_utils import to_naive_utc
from ...shared.validators import clean_string_list

SkillLevel = Literal["beginner", "intermediate", "advanced"]


class GroupSessionCreate(BaseModel):
    title: str = Field(min_length=1, max_length=100)
    description: str = Field(min_length=1, max_length=500)
    startTime: datetime
    duration: int = Field(ge=30, le=180)
    maxParticipants: int = Field(ge=2, le=20)
    price: float = Field(ge=0)
    topics: list[str] = Field(min_length=1)
    skillLevel: SkillLevel
    meetingLink: Optional[str] = Field(default=None, max_length=500)

    @field_validator("startTime")
    @classmethod
    def naive_utc(cls, v):
        return to_naive_utc(v)

    @field_validator("topics")
    @classmethod
    def clean_topics(cls, v):
        cleaned = clean_string_list(v)
        if not cleaned:
            raise ValueError("Please provide at least one topic")
        return cleaned


class GroupSessionUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, min_length=1, max_length=500)
    startTime: Optional[datetime] = None
    duration: Optional[int] = Field(default=None, ge=30, le=180)
    maxParticipants: Optional[int] = Field(default=None, ge=2, le=20)
    price: Optional[float] = Field(default=None, ge=0)
    topics: Optional[list[str]] = None
    skillLevel: Optional[SkillLevel] = None
    meetingLink: Optional[str] = Field(default=None, max_length=500)
    recordingUrl: Optional[str] = Field(default=None, max_length=500)

    @field_validator("startTime")
    @classmethod
    def naive_utc(cls, v):
        return to_naive_utc(v)

    @field_validator("topics")
    @classmethod
    def clean_topics(cls, v):
        if v is None:
            return v
        cleaned = clean_string_list(v)
        if not cleaned:
            raise ValueError("Please provide at least one topic")
        return cleaned


class GroupMentor(BaseModel):
    id: int
    firstName: str
    lastName: str
    avatar: Optional[str] = None
    bio: Optional[str] = None
    expertise: list[str] = []


class GroupParticipant(BaseModel):
    id: int
    firstName: str
    lastName: str
    avatar: Optional[str] = None
    joinedAt: Optional[datetime] = None


class GroupSessionResponse(BaseModel):
    id: int
    title: str
    description: str
    mentor: GroupMentor
    startTime: datetime
    endTime: datetime
    duration: int
    maxParticipants: int
    price: float
    topics: list[str]
    skillLevel: str
    status: str
    meetingLink: Optional[str] = None
    recordingUrl: Optional[str] = None
    participants: list[GroupParticipant]
    participantCount: int
    remainingSpots: int
    isFull: bool
    createdAt: Optional[datetime] = None

    @classmethod
    def from_model(cls, gs) -> "GroupSessionResponse":
        profile = gs.mentor.mentor_profile
        return cls(
            id=gs.id,
            title=gs.title,
            description=gs.description,
            mentor=GroupMentor(
                id=gs.mentor.id,
                firstName=gs.mentor.first_name,
                lastName=gs.mentor.last_name,
                avatar=gs.mentor.avatar,
                bio=profile.bio if profile else None,
                expertise=(profile.expertise if profile else []) or [],
            ),
            startTime=gs.start_time,
            endTime=gs.end_time,
            duration=gs.duration,
            maxParticipants=gs.max_participants,
            price=gs.price,
            topics=gs.topics or [],
            skillLevel=gs.skill_level,
            status=gs.status,
            meetingLink=gs.meeting_link,
            recordingUrl=gs.recording_url,
            participants=[
                GroupParticipant(
                    id=p.user.id,
                    firstName=p.user.first_name,
                    lastName=p.user.last_name,
                    avatar=p.user.avatar,
                    joinedAt=p.joined_at,
                )
                for p in gs.participants
            ],
            participantCount=gs.participant_count,
            remainingSpots=gs.remaining_spots,
            isFull=gs.is_full,
            createdAt=gs.created_at,
        )


class GroupSessionEnvelope(BaseModel):
    groupSession: GroupSessionResponse


class GroupSessionListResponse(BaseModel):
    groupSessions: list[GroupSessionResponse]

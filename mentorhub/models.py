from datetime import timedelta

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Table,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


def empty_weekly_availability() -> dict:
    """Every day unavailable with no slots"""
    from .shared.time_utils import WEEKDAYS

    return {day: {"available": False, "slots": []} for day in WEEKDAYS}


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(255), unique=True, index=True, nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    first_name = Column(String(255), nullable=False)
    last_name = Column(String(255), nullable=False)
    avatar = Column(String(500), nullable=True)
    roles = Column(JSON, default=lambda: ["user"], nullable=False)  # user, mentor, admin
    # Written only through the ledger (domain/ledger); never assign directly
    balance = Column(Float, default=0.0, nullable=False)
    blocked = Column(Boolean, default=False, nullable=False)
    interests = Column(JSON, default=list, nullable=True)
    refresh_token = Column(String(1024), nullable=True)  # Current refresh token; rotated on use
    # {"payment_method": "paypal"|"bank_transfer", "paypal_email": ..., "bank_details": {...},
    #  "auto_payout": bool, "last_updated": iso}
    payout_settings = Column(JSON, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    mentor_profile = relationship(
        "MentorProfile", back_populates="user", uselist=False, cascade="all, delete-orphan"
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def is_mentor(self) -> bool:
        return "mentor" in (self.roles or [])

    @property
    def is_admin(self) -> bool:
        return "admin" in (self.roles or [])


class MentorProfile(Base):
    __tablename__ = "mentor_profiles"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    status = Column(String(20), default="pending", nullable=False)  # pending, approved, rejected
    bio = Column(Text, nullable=True)
    expertise = Column(JSON, default=list, nullable=False)
    hourly_rate = Column(Float, default=0.0, nullable=False)
    rejection_reason = Column(String(500), nullable=True)
    rating = Column(Float, default=0.0, nullable=False)
    review_count = Column(Integer, default=0, nullable=False)
    # {"monday": {"available": true, "slots": [{"startTime": "09:00", "endTime": "12:00"}]}, ...}
    weekly_availability = Column(JSON, default=empty_weekly_availability, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="mentor_profile")


class AvailabilitySlot(Base):
    __tablename__ = "availability_slots"

    id = Column(Integer, primary_key=True, index=True)
    mentor_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    date = Column(Date, index=True, nullable=False)
    start_time = Column(String(5), nullable=False)  # HH:mm
    end_time = Column(String(5), nullable=False)  # HH:mm
    is_weekly_slot = Column(Boolean, default=False, nullable=False)
    is_generated = Column(Boolean, default=False, nullable=False)  # materialized from the weekly template
    created_at = Column(DateTime, server_default=func.now())


class MentoringSession(Base):
    __tablename__ = "sessions"

    id = Column(Integer, primary_key=True, index=True)
    mentor_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    mentee_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    topic = Column(String(255), nullable=False)
    start_time = Column(DateTime, index=True, nullable=False)
    duration = Column(Integer, nullable=False)  # minutes
    price = Column(Float, nullable=False)  # fixed at booking
    status = Column(String(20), default="pending", index=True, nullable=False)
    meeting_link = Column(String(500), nullable=True)
    feedback_rating = Column(Integer, nullable=True)
    feedback_comment = Column(Text, nullable=True)
    cancelled_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    cancelled_at = Column(DateTime, nullable=True)
    reminder_sent = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    mentor = relationship("User", foreign_keys=[mentor_id])
    mentee = relationship("User", foreign_keys=[mentee_id])

    @property
    def end_time(self):
        return self.start_time + timedelta(minutes=self.duration)


class GroupSession(Base):
    __tablename__ = "group_sessions"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(100), nullable=False)
    description = Column(String(500), nullable=False)
    mentor_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    start_time = Column(DateTime, index=True, nullable=False)
    duration = Column(Integer, nullable=False)  # minutes, 30-180
    max_participants = Column(Integer, nullable=False)  # 2-20
    price = Column(Float, default=0.0, nullable=False)  # per participant
    topics = Column(JSON, default=list, nullable=False)
    skill_level = Column(String(20), nullable=False)  # beginner, intermediate, advanced
    status = Column(String(20), default="scheduled", nullable=False)
    meeting_link = Column(String(500), nullable=True)
    recording_url = Column(String(500), nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    mentor = relationship("User")
    participants = relationship(
        "GroupSessionParticipant",
        back_populates="group_session",
        cascade="all, delete-orphan",
        order_by="GroupSessionParticipant.joined_at",
    )

    @property
    def end_time(self):
        return self.start_time + timedelta(minutes=self.duration)

    @property
    def participant_count(self) -> int:
        return len(self.participants)

    @property
    def remaining_spots(self) -> int:
        return self.max_participants - len(self.participants)

    @property
    def is_full(self) -> bool:
        return len(self.participants) >= self.max_participants

    def is_user_enrolled(self, user_id: int) -> bool:
        return any(p.user_id == user_id for p in self.participants)


class GroupSessionParticipant(Base):
    __tablename__ = "group_session_participants"
    __table_args__ = (UniqueConstraint("group_session_id", "user_id", name="uq_group_participant"),)

    id = Column(Integer, primary_key=True, index=True)
    group_session_id = Column(
        Integer, ForeignKey("group_sessions.id", ondelete="CASCADE"), index=True, nullable=False
    )
    user_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    joined_at = Column(DateTime, server_default=func.now())

    group_session = relationship("GroupSession", back_populates="participants")
    user = relationship("User")


class Review(Base):
    __tablename__ = "reviews"
    __table_args__ = (UniqueConstraint("session_id", "reviewer_id", name="uq_review_session_reviewer"),)

    id = Column(Integer, primary_key=True, index=True)
    session_id = Column(Integer, ForeignKey("sessions.id"), nullable=False)
    reviewer_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    mentor_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    rating = Column(Integer, nullable=False)
    comment = Column(Text, nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    session = relationship("MentoringSession")
    reviewer = relationship("User", foreign_keys=[reviewer_id])


class Transaction(Base):
    """Append-only ledger row. `amount` is the signed delta applied to the user's balance."""

    __tablename__ = "transactions"
    __table_args__ = (UniqueConstraint("user_id", "idempotency_key", name="uq_transaction_idempotency"),)

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    # purchase, session_payment, session_earning, refund, payout, credit, add_funds
    type = Column(String(30), nullable=False)
    amount = Column(Float, nullable=False)
    balance_after = Column(Float, nullable=False)
    status = Column(String(20), default="completed", index=True, nullable=False)
    description = Column(String(500), nullable=False)
    session_id = Column(Integer, ForeignKey("sessions.id"), nullable=True)
    group_session_id = Column(Integer, ForeignKey("group_sessions.id"), nullable=True)
    related_user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    meta = Column("metadata", JSON, default=dict, nullable=True)
    idempotency_key = Column(String(255), nullable=True)
    created_at = Column(DateTime, server_default=func.now(), index=True)

    related_user = relationship("User", foreign_keys=[related_user_id])


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    type = Column(String(50), nullable=False)
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    data = Column(JSON, default=dict, nullable=True)
    priority = Column(String(10), default="low", nullable=False)  # low, medium, high
    is_read = Column(Boolean, default=False, nullable=False)
    reference_id = Column(Integer, nullable=True)
    reference_type = Column(String(50), nullable=True)  # session, group_session, review, transaction, chat
    created_at = Column(DateTime, server_default=func.now(), index=True)


chat_participants = Table(
    "chat_participants",
    Base.metadata,
    Column("chat_id", Integer, ForeignKey("chats.id", ondelete="CASCADE"), primary_key=True),
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
)


class Chat(Base):
    __tablename__ = "chats"

    id = Column(Integer, primary_key=True, index=True)
    session_id = Column(Integer, ForeignKey("sessions.id"), nullable=True)
    unread_counts = Column(JSON, default=dict, nullable=False)  # {"<user_id>": int}
    last_message_content = Column(Text, nullable=True)
    last_message_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), index=True)

    participants = relationship("User", secondary=chat_participants)
    messages = relationship(
        "ChatMessage", back_populates="chat", cascade="all, delete-orphan", order_by="ChatMessage.id"
    )


class ChatMessage(Base):
    __tablename__ = "chat_messages"

    id = Column(Integer, primary_key=True, index=True)
    chat_id = Column(Integer, ForeignKey("chats.id", ondelete="CASCADE"), index=True, nullable=False)
    sender_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    content = Column(Text, nullable=False)
    timestamp = Column(DateTime, server_default=func.now())
    read = Column(Boolean, default=False, nullable=False)

    chat = relationship("Chat", back_populates="messages")
    sender = relationship("User")

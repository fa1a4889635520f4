"""Group session service - scheduling, paid enrolment and cancellation with refunds"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...database import run_in_transaction
from ...models import GroupSession, GroupSessionParticipant, User
from ...shared.time_utils import utcnow
from ...shared.validators import round_money
from ..ledger.service import LedgerService
from ..notifications.service import NotificationService
from .repository import GroupSessionRepository
from .schemas import GroupSessionCreate, GroupSessionUpdate

logger = logging.getLogger(__name__)


def advance_status(gs: GroupSession, now: Optional[datetime] = None) -> bool:
    """Move a scheduled session along by the clock; returns True when the status changed"""
    now = now or utcnow()
    if gs.status in ("scheduled", "in-progress") and now >= gs.end_time:
        gs.status = "completed"
        return True
    if gs.status == "scheduled" and now >= gs.start_time:
        gs.status = "in-progress"
        return True
    return False


class GroupSessionService:
    """Service layer for group sessions"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = GroupSessionRepository()
        self.ledger = LedgerService(db)
        self.notifications = NotificationService(db)

    def _get(self, group_session_id: int) -> GroupSession:
        gs = self.repo.get_by_id(self.db, group_session_id)
        if not gs:
            raise HTTPException(status_code=404, detail="Group session not found")
        return gs

    def _refresh_statuses(self, sessions: list[GroupSession]) -> None:
        now = utcnow()
        changed = [gs for gs in sessions if advance_status(gs, now)]
        if changed:
            self.db.commit()
            logger.info(f"⏱️ Advanced status of {len(changed)} group session(s)")

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def list_sessions(
        self,
        status: Optional[str] = None,
        mentor_id: Optional[int] = None,
        topic: Optional[str] = None,
        skill_level: Optional[str] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        search: Optional[str] = None,
    ) -> list[GroupSession]:
        sessions = self.repo.find(
            self.db,
            mentor_id=mentor_id,
            skill_level=skill_level,
            start_date=start_date,
            end_date=end_date,
            search=search,
        )
        self._refresh_statuses(sessions)

        if status:
            sessions = [gs for gs in sessions if gs.status == status]
        if topic:
            wanted = topic.strip().lower()
            sessions = [gs for gs in sessions if any(t.lower() == wanted for t in (gs.topics or []))]
        return sessions

    def get_session(self, group_session_id: int) -> GroupSession:
        gs = self._get(group_session_id)
        self._refresh_statuses([gs])
        return gs

    # ------------------------------------------------------------------
    # Mentor operations
    # ------------------------------------------------------------------

    def create(self, data: GroupSessionCreate, mentor: User) -> GroupSession:
        if not mentor.mentor_profile or mentor.mentor_profile.status != "approved":
            raise HTTPException(status_code=403, detail="Only approved mentors can create group sessions")
        if data.startTime <= utcnow():
            raise HTTPException(status_code=400, detail="Session start time must be in the future")

        gs = GroupSession(
            title=data.title.strip(),
            description=data.description.strip(),
            mentor_id=mentor.id,
            start_time=data.startTime,
            duration=data.duration,
            max_participants=data.maxParticipants,
            price=round_money(data.price),
            topics=data.topics,
            skill_level=data.skillLevel,
            status="scheduled",
            meeting_link=data.meetingLink,
        )
        self.db.add(gs)
        self.db.commit()
        logger.info(f"✅ Group session {gs.id} created by mentor {mentor.id}")
        return self._get(gs.id)

    def update(self, group_session_id: int, data: GroupSessionUpdate, user: User) -> GroupSession:
        gs = self._get(group_session_id)
        if gs.mentor_id != user.id:
            raise HTTPException(status_code=403, detail="You are not authorized to update this session")
        if gs.status in ("completed", "cancelled"):
            raise HTTPException(status_code=400, detail=f"Cannot update a session that is {gs.status}")

        changes = data.model_dump(exclude_unset=True)

        if "price" in changes and gs.participants and round_money(changes["price"]) != gs.price:
            raise HTTPException(status_code=400, detail="Price cannot be changed after participants have joined")
        if "maxParticipants" in changes and changes["maxParticipants"] < gs.participant_count:
            raise HTTPException(
                status_code=400, detail="Maximum participants cannot be lower than the current enrolment"
            )
        if changes.get("startTime") is not None and changes["startTime"] <= utcnow():
            raise HTTPException(status_code=400, detail="Session start time must be in the future")

        fields = {
            "title": "title",
            "description": "description",
            "startTime": "start_time",
            "duration": "duration",
            "maxParticipants": "max_participants",
            "price": "price",
            "topics": "topics",
            "skillLevel": "skill_level",
            "meetingLink": "meeting_link",
            "recordingUrl": "recording_url",
        }
        for key, value in changes.items():
            if value is None and key not in ("meetingLink", "recordingUrl"):
                continue
            setattr(gs, fields[key], round_money(value) if key == "price" else value)

        self.db.commit()
        logger.info(f"✅ Group session {gs.id} updated")
        return self._get(gs.id)

    def cancel(self, group_session_id: int, user: User) -> GroupSession:
        """Cancel and refund every enrolled participant"""

        def operation():
            gs = self._get(group_session_id)
            if gs.mentor_id != user.id:
                raise HTTPException(status_code=403, detail="You are not authorized to cancel this session")
            if gs.status != "scheduled":
                raise HTTPException(status_code=400, detail=f"Cannot cancel a session that is {gs.status}")

            gs.status = "cancelled"
            for participant in gs.participants:
                if gs.price > 0:
                    self.ledger.apply(
                        participant.user_id,
                        gs.price,
                        "refund",
                        f"Refund for cancelled group session: {gs.title}",
                        group_session_id=gs.id,
                        related_user_id=gs.mentor_id,
                    )
                    self.notifications.refund_processed(participant.user_id, gs.price, gs.id, "group_session")
                self.notifications.group_session_event(
                    participant.user_id,
                    gs,
                    "group_session_cancelled",
                    "Group Session Cancelled",
                    f'The group session "{gs.title}" has been cancelled.',
                )
            return gs.id

        gs_id = run_in_transaction(self.db, operation)
        logger.info(f"🚫 Group session {gs_id} cancelled")
        return self._get(gs_id)

    # ------------------------------------------------------------------
    # Participant operations
    # ------------------------------------------------------------------

    def join(self, group_session_id: int, user: User) -> GroupSession:
        def operation():
            gs = self._get(group_session_id)
            advance_status(gs)

            if gs.status != "scheduled":
                raise HTTPException(status_code=400, detail="This session is no longer accepting participants")
            if gs.mentor_id == user.id:
                raise HTTPException(status_code=400, detail="You cannot join your own session")
            if gs.is_user_enrolled(user.id):
                raise HTTPException(status_code=400, detail="You are already enrolled in this session")
            if gs.is_full:
                raise HTTPException(status_code=400, detail="This session is full")

            if gs.price > 0:
                self.ledger.apply(
                    user.id,
                    -gs.price,
                    "session_payment",
                    f"Group session: {gs.title}",
                    group_session_id=gs.id,
                    related_user_id=gs.mentor_id,
                )

            gs.participants.append(GroupSessionParticipant(user_id=user.id, joined_at=utcnow()))
            self.db.flush()
            if self.repo.count_participants(self.db, gs.id) > gs.max_participants:
                raise HTTPException(status_code=400, detail="This session is full")

            self.notifications.group_session_event(
                gs.mentor_id,
                gs,
                "group_session_joined",
                "New Group Session Participant",
                f'{user.full_name} joined "{gs.title}".',
            )
            return gs.id

        gs_id = run_in_transaction(self.db, operation)
        logger.info(f"✅ User {user.id} joined group session {gs_id}")
        return self._get(gs_id)

    def leave(self, group_session_id: int, user: User) -> GroupSession:
        def operation():
            gs = self._get(group_session_id)
            advance_status(gs)

            participant = next((p for p in gs.participants if p.user_id == user.id), None)
            if participant is None:
                raise HTTPException(status_code=400, detail="You are not enrolled in this session")
            if gs.status != "scheduled":
                raise HTTPException(status_code=400, detail="You can no longer leave this session")

            gs.participants.remove(participant)
            if gs.price > 0:
                self.ledger.apply(
                    user.id,
                    gs.price,
                    "refund",
                    f"Refund for leaving group session: {gs.title}",
                    group_session_id=gs.id,
                    related_user_id=gs.mentor_id,
                )
            self.notifications.group_session_event(
                gs.mentor_id,
                gs,
                "group_session_left",
                "Participant Left",
                f'{user.full_name} left "{gs.title}".',
            )
            return gs.id

        gs_id = run_in_transaction(self.db, operation)
        logger.info(f"👋 User {user.id} left group session {gs_id}")
        return self._get(gs_id)

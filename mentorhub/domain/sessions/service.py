"""Session service - booking, status transitions, reschedule, feedback and video access"""

import asyncio
import logging
from datetime import timedelta

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...database import run_in_transaction
from ...models import MentoringSession, User
from ...services import video_service
from ...shared.time_utils import utcnow
from ...shared.validators import round_money
from ..ledger.service import LedgerService
from ..notifications.service import NotificationService
from .repository import SessionRepository
from .schemas import FeedbackRequest, RescheduleRequest, SessionCreate

logger = logging.getLogger(__name__)

# action -> (allowed source statuses, target status)
TRANSITIONS = {
    "accept": (("pending",), "accepted"),
    "confirm": (("accepted",), "confirmed"),
    "complete": (("accepted", "confirmed"), "completed"),
    "cancel": (("pending", "accepted", "confirmed"), "cancelled"),
}

RESCHEDULABLE_STATUSES = ("pending", "accepted")
VIDEO_STATUSES = ("accepted", "confirmed")


def session_price(hourly_rate: float, duration: int) -> float:
    return round_money((hourly_rate or 0.0) * duration / 60)


class SessionService:
    """Service layer for one-on-one sessions"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = SessionRepository()
        self.ledger = LedgerService(db)
        self.notifications = NotificationService(db)

    def _get_session(self, session_id: int) -> MentoringSession:
        session = self.repo.get_by_id(self.db, session_id)
        if not session:
            raise HTTPException(status_code=404, detail="Session not found")
        return session

    @staticmethod
    def _is_participant(session: MentoringSession, user: User) -> bool:
        return user.id in (session.mentor_id, session.mentee_id)

    # ------------------------------------------------------------------
    # Booking
    # ------------------------------------------------------------------

    def book(self, data: SessionCreate, mentee: User) -> MentoringSession:
        """
        Book a session and pay for it in one database transaction.

        The mentee is debited through the ledger before the transaction commits;
        if any step fails nothing is written.
        """

        def operation() -> int:
            mentor = self.repo.get_approved_mentor(self.db, data.mentorId)
            if not mentor or not mentor.is_mentor:
                raise HTTPException(status_code=404, detail="Mentor not found")

            expertise = {e.lower() for e in (mentor.mentor_profile.expertise or [])}
            if data.topic.lower() not in expertise:
                raise HTTPException(status_code=400, detail="Selected topic is not in mentor's expertise")

            price = session_price(mentor.mentor_profile.hourly_rate, data.duration)

            if mentor.id == mentee.id:
                raise HTTPException(status_code=400, detail="You cannot book a session with yourself")

            if data.startTime <= utcnow():
                raise HTTPException(status_code=400, detail="Session start time must be in the future")

            end_time = data.startTime + timedelta(minutes=data.duration)
            if self.repo.find_overlapping(self.db, mentor.id, data.startTime, end_time):
                raise HTTPException(status_code=409, detail="Mentor already has a session booked during this time")

            session = self.repo.add(
                self.db,
                mentor_id=mentor.id,
                mentee_id=mentee.id,
                topic=data.topic,
                start_time=data.startTime,
                duration=data.duration,
                price=price,
                status="pending",
            )

            if price > 0:
                self.ledger.apply(
                    mentee.id,
                    -price,
                    "session_payment",
                    f"Session with {mentor.full_name}: {data.topic}",
                    session_id=session.id,
                    related_user_id=mentor.id,
                    insufficient_message=(
                        f"Insufficient balance. Session cost: ${price:.2f}, "
                        f"your balance: ${self.ledger.get_balance(mentee):.2f}"
                    ),
                )

            self.notifications.session_requested(session, mentee)
            self.notifications.session_booked(session, mentor)
            return session.id

        session_id = run_in_transaction(self.db, operation)
        logger.info(f"✅ Session {session_id} booked by user {mentee.id} with mentor {data.mentorId}")
        return self._get_session(session_id)

    # ------------------------------------------------------------------
    # Status transitions
    # ------------------------------------------------------------------

    def _transition(self, session_id: int, user: User, action: str) -> MentoringSession:
        session = self._get_session(session_id)

        if session.mentor_id != user.id:
            raise HTTPException(status_code=403, detail=f"Only the mentor can {action} this session")

        allowed, target = TRANSITIONS[action]
        if session.status not in allowed:
            raise HTTPException(status_code=400, detail=f"Cannot {action} a session that is {session.status}")

        session.status = target
        return session

    def accept(self, session_id: int, user: User) -> MentoringSession:
        def operation():
            session = self._transition(session_id, user, "accept")
            self.notifications.session_status_changed(
                session,
                session.mentee_id,
                "accepted",
                f"{user.full_name} accepted your session on {session.topic}",
            )
            return session

        session = run_in_transaction(self.db, operation)
        logger.info(f"✅ Session {session_id} accepted")
        return session

    def confirm(self, session_id: int, user: User) -> MentoringSession:
        def operation():
            session = self._transition(session_id, user, "confirm")
            self.notifications.session_status_changed(
                session,
                session.mentee_id,
                "confirmed",
                f"Your session on {session.topic} is confirmed",
            )
            return session

        session = run_in_transaction(self.db, operation)
        logger.info(f"✅ Session {session_id} confirmed")
        return session

    async def complete(self, session_id: int, user: User) -> MentoringSession:
        """Mark completed and release the escrowed price to the mentor"""

        def operation():
            session = self._transition(session_id, user, "complete")
            if session.price > 0:
                self.ledger.apply(
                    session.mentor_id,
                    session.price,
                    "session_earning",
                    f"Earning from session: {session.topic}",
                    session_id=session.id,
                    related_user_id=session.mentee_id,
                    idempotency_key=f"session:{session.id}:earning",
                )
            self.notifications.session_status_changed(
                session,
                session.mentee_id,
                "completed",
                f"Your session on {session.topic} has been completed. Leave a review!",
            )
            return session

        session = await asyncio.to_thread(run_in_transaction, self.db, operation)
        logger.info(f"✅ Session {session_id} completed; mentor credited {session.price:.2f}")
        await video_service.complete_room(video_service.room_name_for_session(session.id))
        return session

    def cancel(self, session_id: int, user: User) -> MentoringSession:
        """Cancel and refund the full price to the mentee"""

        def operation():
            session = self._transition(session_id, user, "cancel")
            session.cancelled_by = user.id
            session.cancelled_at = utcnow()
            if session.price > 0:
                self.ledger.apply(
                    session.mentee_id,
                    session.price,
                    "refund",
                    f"Refund for cancelled session: {session.topic}",
                    session_id=session.id,
                    related_user_id=session.mentor_id,
                    idempotency_key=f"session:{session.id}:refund",
                )
                self.notifications.refund_processed(session.mentee_id, session.price, session.id, "session")
            self.notifications.session_status_changed(
                session,
                session.mentee_id,
                "cancelled",
                f"Your session on {session.topic} has been cancelled",
            )
            return session

        session = run_in_transaction(self.db, operation)
        logger.info(f"🚫 Session {session_id} cancelled; refunded {session.price:.2f}")
        return session

    def reschedule(self, session_id: int, data: RescheduleRequest, user: User) -> MentoringSession:
        def operation():
            session = self._get_session(session_id)
            if not self._is_participant(session, user):
                raise HTTPException(status_code=403, detail="Not authorized to reschedule this session")
            if session.status not in RESCHEDULABLE_STATUSES:
                raise HTTPException(
                    status_code=400, detail=f"Cannot reschedule a session that is {session.status}"
                )
            if data.startTime <= utcnow():
                raise HTTPException(status_code=400, detail="Session start time must be in the future")

            new_end = data.startTime + (session.end_time - session.start_time)
            if self.repo.find_overlapping(
                self.db, session.mentor_id, data.startTime, new_end, exclude_session_id=session.id
            ):
                raise HTTPException(status_code=409, detail="Mentor already has a session booked during this time")

            session.start_time = data.startTime
            session.reminder_sent = False
            self.notifications.session_rescheduled(session, session.mentor_id)
            self.notifications.session_rescheduled(session, session.mentee_id)
            return session

        session = run_in_transaction(self.db, operation)
        logger.info(f"📅 Session {session_id} rescheduled to {session.start_time.isoformat()}")
        return session

    def leave_feedback(self, session_id: int, data: FeedbackRequest, user: User) -> MentoringSession:
        session = self._get_session(session_id)

        if session.mentee_id != user.id:
            raise HTTPException(status_code=403, detail="Only the mentee can leave feedback")
        if session.status != "completed":
            raise HTTPException(status_code=400, detail="Feedback can only be left for completed sessions")
        if session.feedback_rating is not None:
            raise HTTPException(status_code=400, detail="Feedback has already been submitted for this session")

        session.feedback_rating = data.rating
        session.feedback_comment = data.comment
        self.db.commit()
        self.db.refresh(session)
        return session

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def list_sessions(self, user: User) -> list[MentoringSession]:
        return self.repo.list_for_user(self.db, user.id)

    def get_session(self, session_id: int, user: User) -> MentoringSession:
        session = self._get_session(session_id)
        if not self._is_participant(session, user):
            raise HTTPException(status_code=403, detail="Not authorized to view this session")
        return session

    # ------------------------------------------------------------------
    # Video
    # ------------------------------------------------------------------

    def video_token(self, session_id: int, user: User) -> dict:
        session = self._get_session(session_id)

        if session.status not in VIDEO_STATUSES:
            raise HTTPException(
                status_code=400,
                detail=f"Session must be in one of these statuses: {', '.join(VIDEO_STATUSES)}. "
                f"Current status: {session.status}",
            )
        if not self._is_participant(session, user):
            raise HTTPException(status_code=403, detail="Not authorized to join this session")

        room_id = video_service.room_name_for_session(session.id)
        identity = f"{'mentee' if session.mentee_id == user.id else 'mentor'}-{user.id}"
        try:
            token = video_service.generate_access_token(room_id, identity)
        except video_service.VideoNotConfiguredError as e:
            raise HTTPException(status_code=503, detail="Video chat is not configured") from e

        return {"token": token, "roomId": room_id, "identity": identity}

    async def join(self, session_id: int, user: User) -> dict:
        session = self._get_session(session_id)

        if session.status not in VIDEO_STATUSES:
            if session.status == "pending":
                detail = "Session must be accepted by the mentor before joining video chat"
            else:
                detail = f"Session must be accepted or confirmed to join video chat (current status: {session.status})"
            raise HTTPException(status_code=403, detail=detail)
        if not self._is_participant(session, user):
            raise HTTPException(status_code=403, detail="Not authorized to join this session")

        room_id = video_service.room_name_for_session(session.id)
        if video_service.can_manage_rooms():
            try:
                await video_service.ensure_room(room_id)
            except video_service.VideoServiceError as e:
                raise HTTPException(status_code=502, detail=str(e)) from e

        logger.info(f"🎥 User {user.id} joining room {room_id}")
        return {"roomId": room_id, "sessionId": session.id}

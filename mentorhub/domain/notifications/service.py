"""
Notification service - persisted notifications plus realtime delivery

Notifications join the caller's database transaction. Their realtime emits are
queued on the SQLAlchemy session and only sent once that transaction commits,
so a rolled-back booking never pushes a phantom notification.
"""

import logging
from typing import Any, Optional

from fastapi import HTTPException
from sqlalchemy import event
from sqlalchemy.orm import Session

from ...models import Notification, User
from ...realtime import manager
from ...shared.time_utils import utcnow
from .repository import NotificationRepository

logger = logging.getLogger(__name__)

PENDING_EMITS_KEY = "pending_notification_emits"


@event.listens_for(Session, "after_commit")
def _emit_after_commit(session: Session):
    for user_id, event_name, payload in session.info.pop(PENDING_EMITS_KEY, []):
        try:
            manager.emit(user_id, event_name, payload)
        except Exception as e:
            logger.error(f"❌ Failed to emit {event_name} to user {user_id}: {e}")


@event.listens_for(Session, "after_rollback")
def _discard_after_rollback(session: Session):
    session.info.pop(PENDING_EMITS_KEY, None)


def queue_emit(db: Session, user_id: int, event_name: str, payload: Any) -> None:
    """Deliver `payload` to the user's realtime room after the current transaction commits"""
    db.info.setdefault(PENDING_EMITS_KEY, []).append((user_id, event_name, payload))


def serialize_notification(n: Notification) -> dict:
    return {
        "id": n.id,
        "type": n.type,
        "title": n.title,
        "message": n.message,
        "data": n.data or {},
        "priority": n.priority,
        "read": bool(n.is_read),
        "referenceId": n.reference_id,
        "referenceType": n.reference_type,
        "createdAt": n.created_at.isoformat() if n.created_at else None,
    }


class NotificationService:
    """Service layer for notifications"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = NotificationRepository()

    def create(
        self,
        user_id: int,
        type: str,
        title: str,
        message: str,
        data: Optional[dict] = None,
        priority: str = "low",
        reference_id: Optional[int] = None,
        reference_type: Optional[str] = None,
    ) -> Notification:
        """Insert a notification (no commit) and queue its realtime emit"""
        notification = self.repo.add(
            self.db,
            user_id=user_id,
            type=type,
            title=title,
            message=message,
            data=data or {},
            priority=priority,
            reference_id=reference_id,
            reference_type=reference_type,
            created_at=utcnow(),
        )
        queue_emit(self.db, user_id, "notification", serialize_notification(notification))
        logger.debug(f"🔔 Queued {type} notification for user {user_id}")
        return notification

    # ------------------------------------------------------------------
    # Typed notifications
    # ------------------------------------------------------------------

    def session_requested(self, session, mentee: User) -> Notification:
        return self.create(
            session.mentor_id,
            "session_request",
            "New Session Request",
            f"{mentee.full_name} requested a session on {session.topic}",
            {"sessionId": session.id, "startTime": session.start_time.isoformat()},
            priority="high",
            reference_id=session.id,
            reference_type="session",
        )

    def session_booked(self, session, mentor: User) -> Notification:
        return self.create(
            session.mentee_id,
            "session_booked",
            "Session Booked",
            f"Your session with {mentor.full_name} has been booked and is awaiting confirmation. "
            f"${session.price:.2f} was deducted from your balance.",
            {"sessionId": session.id, "price": session.price},
            priority="medium",
            reference_id=session.id,
            reference_type="session",
        )

    def session_status_changed(self, session, recipient_id: int, status: str, message: str) -> Notification:
        return self.create(
            recipient_id,
            f"session_{status}",
            f"Session {status.capitalize()}",
            message,
            {"sessionId": session.id, "status": status},
            priority="high" if status in ("cancelled", "accepted") else "medium",
            reference_id=session.id,
            reference_type="session",
        )

    def session_rescheduled(self, session, recipient_id: int) -> Notification:
        return self.create(
            recipient_id,
            "session_rescheduled",
            "Session Rescheduled",
            f'The session "{session.topic}" has been rescheduled to {session.start_time.isoformat()}.',
            {"sessionId": session.id, "startTime": session.start_time.isoformat()},
            priority="high",
            reference_id=session.id,
            reference_type="session",
        )

    def session_starting_soon(self, session, recipient_id: int) -> Notification:
        return self.create(
            recipient_id,
            "session_starting_soon",
            "Session Starting Soon",
            f'Your session "{session.topic}" will begin soon.',
            {"sessionId": session.id, "startTime": session.start_time.isoformat()},
            priority="high",
            reference_id=session.id,
            reference_type="session",
        )

    def refund_processed(self, user_id: int, amount: float, reference_id: int, reference_type: str) -> Notification:
        return self.create(
            user_id,
            "refund_processed",
            "Refund Processed",
            f"${amount:.2f} has been refunded to your balance.",
            {"amount": amount},
            priority="medium",
            reference_id=reference_id,
            reference_type=reference_type,
        )

    def payout_processed(self, user_id: int, amount: float, transaction_id: int) -> Notification:
        return self.create(
            user_id,
            "payout_processed",
            "Payout Processed",
            f"Your payout of ${amount:.2f} has been processed.",
            {"amount": amount},
            priority="medium",
            reference_id=transaction_id,
            reference_type="transaction",
        )

    def mentor_application_status(self, user_id: int, status: str, reason: str = "") -> Notification:
        if status == "approved":
            title, message = "Mentor Application Approved!", "Congratulations! Your mentor application has been approved."
        elif status == "rejected":
            title, message = "Mentor Application Update", f"Your mentor application was not approved. Reason: {reason}"
        else:
            title, message = "Mentor Application Update", "Your mentor application is being reviewed."
        return self.create(
            user_id,
            "mentor_application_status",
            title,
            message,
            {"status": status, "reason": reason},
            priority="high" if status == "approved" else "medium",
        )

    def new_review(self, review) -> Notification:
        return self.create(
            review.mentor_id,
            "new_review",
            "New Review Received",
            f"You've received a {review.rating}-star review from a student.",
            {"reviewId": review.id, "rating": review.rating},
            reference_id=review.id,
            reference_type="review",
        )

    def group_session_event(self, user_id: int, group_session, type: str, title: str, message: str) -> Notification:
        return self.create(
            user_id,
            type,
            title,
            message,
            {"groupSessionId": group_session.id},
            priority="medium",
            reference_id=group_session.id,
            reference_type="group_session",
        )

    # ------------------------------------------------------------------
    # Inbox
    # ------------------------------------------------------------------

    def list_notifications(self, user: User, limit: int = 50) -> list[Notification]:
        return self.repo.list_for_user(self.db, user.id, limit)

    def unread_count(self, user: User) -> int:
        return self.repo.count_unread(self.db, user.id)

    def mark_as_read(self, notification_id: int, user: User) -> Notification:
        notification = self.repo.get_for_user(self.db, notification_id, user.id)
        if not notification:
            raise HTTPException(status_code=404, detail="Notification not found")
        notification.is_read = True
        self.db.commit()
        self.db.refresh(notification)
        return notification

    def mark_all_as_read(self, user: User) -> int:
        updated = self.repo.mark_all_read(self.db, user.id)
        self.db.commit()
        return updated

    def delete(self, notification_id: int, user: User) -> None:
        notification = self.repo.get_for_user(self.db, notification_id, user.id)
        if not notification:
            raise HTTPException(status_code=404, detail="Notification not found")
        self.db.delete(notification)
        self.db.commit()

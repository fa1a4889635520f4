"""Admin service - user moderation and the mentor approval workflow"""

import logging

from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...models import GroupSessionParticipant, User, empty_weekly_availability
from ..ledger.service import LedgerService
from ..notifications.service import NotificationService
from .repository import AdminRepository

logger = logging.getLogger(__name__)

REVOKED_REASON = "Mentor status revoked by admin"


class AdminService:
    def __init__(self, db: Session):
        self.db = db
        self.repo = AdminRepository()
        self.notifications = NotificationService(db)

    def _get_user(self, user_id: int, detail: str = "User not found") -> User:
        user = self.repo.get_user(self.db, user_id)
        if not user:
            raise HTTPException(status_code=404, detail=detail)
        return user

    def _pending_applicant(self, mentor_id: int) -> User:
        user = self._get_user(mentor_id, "Mentor not found")
        if not user.mentor_profile:
            raise HTTPException(status_code=404, detail="Mentor not found")
        if user.mentor_profile.status != "pending":
            raise HTTPException(status_code=400, detail="Mentor is not in pending status")
        return user

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    def list_users(self) -> list[User]:
        return self.repo.list_users(self.db)

    def delete_user(self, user_id: int, admin: User) -> None:
        user = self._get_user(user_id)
        if user.is_admin:
            raise HTTPException(status_code=403, detail="Cannot delete admin users")
        if self.repo.has_history(self.db, user.id):
            raise HTTPException(
                status_code=409, detail="User has session or payment history; block the account instead"
            )

        try:
            self.db.query(GroupSessionParticipant).filter(GroupSessionParticipant.user_id == user.id).delete(
                synchronize_session="fetch"
            )
            self.db.delete(user)
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise HTTPException(
                status_code=409, detail="User has session or payment history; block the account instead"
            ) from e
        logger.info(f"🗑️ Admin {admin.id} deleted user {user_id}")

    # ------------------------------------------------------------------
    # Mentors
    # ------------------------------------------------------------------

    def mentors_by_status(self, status: str) -> list[User]:
        users = self.repo.users_by_profile_status(self.db, status)
        if status == "approved":
            users = [u for u in users if u.is_mentor]
        return users

    def approve(self, mentor_id: int, admin: User) -> User:
        user = self._pending_applicant(mentor_id)
        profile = user.mentor_profile

        profile.status = "approved"
        profile.rejection_reason = None
        if not profile.weekly_availability:
            profile.weekly_availability = empty_weekly_availability()
        if "mentor" not in (user.roles or []):
            user.roles = [*(user.roles or []), "mentor"]

        self.notifications.mentor_application_status(user.id, "approved")
        self.db.commit()
        self.db.refresh(user)
        logger.info(f"✅ Admin {admin.id} approved mentor {user.id}")
        return user

    def reject(self, mentor_id: int, reason: str, admin: User) -> User:
        if not reason or not reason.strip():
            raise HTTPException(status_code=400, detail="Rejection reason is required")
        user = self._pending_applicant(mentor_id)

        user.mentor_profile.status = "rejected"
        user.mentor_profile.rejection_reason = reason.strip()
        self.notifications.mentor_application_status(user.id, "rejected", reason.strip())
        self.db.commit()
        self.db.refresh(user)
        logger.info(f"🚫 Admin {admin.id} rejected mentor application {user.id}")
        return user

    def revoke(self, mentor_id: int, admin: User) -> User:
        user = self._get_user(mentor_id)

        user.roles = [r for r in (user.roles or []) if r != "mentor"]
        if user.mentor_profile:
            user.mentor_profile.status = "rejected"
            user.mentor_profile.rejection_reason = REVOKED_REASON
        self.notifications.mentor_application_status(user.id, "rejected", REVOKED_REASON)
        self.db.commit()
        self.db.refresh(user)
        logger.info(f"🚫 Admin {admin.id} revoked mentor status of {user.id}")
        return user

    def toggle_block(self, mentor_id: int, admin: User) -> User:
        user = self.repo.get_user(self.db, mentor_id)
        if not user or not user.is_mentor or not user.mentor_profile or user.mentor_profile.status != "approved":
            raise HTTPException(status_code=404, detail="Active mentor not found")

        user.blocked = not user.blocked
        self.db.commit()
        self.db.refresh(user)
        logger.info(f"🔒 Admin {admin.id} set blocked={user.blocked} for mentor {user.id}")
        return user

    # ------------------------------------------------------------------
    # Dashboard
    # ------------------------------------------------------------------

    def dashboard_stats(self) -> dict:
        approved = self.mentors_by_status("approved")
        return {
            "totalUsers": self.repo.count_users(self.db),
            "totalMentors": sum(1 for u in self.repo.list_users(self.db) if u.is_mentor),
            "pendingMentors": self.repo.count_profiles(self.db, "pending"),
            "approvedMentors": len(approved),
            "rejectedMentors": self.repo.count_profiles(self.db, "rejected"),
            "blockedMentors": sum(1 for u in approved if u.blocked),
            "totalSessions": self.repo.count_sessions(self.db),
            "completedSessions": self.repo.count_sessions(self.db, "completed"),
            "totalGroupSessions": self.repo.count_group_sessions(self.db),
        }

    def reconcile(self, user_id: int) -> dict:
        return LedgerService(self.db).reconcile(user_id)

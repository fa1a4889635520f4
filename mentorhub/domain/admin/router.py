"""Admin router - every route requires the admin role"""

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ...auth import require_admin
from ...database import get_db
from ...models import User
from ..ledger.schemas import ReconcileResponse
from ..users.schemas import MessageResponse, UserResponse
from .service import AdminService

router = APIRouter(prefix="/admin", tags=["Admin"])


class RejectRequest(BaseModel):
    reason: Optional[str] = None


def get_admin_service(db: Session = Depends(get_db)) -> AdminService:
    """Dependency injection for AdminService"""
    return AdminService(db)


# ============================================================================
# USERS
# ============================================================================


@router.get("/users")
async def list_users(
    _: User = Depends(require_admin),
    service: AdminService = Depends(get_admin_service),
):
    return {"users": [UserResponse.from_model(u) for u in service.list_users()]}


@router.delete("/users/{user_id}", response_model=MessageResponse)
async def delete_user(
    user_id: int,
    admin: User = Depends(require_admin),
    service: AdminService = Depends(get_admin_service),
):
    service.delete_user(user_id, admin)
    return MessageResponse(message="User deleted successfully")


@router.get("/users/{user_id}/reconcile", response_model=ReconcileResponse)
async def reconcile_user_balance(
    user_id: int,
    _: User = Depends(require_admin),
    service: AdminService = Depends(get_admin_service),
):
    return service.reconcile(user_id)


# ============================================================================
# MENTORS
# ============================================================================


@router.get("/mentors/pending")
async def get_pending_mentors(
    _: User = Depends(require_admin),
    service: AdminService = Depends(get_admin_service),
):
    return {"mentors": [UserResponse.from_model(u) for u in service.mentors_by_status("pending")]}


@router.get("/mentors/active")
async def get_active_mentors(
    _: User = Depends(require_admin),
    service: AdminService = Depends(get_admin_service),
):
    return {"mentors": [UserResponse.from_model(u) for u in service.mentors_by_status("approved")]}


@router.get("/mentors/approved")
async def get_approved_mentors(
    _: User = Depends(require_admin),
    service: AdminService = Depends(get_admin_service),
):
    return {"mentors": [UserResponse.from_model(u) for u in service.mentors_by_status("approved")]}


@router.put("/mentors/{mentor_id}/approve")
async def approve_mentor(
    mentor_id: int,
    admin: User = Depends(require_admin),
    service: AdminService = Depends(get_admin_service),
):
    user = service.approve(mentor_id, admin)
    return {"message": "Mentor approved successfully", "mentor": UserResponse.from_model(user)}


@router.post("/mentors/{mentor_id}/reject")
async def reject_mentor(
    mentor_id: int,
    data: RejectRequest,
    admin: User = Depends(require_admin),
    service: AdminService = Depends(get_admin_service),
):
    user = service.reject(mentor_id, data.reason, admin)
    return {"message": "Mentor application rejected", "mentor": UserResponse.from_model(user)}


@router.post("/mentors/{mentor_id}/revoke", response_model=MessageResponse)
async def revoke_mentor(
    mentor_id: int,
    admin: User = Depends(require_admin),
    service: AdminService = Depends(get_admin_service),
):
    service.revoke(mentor_id, admin)
    return MessageResponse(message="Mentor status revoked successfully")


@router.put("/mentors/{mentor_id}/toggle-block")
async def toggle_block_mentor(
    mentor_id: int,
    admin: User = Depends(require_admin),
    service: AdminService = Depends(get_admin_service),
):
    user = service.toggle_block(mentor_id, admin)
    return {"mentor": UserResponse.from_model(user)}


# ============================================================================
# DASHBOARD
# ============================================================================


@router.get("/dashboard/stats")
async def get_dashboard_stats(
    _: User = Depends(require_admin),
    service: AdminService = Depends(get_admin_service),
):
    return {"stats": service.dashboard_stats()}

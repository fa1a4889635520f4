"""Availability router - weekly schedule and dated slots under /mentors"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user, require_mentor
from ...database import get_db
from ...models import User
from .schemas import OpenSlot, SlotCreate, SlotResponse, WeeklyAvailabilityUpdate
from .service import AvailabilityService

router = APIRouter(prefix="/mentors", tags=["Availability"])


def get_availability_service(db: Session = Depends(get_db)) -> AvailabilityService:
    """Dependency injection for AvailabilityService"""
    return AvailabilityService(db)


@router.post("/setup-availability")
async def setup_default_availability(
    current_user: User = Depends(require_mentor),
    service: AvailabilityService = Depends(get_availability_service),
):
    """Reset the weekly template to every day unavailable"""
    availability = service.reset_weekly(current_user)
    return {"message": "Availability initialized successfully", "availability": availability}


@router.put("/{mentor_id}/availability")
async def update_weekly_availability(
    mentor_id: int,
    data: WeeklyAvailabilityUpdate,
    current_user: User = Depends(get_current_user),
    service: AvailabilityService = Depends(get_availability_service),
):
    return {"availability": service.update_weekly(mentor_id, data, current_user)}


@router.post("/{mentor_id}/availability", status_code=201)
async def add_availability_slots(
    mentor_id: int,
    data: SlotCreate,
    current_user: User = Depends(get_current_user),
    service: AvailabilityService = Depends(get_availability_service),
):
    slots = service.add_slots(mentor_id, data, current_user)
    return {
        "message": "Availability slot(s) created successfully",
        "slots": [SlotResponse.from_model(s) for s in slots],
    }


@router.delete("/{mentor_id}/availability/{slot_id}")
async def remove_availability_slot(
    mentor_id: int,
    slot_id: int,
    current_user: User = Depends(get_current_user),
    service: AvailabilityService = Depends(get_availability_service),
):
    service.remove_slot(mentor_id, slot_id, current_user)
    return {"message": "Availability slot removed successfully"}


@router.get("/{mentor_id}/availability", response_model=dict[str, list[OpenSlot]])
async def get_availability(
    mentor_id: int,
    date: Optional[date] = Query(None),
    service: AvailabilityService = Depends(get_availability_service),
):
    """Public: open slots for a day with the durations that still fit"""
    return {"slots": service.get_open_slots(mentor_id, date)}

"""Availability service - weekly template, dated slots and open-slot computation"""

import logging
from datetime import date, datetime, timedelta
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import AvailabilitySlot, MentorProfile, User, empty_weekly_availability
from ...shared.time_utils import WEEKDAYS, combine, next_weekday, utcnow, weekday_name
from ..sessions.repository import SessionRepository
from .repository import AvailabilityRepository
from .schemas import SlotCreate, WeeklyAvailabilityUpdate
from .slots import (
    MIN_SLOT_MINUTES,
    SlotValidationError,
    busy_minutes_on,
    normalize_weekly_slots,
    open_slots,
    slot_minutes,
)

logger = logging.getLogger(__name__)

WEEKS_TO_GENERATE = 4
MAX_RECURRING_WEEKS = 12


def _fmt(dt_value: datetime) -> str:
    return dt_value.strftime("%H:%M")


class AvailabilityService:
    """Service layer for mentor availability"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = AvailabilityRepository()
        self.sessions = SessionRepository()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _get_mentor_profile(self, mentor_id: int) -> MentorProfile:
        user = self.db.query(User).filter(User.id == mentor_id).first()
        if not user or not user.is_mentor:
            raise HTTPException(status_code=404, detail="Mentor not found")
        if not user.mentor_profile:
            raise HTTPException(status_code=404, detail="Mentor profile not found")
        return user.mentor_profile

    def _session_conflicts(self, mentor_id: int, day: date, start_time: str, end_time: str) -> list:
        start, end = combine(day, start_time), combine(day, end_time)
        return self.sessions.find_overlapping(self.db, mentor_id, start, end)

    @staticmethod
    def _describe_sessions(sessions) -> str:
        return ", ".join(f"{_fmt(s.start_time)} - {_fmt(s.end_time)}" for s in sessions)

    # ------------------------------------------------------------------
    # Weekly template
    # ------------------------------------------------------------------

    def update_weekly(self, mentor_id: int, data: WeeklyAvailabilityUpdate, user: User) -> dict:
        if mentor_id != user.id:
            raise HTTPException(status_code=403, detail="You can only update your own availability")

        day = data.day.strip().lower()
        if day not in WEEKDAYS:
            raise HTTPException(status_code=400, detail="Invalid day. Must be one of: " + ", ".join(WEEKDAYS))

        try:
            slots = normalize_weekly_slots(s.model_dump() for s in data.slots)
        except SlotValidationError as e:
            raise HTTPException(status_code=400, detail=str(e)) from e

        profile = self._get_mentor_profile(mentor_id)

        next_date = next_weekday(day)
        for slot in slots:
            if self._session_conflicts(mentor_id, next_date, slot["startTime"], slot["endTime"]):
                raise HTTPException(
                    status_code=400,
                    detail=f"Time slot {slot['startTime']}-{slot['endTime']} overlaps with an existing session",
                )

        availability = dict(profile.weekly_availability or empty_weekly_availability())
        availability[day] = {"available": data.available, "slots": slots}
        profile.weekly_availability = availability

        self._regenerate_weekly_slots(mentor_id, day, availability[day])
        self.db.commit()
        logger.info(f"📅 Weekly availability for {day} updated by mentor {mentor_id}")
        return availability

    def _regenerate_weekly_slots(self, mentor_id: int, day: str, schedule: dict) -> int:
        """Replace generated slots for `day` over the coming weeks, skipping conflicts"""
        today = utcnow().date()
        window_end = today + timedelta(weeks=WEEKS_TO_GENERATE)

        existing = self.repo.slots_between(self.db, mentor_id, today, window_end)
        for slot in existing:
            if slot.is_generated and weekday_name(slot.date) == day:
                self.db.delete(slot)
        self.db.flush()
        kept = [s for s in existing if not (s.is_generated and weekday_name(s.date) == day)]

        if not schedule.get("available"):
            return 0

        created = []
        occurrence = next_weekday(day, today)
        while occurrence < window_end:
            for slot in schedule.get("slots", []):
                start, end = slot_minutes(slot["startTime"], slot["endTime"])
                clashes_slot = any(
                    k.date == occurrence
                    and start < slot_minutes(k.start_time, k.end_time)[1]
                    and end > slot_minutes(k.start_time, k.end_time)[0]
                    for k in kept
                )
                if clashes_slot or self._session_conflicts(mentor_id, occurrence, slot["startTime"], slot["endTime"]):
                    continue
                created.append(
                    AvailabilitySlot(
                        mentor_id=mentor_id,
                        date=occurrence,
                        start_time=slot["startTime"],
                        end_time=slot["endTime"],
                        is_weekly_slot=True,
                        is_generated=True,
                    )
                )
            occurrence += timedelta(weeks=1)

        self.repo.add_all(self.db, created)
        logger.debug(f"Generated {len(created)} weekly slots for mentor {mentor_id} on {day}")
        return len(created)

    def reset_weekly(self, user: User) -> dict:
        profile = self._get_mentor_profile(user.id)
        profile.weekly_availability = empty_weekly_availability()
        for day in WEEKDAYS:
            self._regenerate_weekly_slots(user.id, day, profile.weekly_availability[day])
        self.db.commit()
        logger.info(f"📅 Availability reset for mentor {user.id}")
        return profile.weekly_availability

    # ------------------------------------------------------------------
    # Dated slots
    # ------------------------------------------------------------------

    def add_slots(self, mentor_id: int, data: SlotCreate, user: User) -> list[AvailabilitySlot]:
        try:
            start, end = slot_minutes(data.startTime, data.endTime)
        except SlotValidationError as e:
            raise HTTPException(status_code=400, detail=str(e)) from e

        if data.recurring and (not data.numberOfWeeks or not 1 <= data.numberOfWeeks <= MAX_RECURRING_WEEKS):
            raise HTTPException(
                status_code=400,
                detail=f"For recurring slots, number of weeks must be between 1 and {MAX_RECURRING_WEEKS}",
            )

        if mentor_id != user.id:
            raise HTTPException(status_code=403, detail="You can only add availability slots for yourself")

        self._get_mentor_profile(mentor_id)

        if end - start < MIN_SLOT_MINUTES:
            raise HTTPException(status_code=400, detail="Time slot must be at least 30 minutes long")

        weeks = data.numberOfWeeks if data.recurring else 1
        dates = [data.date + timedelta(weeks=i) for i in range(weeks)]

        for slot_date in dates:
            for existing in self.repo.slots_on(self.db, mentor_id, slot_date):
                ex_start, ex_end = slot_minutes(existing.start_time, existing.end_time)
                if start < ex_end and end > ex_start:
                    raise HTTPException(
                        status_code=400,
                        detail=f"Time slot overlaps with an existing slot on {slot_date.isoformat()} "
                        f"from {existing.start_time} to {existing.end_time}",
                    )

            conflicts = self._session_conflicts(mentor_id, slot_date, data.startTime, data.endTime)
            if conflicts:
                raise HTTPException(
                    status_code=400,
                    detail=f"Cannot create availability slot due to existing sessions on "
                    f"{slot_date.isoformat()} at: {self._describe_sessions(conflicts)}",
                )

        slots = [
            AvailabilitySlot(
                mentor_id=mentor_id,
                date=slot_date,
                start_time=data.startTime,
                end_time=data.endTime,
                is_weekly_slot=data.recurring,
            )
            for slot_date in dates
        ]
        self.repo.add_all(self.db, slots)
        self.db.commit()
        logger.info(f"📅 Mentor {mentor_id} added {len(slots)} availability slot(s)")
        return slots

    def remove_slot(self, mentor_id: int, slot_id: int, user: User) -> None:
        if mentor_id != user.id:
            raise HTTPException(status_code=403, detail="You can only remove your own availability slots")

        self._get_mentor_profile(mentor_id)

        slot = self.repo.get_slot(self.db, mentor_id, slot_id)
        if not slot:
            raise HTTPException(status_code=404, detail="Availability slot not found")

        conflicts = self._session_conflicts(mentor_id, slot.date, slot.start_time, slot.end_time)
        if conflicts:
            raise HTTPException(
                status_code=400,
                detail=f"Cannot remove availability slot due to existing sessions at: "
                f"{self._describe_sessions(conflicts)}",
            )

        self.db.delete(slot)
        self.db.commit()
        logger.info(f"🗑️ Mentor {mentor_id} removed availability slot {slot_id}")

    # ------------------------------------------------------------------
    # Public view
    # ------------------------------------------------------------------

    def get_open_slots(self, mentor_id: int, day: Optional[date]) -> list[dict]:
        """
        Bookable time on `day`: explicit dated slots when any exist, otherwise the
        weekly template, each split around booked sessions.
        """
        if day is None:
            raise HTTPException(status_code=400, detail="Date parameter is required")

        profile = self._get_mentor_profile(mentor_id)

        dated = self.repo.slots_on(self.db, mentor_id, day)
        if dated:
            base = [
                {"id": s.id, "date": day, "startTime": s.start_time, "endTime": s.end_time} for s in dated
            ]
        else:
            schedule = (profile.weekly_availability or {}).get(weekday_name(day)) or {}
            base = []
            if schedule.get("available"):
                base = [
                    {"date": day, "startTime": s["startTime"], "endTime": s["endTime"]}
                    for s in schedule.get("slots", [])
                ]

        day_start = datetime(day.year, day.month, day.day)
        booked = self.sessions.find_overlapping(self.db, mentor_id, day_start, day_start + timedelta(days=1))
        busy = [busy_minutes_on(day, s.start_time, s.end_time) for s in booked]

        return open_slots(base, busy)

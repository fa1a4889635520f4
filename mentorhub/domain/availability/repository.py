"""Availability repository - dated slots"""

from datetime import date
from typing import Optional

from sqlalchemy.orm import Session

from ...models import AvailabilitySlot


class AvailabilityRepository:
    @staticmethod
    def slots_on(db: Session, mentor_id: int, day: date) -> list[AvailabilitySlot]:
        return (
            db.query(AvailabilitySlot)
            .filter(AvailabilitySlot.mentor_id == mentor_id, AvailabilitySlot.date == day)
            .all()
        )

    @staticmethod
    def slots_between(db: Session, mentor_id: int, start: date, end: date) -> list[AvailabilitySlot]:
        """Slots with start <= date < end"""
        return (
            db.query(AvailabilitySlot)
            .filter(
                AvailabilitySlot.mentor_id == mentor_id,
                AvailabilitySlot.date >= start,
                AvailabilitySlot.date < end,
            )
            .all()
        )

    @staticmethod
    def get_slot(db: Session, mentor_id: int, slot_id: int) -> Optional[AvailabilitySlot]:
        return (
            db.query(AvailabilitySlot)
            .filter(AvailabilitySlot.id == slot_id, AvailabilitySlot.mentor_id == mentor_id)
            .first()
        )

    @staticmethod
    def add_all(db: Session, slots: list[AvailabilitySlot]) -> None:
        db.add_all(slots)
        db.flush()

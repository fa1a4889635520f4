"""Availability schemas"""

import datetime as dt
from typing import Optional

from pydantic import BaseModel, Field


class TimeRange(BaseModel):
    startTime: str
    endTime: str


class WeeklyAvailabilityUpdate(BaseModel):
    """One day of the weekly template; validated by the service so errors are 400s"""

    day: str
    available: bool
    slots: list[TimeRange]


class SlotCreate(BaseModel):
    date: dt.date
    startTime: str
    endTime: str
    recurring: bool = False
    numberOfWeeks: Optional[int] = None


class SlotResponse(BaseModel):
    id: int
    date: dt.date
    startTime: str
    endTime: str
    isWeeklySlot: bool
    isGenerated: bool = False

    @classmethod
    def from_model(cls, slot) -> "SlotResponse":
        return cls(
            id=slot.id,
            date=slot.date,
            startTime=slot.start_time,
            endTime=slot.end_time,
            isWeeklySlot=slot.is_weekly_slot,
            isGenerated=bool(slot.is_generated),
        )


class OpenSlot(BaseModel):
    id: Optional[int] = None
    date: dt.date
    startTime: str
    endTime: str
    availableDurations: list[int] = Field(default_factory=list)

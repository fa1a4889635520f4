"""Shared date/time helpers for scheduling"""

import re
from datetime import date, datetime, timedelta, timezone
from typing import Optional

HHMM_PATTERN = re.compile(r"^([0-1]?[0-9]|2[0-3]):[0-5][0-9]$")

WEEKDAYS = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]


def utcnow() -> datetime:
    """Current time as a naive UTC datetime (the storage convention)"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Convert an aware datetime to naive UTC; naive values are assumed UTC already"""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def is_valid_hhmm(value: Optional[str]) -> bool:
    return bool(value) and bool(HHMM_PATTERN.match(value))


def hhmm_to_minutes(value: str) -> int:
    """'09:30' -> 570"""
    if not is_valid_hhmm(value):
        raise ValueError(f"Invalid time format '{value}'. Use HH:mm format (e.g., 09:00)")
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)


def minutes_to_hhmm(total: int) -> str:
    """570 -> '09:30'"""
    return f"{total // 60:02d}:{total % 60:02d}"


def combine(day: date, hhmm: str) -> datetime:
    """Naive UTC datetime for a calendar day and an HH:mm wall time"""
    return datetime(day.year, day.month, day.day) + timedelta(minutes=hhmm_to_minutes(hhmm))


def weekday_name(day: date) -> str:
    return WEEKDAYS[day.weekday()]


def next_weekday(day_name: str, today: Optional[date] = None) -> date:
    """Next occurrence of a weekday, counting today"""
    today = today or utcnow().date()
    offset = (WEEKDAYS.index(day_name) - today.weekday()) % 7
    return today + timedelta(days=offset)


def intervals_overlap(start_a, end_a, start_b, end_b) -> bool:
    """Half-open interval overlap; touching endpoints do not overlap"""
    return start_a < end_b and end_a > start_b

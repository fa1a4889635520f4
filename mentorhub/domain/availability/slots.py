"""
Pure slot arithmetic for availability

All comparisons are on integer minutes since midnight (UTC), never on HH:mm strings.
"""

from datetime import date, datetime
from typing import Iterable

from ...shared.time_utils import hhmm_to_minutes, is_valid_hhmm, minutes_to_hhmm

MIN_SLOT_MINUTES = 30
OFFERED_DURATIONS = (30, 60, 120)
MINUTES_PER_DAY = 24 * 60


class SlotValidationError(ValueError):
    pass


def slot_minutes(start_time: str, end_time: str) -> tuple[int, int]:
    """Validate an HH:mm pair and return it as (start, end) minutes"""
    if not is_valid_hhmm(start_time) or not is_valid_hhmm(end_time):
        raise SlotValidationError("Invalid time format. Use HH:mm format (e.g., 09:00)")
    start, end = hhmm_to_minutes(start_time), hhmm_to_minutes(end_time)
    if end <= start:
        raise SlotValidationError("End time must be after start time")
    return start, end


def normalize_weekly_slots(slots: Iterable[dict]) -> list[dict]:
    """Validate weekly slots, sort them by start and reject overlaps"""
    parsed = []
    for slot in slots:
        start, end = slot_minutes(slot.get("startTime"), slot.get("endTime"))
        parsed.append((start, end))

    parsed.sort()
    for (_, prev_end), (next_start, _) in zip(parsed, parsed[1:]):
        if prev_end > next_start:
            raise SlotValidationError("Time slots cannot overlap")

    return [{"startTime": minutes_to_hhmm(s), "endTime": minutes_to_hhmm(e)} for s, e in parsed]


def available_durations(length: int) -> list[int]:
    return [d for d in OFFERED_DURATIONS if length >= d]


def busy_minutes_on(day: date, start: datetime, end: datetime) -> tuple[int, int]:
    """A datetime interval as minutes on `day`, clamped to that day"""
    midnight = datetime(day.year, day.month, day.day)
    start_min = int((start - midnight).total_seconds() // 60)
    end_min = int((end - midnight).total_seconds() // 60)
    return max(0, start_min), min(MINUTES_PER_DAY, end_min)


def subtract_busy(
    start: int, end: int, busy: Iterable[tuple[int, int]], min_length: int = MIN_SLOT_MINUTES
) -> list[tuple[int, int]]:
    """
    Remove busy intervals from [start, end).

    Remainders shorter than `min_length` are dropped. Touching intervals do not overlap.
    """
    free = [(start, end)]
    for busy_start, busy_end in sorted(busy):
        next_free = []
        for free_start, free_end in free:
            if busy_start >= free_end or busy_end <= free_start:
                next_free.append((free_start, free_end))
                continue
            if busy_start > free_start:
                next_free.append((free_start, busy_start))
            if busy_end < free_end:
                next_free.append((busy_end, free_end))
        free = next_free
    return [(s, e) for s, e in free if e - s >= min_length]


def open_slots(slots: Iterable[dict], busy: list[tuple[int, int]]) -> list[dict]:
    """
    Split each slot around busy intervals and annotate what can still be booked.

    Slots keep their extra keys (id, date) so callers can trace them back.
    Results are sorted by start time.
    """
    result = []
    for slot in slots:
        start, end = slot_minutes(slot["startTime"], slot["endTime"])
        extra = {k: v for k, v in slot.items() if k not in ("startTime", "endTime")}
        for free_start, free_end in subtract_busy(start, end, busy):
            result.append(
                {
                    **extra,
                    "startTime": minutes_to_hhmm(free_start),
                    "endTime": minutes_to_hhmm(free_end),
                    "availableDurations": available_durations(free_end - free_start),
                }
            )
    result.sort(key=lambda s: hhmm_to_minutes(s["startTime"]))
    return result

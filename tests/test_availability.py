from datetime import date, timedelta

import pytest

from conftest import auth_headers, future_time, make_mentor
from mentorhub.domain.availability.slots import (
    SlotValidationError,
    normalize_weekly_slots,
    open_slots,
    subtract_busy,
)
from mentorhub.models import AvailabilitySlot, MentorProfile
from mentorhub.shared.time_utils import next_weekday, utcnow, weekday_name

# ---------------------------------------------------------------------------
# Slot arithmetic
# ---------------------------------------------------------------------------


def test_subtract_busy_splits_and_drops_short_remainders():
    # 09:00-12:00 minus 09:15-10:00 and 11:00-11:45
    assert subtract_busy(540, 720, [(555, 600), (660, 705)]) == [(600, 660)]


def test_subtract_busy_touching_intervals_do_not_overlap():
    assert subtract_busy(540, 600, [(600, 660)]) == [(540, 600)]


def test_normalize_weekly_slots_sorts():
    slots = [{"startTime": "14:00", "endTime": "15:00"}, {"startTime": "9:00", "endTime": "10:30"}]
    assert normalize_weekly_slots(slots) == [
        {"startTime": "09:00", "endTime": "10:30"},
        {"startTime": "14:00", "endTime": "15:00"},
    ]


@pytest.mark.parametrize(
    "slots",
    [
        [{"startTime": "09:00", "endTime": "08:00"}],
        [{"startTime": "25:00", "endTime": "26:00"}],
        [{"startTime": "09:00", "endTime": "11:00"}, {"startTime": "10:00", "endTime": "12:00"}],
    ],
)
def test_normalize_weekly_slots_rejects(slots):
    with pytest.raises(SlotValidationError):
        normalize_weekly_slots(slots)


def test_open_slots_annotates_durations_and_sorts():
    day = date(2030, 1, 7)
    slots = [
        {"id": 2, "date": day, "startTime": "13:00", "endTime": "13:45"},
        {"id": 1, "date": day, "startTime": "08:00", "endTime": "11:00"},
    ]
    result = open_slots(slots, busy=[(540, 600)])

    assert [(s["id"], s["startTime"], s["endTime"], s["availableDurations"]) for s in result] == [
        (1, "08:00", "09:00", [30, 60]),
        (1, "10:00", "11:00", [30, 60]),
        (2, "13:00", "13:45", [30]),
    ]


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


def slot_day(days=3) -> date:
    return (utcnow() + timedelta(days=days)).date()


def add_slot(client, mentor, day, start="09:00", end="12:00", **extra):
    payload = {"date": day.isoformat(), "startTime": start, "endTime": end, **extra}
    return client.post(f"/api/mentors/{mentor.id}/availability", json=payload, headers=auth_headers(mentor))


def test_open_slots_split_around_booked_session(client, mentor, book):
    day = slot_day()
    assert add_slot(client, mentor, day).status_code == 201
    assert book(start=future_time(days=3, hour=10)).status_code == 201

    response = client.get(f"/api/mentors/{mentor.id}/availability", params={"date": day.isoformat()})

    assert response.status_code == 200
    slots = response.json()["slots"]
    assert [(s["startTime"], s["endTime"], s["availableDurations"]) for s in slots] == [
        ("09:00", "10:00", [30, 60]),
        ("11:00", "12:00", [30, 60]),
    ]


def test_open_slots_fall_back_to_weekly_template(client, db, mentor):
    day = slot_day()
    profile = db.query(MentorProfile).filter(MentorProfile.user_id == mentor.id).one()
    availability = dict(profile.weekly_availability)
    availability[weekday_name(day)] = {"available": True, "slots": [{"startTime": "13:00", "endTime": "15:00"}]}
    profile.weekly_availability = availability
    db.commit()

    slots = client.get(f"/api/mentors/{mentor.id}/availability", params={"date": day.isoformat()}).json()["slots"]

    assert slots == [
        {"id": None, "date": day.isoformat(), "startTime": "13:00", "endTime": "15:00", "availableDurations": [30, 60, 120]}
    ]


def test_open_slots_requires_date(client, mentor):
    response = client.get(f"/api/mentors/{mentor.id}/availability")
    assert response.status_code == 400
    assert response.json()["detail"] == "Date parameter is required"


def test_open_slots_unknown_mentor(client):
    response = client.get("/api/mentors/9999/availability", params={"date": slot_day().isoformat()})
    assert response.status_code == 404


def test_add_recurring_slots(client, db, mentor):
    response = add_slot(client, mentor, slot_day(), recurring=True, numberOfWeeks=3)

    assert response.status_code == 201
    slots = response.json()["slots"]
    assert len(slots) == 3
    assert all(s["isWeeklySlot"] and not s["isGenerated"] for s in slots)
    assert db.query(AvailabilitySlot).count() == 3


@pytest.mark.parametrize(
    "extra, detail_part",
    [
        ({"recurring": True, "numberOfWeeks": 13}, "number of weeks"),
        ({"startTime": "09:00", "endTime": "09:15"}, "at least 30 minutes"),
        ({"startTime": "12:00", "endTime": "09:00"}, "End time must be after start time"),
        ({"startTime": "9am", "endTime": "10am"}, "Invalid time format"),
    ],
)
def test_add_slot_validation(client, mentor, extra, detail_part):
    response = add_slot(client, mentor, slot_day(), **extra)

    assert response.status_code == 400
    assert detail_part in response.json()["detail"]


def test_add_slot_overlapping_existing_slot(client, mentor):
    day = slot_day()
    add_slot(client, mentor, day, "09:00", "11:00")

    response = add_slot(client, mentor, day, "10:30", "12:00")

    assert response.status_code == 400
    assert day.isoformat() in response.json()["detail"]


def test_add_slot_overlapping_session(client, mentor, book):
    day = slot_day()
    book(start=future_time(days=3, hour=10))

    response = add_slot(client, mentor, day)

    assert response.status_code == 400
    assert "10:00 - 11:00" in response.json()["detail"]


def test_add_slot_for_someone_else(client, db, mentor):
    other = make_mentor(db, "other-mentor@example.com")

    response = client.post(
        f"/api/mentors/{other.id}/availability",
        json={"date": slot_day().isoformat(), "startTime": "09:00", "endTime": "10:00"},
        headers=auth_headers(mentor),
    )

    assert response.status_code == 403


def test_remove_slot(client, db, mentor):
    slot_id = add_slot(client, mentor, slot_day()).json()["slots"][0]["id"]

    response = client.delete(f"/api/mentors/{mentor.id}/availability/{slot_id}", headers=auth_headers(mentor))

    assert response.status_code == 200
    assert db.query(AvailabilitySlot).count() == 0
    missing = client.delete(f"/api/mentors/{mentor.id}/availability/{slot_id}", headers=auth_headers(mentor))
    assert missing.status_code == 404


def test_remove_slot_with_booked_session(client, mentor, book):
    slot_id = add_slot(client, mentor, slot_day()).json()["slots"][0]["id"]
    book(start=future_time(days=3, hour=10))

    response = client.delete(f"/api/mentors/{mentor.id}/availability/{slot_id}", headers=auth_headers(mentor))

    assert response.status_code == 400


def test_update_weekly_generates_four_weeks_of_slots(client, db, mentor):
    day = weekday_name(slot_day())

    response = client.put(
        f"/api/mentors/{mentor.id}/availability",
        json={"day": day, "available": True, "slots": [{"startTime": "09:00", "endTime": "10:00"}]},
        headers=auth_headers(mentor),
    )

    assert response.status_code == 200
    assert response.json()["availability"][day]["slots"] == [{"startTime": "09:00", "endTime": "10:00"}]
    generated = db.query(AvailabilitySlot).filter(AvailabilitySlot.is_generated.is_(True)).all()
    assert len(generated) == 4
    assert {weekday_name(s.date) for s in generated} == {day}


def test_update_weekly_replaces_generated_slots(client, db, mentor):
    day = weekday_name(slot_day())
    url = f"/api/mentors/{mentor.id}/availability"
    body = {"day": day, "available": True, "slots": [{"startTime": "09:00", "endTime": "10:00"}]}
    client.put(url, json=body, headers=auth_headers(mentor))

    client.put(url, json={**body, "available": False}, headers=auth_headers(mentor))

    assert db.query(AvailabilitySlot).count() == 0


def test_update_weekly_keeps_recurring_series(client, db, mentor):
    day = slot_day()
    assert add_slot(client, mentor, day, "14:00", "15:00", recurring=True, numberOfWeeks=3).status_code == 201
    url = f"/api/mentors/{mentor.id}/availability"
    body = {"day": weekday_name(day), "available": True, "slots": [{"startTime": "09:00", "endTime": "10:00"}]}

    client.put(url, json=body, headers=auth_headers(mentor))
    client.put(url, json={**body, "available": False}, headers=auth_headers(mentor))

    remaining = db.query(AvailabilitySlot).order_by(AvailabilitySlot.date).all()
    assert [s.date for s in remaining] == [day + timedelta(weeks=i) for i in range(3)]
    assert all(s.start_time == "14:00" and not s.is_generated for s in remaining)


def test_update_weekly_conflicting_with_session(client, mentor, book):
    book(start=future_time(days=2, hour=10))
    day = weekday_name(slot_day(days=2))

    response = client.put(
        f"/api/mentors/{mentor.id}/availability",
        json={"day": day, "available": True, "slots": [{"startTime": "09:00", "endTime": "11:00"}]},
        headers=auth_headers(mentor),
    )

    assert response.status_code == 400
    assert response.json()["detail"] == "Time slot 09:00-11:00 overlaps with an existing session"


def test_update_weekly_validation(client, db, mentor):
    url = f"/api/mentors/{mentor.id}/availability"
    headers = auth_headers(mentor)

    bad_day = client.put(url, json={"day": "funday", "available": True, "slots": []}, headers=headers)
    assert bad_day.status_code == 400

    overlapping = client.put(
        url,
        json={
            "day": "monday",
            "available": True,
            "slots": [{"startTime": "09:00", "endTime": "11:00"}, {"startTime": "10:00", "endTime": "12:00"}],
        },
        headers=headers,
    )
    assert overlapping.status_code == 400
    assert overlapping.json()["detail"] == "Time slots cannot overlap"

    other = make_mentor(db, "other-mentor@example.com")
    forbidden = client.put(
        f"/api/mentors/{other.id}/availability",
        json={"day": "monday", "available": True, "slots": []},
        headers=headers,
    )
    assert forbidden.status_code == 403


def test_setup_availability_resets_template(client, db, mentor):
    client.put(
        f"/api/mentors/{mentor.id}/availability",
        json={"day": "monday", "available": True, "slots": [{"startTime": "09:00", "endTime": "10:00"}]},
        headers=auth_headers(mentor),
    )

    response = client.post("/api/mentors/setup-availability", headers=auth_headers(mentor))

    assert response.status_code == 200
    availability = response.json()["availability"]
    assert all(day == {"available": False, "slots": []} for day in availability.values())

    assert db.query(AvailabilitySlot).filter(AvailabilitySlot.is_generated.is_(True)).count() == 0
    monday = next_weekday("monday")
    public = client.get(f"/api/mentors/{mentor.id}/availability", params={"date": monday.isoformat()})
    assert public.json()["slots"] == []


def test_setup_availability_requires_mentor(client, mentee):
    response = client.post("/api/mentors/setup-availability", headers=auth_headers(mentee))
    assert response.status_code == 403

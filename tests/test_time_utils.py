from datetime import date, datetime, timedelta, timezone

import pytest

from mentorhub.shared.time_utils import (
    combine,
    hhmm_to_minutes,
    intervals_overlap,
    is_valid_hhmm,
    minutes_to_hhmm,
    next_weekday,
    to_naive_utc,
    weekday_name,
)


def test_to_naive_utc_converts_aware_values():
    aware = datetime(2030, 3, 1, 12, 0, tzinfo=timezone(timedelta(hours=2)))
    assert to_naive_utc(aware) == datetime(2030, 3, 1, 10, 0)


def test_to_naive_utc_leaves_naive_values():
    naive = datetime(2030, 3, 1, 12, 0)
    assert to_naive_utc(naive) is naive
    assert to_naive_utc(None) is None


@pytest.mark.parametrize("value, expected", [("09:30", 570), ("0:00", 0), ("23:59", 1439)])
def test_hhmm_to_minutes(value, expected):
    assert hhmm_to_minutes(value) == expected
    assert minutes_to_hhmm(expected) == value.zfill(5)


@pytest.mark.parametrize("value", ["24:00", "9.30", "", None, "09:60"])
def test_invalid_hhmm(value):
    assert not is_valid_hhmm(value)


def test_hhmm_to_minutes_rejects_garbage():
    with pytest.raises(ValueError):
        hhmm_to_minutes("noon")


def test_combine_and_weekday_name():
    assert combine(date(2030, 1, 7), "14:15") == datetime(2030, 1, 7, 14, 15)
    assert weekday_name(date(2030, 1, 7)) == "monday"


def test_next_weekday_counts_today():
    monday = date(2030, 1, 7)
    assert next_weekday("monday", today=monday) == monday
    assert next_weekday("sunday", today=monday) == date(2030, 1, 13)


def test_intervals_overlap_is_half_open():
    assert intervals_overlap(0, 60, 30, 90)
    assert not intervals_overlap(0, 60, 60, 120)
    assert intervals_overlap(0, 120, 30, 60)

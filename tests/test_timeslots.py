from datetime import date

import pytest

from app.services.timeslots import day_name, normalize_hhmm, overlap_window, overlaps, parse_hhmm, week_start


def test_parse_and_normalize():
    assert parse_hhmm("09:30") == 570
    assert parse_hhmm("0:05") == 5
    assert normalize_hhmm("7:00") == "07:00"


@pytest.mark.parametrize("value", ["24:00", "9:7", "nine", "", "12:60"])
def test_parse_rejects_bad_times(value):
    with pytest.raises(ValueError):
        parse_hhmm(value)


def test_overlap_is_symmetric():
    assert overlaps("09:00", "10:00", "09:30", "10:30")
    assert overlaps("09:30", "10:30", "09:00", "10:00")
    assert overlaps("09:00", "12:00", "10:00", "11:00")


def test_back_to_back_slots_do_not_overlap():
    assert not overlaps("09:00", "10:00", "10:00", "11:00")
    assert not overlaps("10:00", "11:00", "09:00", "10:00")


def test_overlap_window():
    assert overlap_window("09:00", "10:00", "09:30", "10:30") == ("09:30", "10:00")
    assert overlap_window("08:00", "12:00", "09:00", "10:00") == ("09:00", "10:00")
    assert overlap_window("08:00", "09:00", "09:00", "10:00") is None


def test_week_start_is_sunday():
    # 2026-03-04 is a Wednesday
    assert week_start(date(2026, 3, 4)) == date(2026, 3, 1)
    assert week_start(date(2026, 3, 1)) == date(2026, 3, 1)
    assert week_start(date(2026, 3, 7)) == date(2026, 3, 1)
    assert day_name(0) == "Sunday"
    assert day_name(6) == "Saturday"

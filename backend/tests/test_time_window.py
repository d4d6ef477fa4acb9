from datetime import date, time

import pytest

from schoolday.core.exceptions import InvalidWindowError
from schoolday.models.enums import DayOfWeek
from schoolday.services.time_window import TimeWindow, normalize_time, parse_time_to_minutes


def test_normalize_time_pads_single_digit_hours():
    assert normalize_time("9:05") == "09:05"
    assert normalize_time(" 14:30 ") == "14:30"
    assert normalize_time(time(8, 0)) == "08:00"


@pytest.mark.parametrize("value", ["24:00", "9:5", "0930", "ten", "", None, 930])
def test_normalize_time_rejects_malformed_values(value):
    with pytest.raises(InvalidWindowError) as exc_info:
        normalize_time(value, field="startTime")
    assert exc_info.value.field == "startTime"
    assert exc_info.value.status_code == 422
    assert exc_info.value.details["code"] == "InvalidWindow"


def test_window_requires_end_after_start():
    with pytest.raises(InvalidWindowError, match="End time must be after start time"):
        TimeWindow.from_values("10:00", "10:00", day_of_week="MONDAY")
    with pytest.raises(InvalidWindowError) as exc_info:
        TimeWindow.from_values("11:00", "10:00", day_of_week="MONDAY")
    assert exc_info.value.field == "endTime"


def test_overlap_is_half_open():
    first = TimeWindow.from_values("09:00", "10:00", day_of_week="MONDAY")
    adjacent = TimeWindow.from_values("10:00", "11:00", day_of_week="MONDAY")
    straddling = TimeWindow.from_values("09:30", "10:30", day_of_week="MONDAY")
    inside = TimeWindow.from_values("09:15", "09:45", day_of_week="MONDAY")

    assert not first.overlaps(adjacent)
    assert not adjacent.overlaps(first)
    assert first.overlaps(straddling)
    assert straddling.overlaps(adjacent)
    assert first.overlaps(inside) and inside.overlaps(first)


def test_date_decides_day_of_week():
    window = TimeWindow.from_values("09:00", "10:00", day_of_week="MONDAY", full_date=date(2024, 9, 6))
    assert window.day_of_week == DayOfWeek.FRIDAY
    assert window.label() == "2024-09-06 09:00-10:00"


def test_day_names_accept_short_and_mixed_case():
    assert TimeWindow.from_values("09:00", "10:00", day_of_week="tue").day_of_week == DayOfWeek.TUESDAY
    with pytest.raises(InvalidWindowError) as exc_info:
        TimeWindow.from_values("09:00", "10:00", day_of_week="Funday")
    assert exc_info.value.field == "dayOfWeek"


def test_same_period_and_duration():
    window = TimeWindow.from_values("9:00", "10:30", day_of_week="MONDAY")
    twin = TimeWindow.from_values("09:00", "10:30", day_of_week=DayOfWeek.MONDAY)
    other_day = TimeWindow.from_values("09:00", "10:30", day_of_week="TUESDAY")

    assert window.duration_minutes == 90
    assert window.same_period(twin)
    assert not window.same_period(other_day)
    assert parse_time_to_minutes("01:15") == 75

from datetime import date
from types import SimpleNamespace

import pytest

from lessonforge.core.exceptions import ScheduleValidationError
from lessonforge.services.series import (
    SeriesDefinition,
    VacationCalendar,
    VacationPeriod,
    add_months,
    candidate_dates,
    times_overlap,
    validate_time_window,
)


def definition(**overrides):
    values = dict(
        teacher_id="t1",
        student_id="s1",
        subject_id="math",
        booth_id="b1",
        start_time="10:00",
        end_time="11:00",
        start_date=date(2024, 1, 1),
        end_date=date(2024, 1, 10),
        days_of_week=(1, 3),
    )
    values.update(overrides)
    return SeriesDefinition(**values)


def test_candidate_dates_follow_weekdays():
    assert candidate_dates(definition()) == [
        date(2024, 1, 1),
        date(2024, 1, 3),
        date(2024, 1, 8),
        date(2024, 1, 10),
    ]


def test_empty_weekdays_use_start_date_weekday():
    dates = candidate_dates(definition(days_of_week=(), end_date=date(2024, 1, 20)))
    assert dates == [date(2024, 1, 1), date(2024, 1, 8), date(2024, 1, 15)]


def test_missing_end_date_uses_default_horizon():
    dates = candidate_dates(definition(end_date=None, days_of_week=(1,)), default_horizon_months=1)
    assert dates[-1] == date(2024, 1, 29)
    assert len(dates) == 5


def test_reversed_range_is_rejected():
    with pytest.raises(ScheduleValidationError):
        candidate_dates(definition(start_date=date(2024, 2, 1), end_date=date(2024, 1, 1)))


def test_invalid_weekday_is_rejected():
    with pytest.raises(ScheduleValidationError):
        candidate_dates(definition(days_of_week=(7,)))


def test_add_months_clamps_to_month_end():
    assert add_months(date(2024, 1, 31), 1) == date(2024, 2, 29)
    assert add_months(date(2024, 11, 15), 3) == date(2025, 2, 15)


def test_recurring_vacation_wraps_new_year():
    period = VacationPeriod("Winter break", date(2023, 12, 28), date(2024, 1, 3), is_recurring=True)
    assert period.contains(date(2030, 12, 30))
    assert period.contains(date(2031, 1, 2))
    assert not period.contains(date(2031, 1, 4))


def test_vacation_calendar_from_rows():
    calendar = VacationCalendar.from_rows(
        [SimpleNamespace(name="Golden Week", start_date=date(2024, 5, 3), end_date=date(2024, 5, 6), is_recurring=False)]
    )
    assert calendar.find(date(2024, 5, 4)).name == "Golden Week"
    assert calendar.find(date(2025, 5, 4)) is None


def test_time_window_validation_and_overlap():
    with pytest.raises(ScheduleValidationError):
        validate_time_window("11:00", "10:00")
    with pytest.raises(ScheduleValidationError):
        validate_time_window("10:00", "10:00")
    assert times_overlap("10:00", "11:00", "10:30", "12:00")
    assert not times_overlap("10:00", "11:00", "11:00", "12:00")

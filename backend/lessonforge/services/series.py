from __future__ import annotations

import calendar
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import date, timedelta

from lessonforge.core.exceptions import ScheduleValidationError
from lessonforge.services.availability import day_index
from lessonforge.services.time_slots import parse_time_to_minutes


@dataclass(frozen=True)
class SeriesDefinition:
    teacher_id: str
    student_id: str
    subject_id: str
    booth_id: str
    start_time: str
    end_time: str
    start_date: date
    end_date: date | None = None
    days_of_week: tuple[int, ...] = ()
    check_availability: bool = True


@dataclass(frozen=True)
class VacationPeriod:
    name: str
    start_date: date
    end_date: date
    is_recurring: bool = False

    def contains(self, target: date) -> bool:
        if not self.is_recurring:
            return self.start_date <= target <= self.end_date
        start_key = (self.start_date.month, self.start_date.day)
        end_key = (self.end_date.month, self.end_date.day)
        target_key = (target.month, target.day)
        if start_key <= end_key:
            return start_key <= target_key <= end_key
        # Wraps across New Year, e.g. Dec 28 - Jan 3.
        return target_key >= start_key or target_key <= end_key


@dataclass
class VacationCalendar:
    periods: list[VacationPeriod] = field(default_factory=list)

    def find(self, target: date) -> VacationPeriod | None:
        for period in self.periods:
            if period.contains(target):
                return period
        return None

    @classmethod
    def from_rows(cls, rows: Iterable) -> VacationCalendar:
        return cls(
            periods=[
                VacationPeriod(
                    name=row.name,
                    start_date=row.start_date,
                    end_date=row.end_date,
                    is_recurring=bool(row.is_recurring),
                )
                for row in rows
            ]
        )


def add_months(value: date, months: int) -> date:
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def effective_end_date(definition: SeriesDefinition, default_horizon_months: int = 1) -> date:
    if definition.end_date is not None:
        return definition.end_date
    return add_months(definition.start_date, default_horizon_months)


def normalize_days_of_week(days_of_week: Sequence[int], start_date: date) -> list[int]:
    days = sorted({int(day) for day in days_of_week})
    for day in days:
        if day < 0 or day > 6:
            raise ScheduleValidationError(
                "Days of week must be between 0 (Sunday) and 6 (Saturday)",
                details={"days_of_week": list(days_of_week)},
            )
    if not days:
        return [day_index(start_date)]
    return days


def candidate_dates(definition: SeriesDefinition, default_horizon_months: int = 1) -> list[date]:
    """Every date in the series range that falls on one of its weekdays, ascending."""
    end = effective_end_date(definition, default_horizon_months)
    if end < definition.start_date:
        raise ScheduleValidationError(
            "Series end date must not be before its start date",
            details={"start_date": definition.start_date.isoformat(), "end_date": end.isoformat()},
        )
    days = set(normalize_days_of_week(definition.days_of_week, definition.start_date))

    dates: list[date] = []
    current = definition.start_date
    while current <= end:
        if day_index(current) in days:
            dates.append(current)
        current += timedelta(days=1)
    return dates


def validate_time_window(start_time: str, end_time: str) -> None:
    try:
        start = parse_time_to_minutes(start_time)
        end = parse_time_to_minutes(end_time)
    except ValueError as exc:
        raise ScheduleValidationError(str(exc), details={"start_time": start_time, "end_time": end_time}) from exc
    if start >= end:
        raise ScheduleValidationError(
            "Start time must be earlier than end time",
            details={"start_time": start_time, "end_time": end_time},
        )


def times_overlap(start_a: str, end_a: str, start_b: str, end_b: str) -> bool:
    return max(parse_time_to_minutes(start_a), parse_time_to_minutes(start_b)) < min(
        parse_time_to_minutes(end_a), parse_time_to_minutes(end_b)
    )

"""Availability resolution for a single person on a single date.

A person has recurring weekly windows keyed by weekday name and exceptional
windows keyed by date. For a given date an exceptional window wins over the
recurring one unless the caller asks for ``regular-only``. ``None`` means the
person has no window for the date at all, which callers must keep distinct
from a window that explicitly lists no ranges.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import date
from enum import Enum

from lessonforge.services.time_slots import (
    NOT_FOUND,
    TimeSlot,
    generate_time_slots,
    index_of_end,
    index_of_start,
    minutes_to_hhmm,
    parse_time_to_minutes,
)

DAY_NAMES = ("SUNDAY", "MONDAY", "TUESDAY", "WEDNESDAY", "THURSDAY", "FRIDAY", "SATURDAY")
FULL_DAY_START = "00:00"
FULL_DAY_END = "23:59"


class AvailabilityMode(str, Enum):
    with_special = "with-special"
    regular_only = "regular-only"


@dataclass(frozen=True)
class TimeRange:
    start_time: str
    end_time: str


@dataclass(frozen=True)
class AvailabilityWindow:
    full_day: bool = False
    ranges: tuple[TimeRange, ...] = ()
    day_of_week: str | None = None
    date: date | None = None

    @property
    def is_unavailable(self) -> bool:
        return not self.full_day and not self.ranges


@dataclass
class PersonAvailability:
    regular: dict[str, AvailabilityWindow] = field(default_factory=dict)
    exceptions: dict[date, AvailabilityWindow] = field(default_factory=dict)

    @property
    def has_any_data(self) -> bool:
        return bool(self.regular or self.exceptions)


def day_name(target: date) -> str:
    # date.weekday() is Monday=0; the day names start on Sunday.
    return DAY_NAMES[(target.weekday() + 1) % 7]


def day_index(target: date) -> int:
    return (target.weekday() + 1) % 7


def resolve_for_date(
    target: date,
    availability: PersonAvailability,
    mode: AvailabilityMode = AvailabilityMode.with_special,
) -> AvailabilityWindow | None:
    if mode == AvailabilityMode.with_special:
        special = availability.exceptions.get(target)
        if special is not None:
            return special
    return availability.regular.get(day_name(target))


def rasterize(window: AvailabilityWindow | None, slots: Sequence[TimeSlot] | None = None) -> list[bool]:
    grid = slots if slots is not None else generate_time_slots()
    if window is None:
        return [False] * len(grid)
    if window.full_day:
        return [True] * len(grid)

    coverage = [False] * len(grid)
    for item in window.ranges:
        start_index = index_of_start(item.start_time, grid)
        if start_index == NOT_FOUND:
            continue
        end_index = index_of_end(item.end_time, grid)
        if end_index == NOT_FOUND:
            end_index = len(grid)
        for index in range(start_index, min(end_index, len(grid))):
            coverage[index] = True
    return coverage


def window_ranges(window: AvailabilityWindow | None) -> list[TimeRange]:
    if window is None:
        return []
    if window.full_day:
        return [TimeRange(FULL_DAY_START, FULL_DAY_END)]
    return merge_ranges(window.ranges)


def merge_ranges(ranges: Iterable[TimeRange]) -> list[TimeRange]:
    spans = sorted(
        (parse_time_to_minutes(item.start_time), parse_time_to_minutes(item.end_time))
        for item in ranges
    )
    merged: list[list[int]] = []
    for start, end in spans:
        if end <= start:
            continue
        if merged and start <= merged[-1][1]:
            merged[-1][1] = max(merged[-1][1], end)
        else:
            merged.append([start, end])
    return [TimeRange(minutes_to_hhmm(start), minutes_to_hhmm(end)) for start, end in merged]


def shared_ranges(first: AvailabilityWindow | None, second: AvailabilityWindow | None) -> list[TimeRange]:
    overlaps: list[TimeRange] = []
    for left in window_ranges(first):
        for right in window_ranges(second):
            start = max(parse_time_to_minutes(left.start_time), parse_time_to_minutes(right.start_time))
            end = min(parse_time_to_minutes(left.end_time), parse_time_to_minutes(right.end_time))
            if start < end:
                overlaps.append(TimeRange(minutes_to_hhmm(start), minutes_to_hhmm(end)))
    return merge_ranges(overlaps)


def window_covers(window: AvailabilityWindow, start_time: str, end_time: str) -> bool:
    """Minute-level containment check used for times that are not on the slot grid."""
    if window.full_day:
        return True
    start = parse_time_to_minutes(start_time)
    end = parse_time_to_minutes(end_time)
    return any(
        parse_time_to_minutes(item.start_time) <= start and end <= parse_time_to_minutes(item.end_time)
        for item in merge_ranges(window.ranges)
    )


def _enum_value(value) -> str:
    return str(getattr(value, "value", value))


def build_person_availability(rows: Iterable) -> PersonAvailability:
    """Group availability rows into windows.

    Rows sharing a weekday (regular) or a date (exception) are unioned; any
    full-day row makes the whole window full-day. An exception row with no
    times and ``full_day`` unset marks the date explicitly unavailable.
    """
    regular_ranges: dict[str, list[TimeRange]] = {}
    regular_full: set[str] = set()
    exception_ranges: dict[date, list[TimeRange]] = {}
    exception_full: set[date] = set()

    for row in rows:
        kind = _enum_value(row.kind)
        if kind == "regular":
            if not row.day_of_week:
                continue
            key = row.day_of_week.strip().upper()
            regular_ranges.setdefault(key, [])
            if row.full_day:
                regular_full.add(key)
            elif row.start_time and row.end_time:
                regular_ranges[key].append(TimeRange(row.start_time, row.end_time))
        elif kind == "exception":
            if row.date is None:
                continue
            exception_ranges.setdefault(row.date, [])
            if row.full_day:
                exception_full.add(row.date)
            elif row.start_time and row.end_time:
                exception_ranges[row.date].append(TimeRange(row.start_time, row.end_time))

    regular = {
        key: AvailabilityWindow(
            full_day=key in regular_full,
            ranges=tuple(merge_ranges(ranges)),
            day_of_week=key,
        )
        for key, ranges in regular_ranges.items()
    }
    exceptions = {
        key: AvailabilityWindow(
            full_day=key in exception_full,
            ranges=tuple(merge_ranges(ranges)),
            date=key,
        )
        for key, ranges in exception_ranges.items()
    }
    return PersonAvailability(regular=regular, exceptions=exceptions)

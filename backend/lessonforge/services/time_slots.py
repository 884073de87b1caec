"""Fixed 15-minute slot grid covering the schedulable day (08:00-22:15).

Every availability overlay and coverage check is expressed in slot indices of
this grid. Ranges are half-open: ``[start_index, end_index)``.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass
from functools import lru_cache

DAY_START_MINUTES = 8 * 60
SLOT_MINUTES = 15
SLOT_COUNT = 57
NOT_FOUND = -1

TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


@dataclass(frozen=True)
class TimeSlot:
    index: int
    start: str
    end: str


def parse_time_to_minutes(value: str) -> int:
    if not TIME_PATTERN.match(value):
        raise ValueError("Time must be in HH:MM 24-hour format")
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)


def minutes_to_hhmm(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


@lru_cache(maxsize=1)
def generate_time_slots() -> tuple[TimeSlot, ...]:
    slots: list[TimeSlot] = []
    for index in range(SLOT_COUNT):
        start = DAY_START_MINUTES + index * SLOT_MINUTES
        slots.append(TimeSlot(index=index, start=minutes_to_hhmm(start), end=minutes_to_hhmm(start + SLOT_MINUTES)))
    return tuple(slots)


def grid_start() -> str:
    return generate_time_slots()[0].start


def grid_end() -> str:
    return generate_time_slots()[-1].end


def index_of_start(time: str, slots: Sequence[TimeSlot] | None = None) -> int:
    grid = slots if slots is not None else generate_time_slots()
    for slot in grid:
        if slot.start == time:
            return slot.index
    return NOT_FOUND


def index_of_end(time: str, slots: Sequence[TimeSlot] | None = None) -> int:
    """Exclusive end index for ``time``.

    A time equal to a slot start ends just before that slot; otherwise a time
    equal to a slot end (only the last one, in practice) ends after it.
    """
    grid = slots if slots is not None else generate_time_slots()
    for slot in grid:
        if slot.start == time:
            return slot.index
    for slot in grid:
        if slot.end == time:
            return slot.index + 1
    return NOT_FOUND


def covered_range(start_time: str, end_time: str, coverage: Sequence[bool] | None) -> bool:
    """True when every slot of ``[start_time, end_time)`` is set in ``coverage``.

    No coverage array means nobody is selected, which never signals a conflict.
    """
    if coverage is None:
        return True
    start_index = index_of_start(start_time)
    end_index = index_of_end(end_time)
    if start_index == NOT_FOUND or end_index == NOT_FOUND or end_index <= start_index:
        return False
    if end_index > len(coverage):
        return False
    return all(coverage[index] for index in range(start_index, end_index))

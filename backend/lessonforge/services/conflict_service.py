from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import TYPE_CHECKING

from lessonforge.services.availability import (
    AvailabilityMode,
    AvailabilityWindow,
    PersonAvailability,
    TimeRange,
    day_name,
    resolve_for_date,
    shared_ranges,
    window_covers,
    window_ranges,
)
from lessonforge.services.series import SeriesDefinition, VacationCalendar, candidate_dates, times_overlap

if TYPE_CHECKING:
    from lessonforge.services.normalization import BookedSession

logger = logging.getLogger(__name__)

ALWAYS_AVAILABLE = AvailabilityWindow(full_day=True)


class ConflictType(str, Enum):
    VACATION = "VACATION"
    TEACHER_UNAVAILABLE = "TEACHER_UNAVAILABLE"
    TEACHER_WRONG_TIME = "TEACHER_WRONG_TIME"
    STUDENT_UNAVAILABLE = "STUDENT_UNAVAILABLE"
    STUDENT_WRONG_TIME = "STUDENT_WRONG_TIME"
    BOOTH_CONFLICT = "BOOTH_CONFLICT"
    TEACHER_CONFLICT = "TEACHER_CONFLICT"
    STUDENT_CONFLICT = "STUDENT_CONFLICT"


SOFT_CONFLICT_TYPES = frozenset(
    {
        ConflictType.TEACHER_UNAVAILABLE,
        ConflictType.TEACHER_WRONG_TIME,
        ConflictType.STUDENT_UNAVAILABLE,
        ConflictType.STUDENT_WRONG_TIME,
    }
)
BOOKING_CONFLICT_TYPES = frozenset(
    {ConflictType.BOOTH_CONFLICT, ConflictType.TEACHER_CONFLICT, ConflictType.STUDENT_CONFLICT}
)


class DetectionState(str, Enum):
    NO_CONFLICT = "NO_CONFLICT"
    FLAGGED = "FLAGGED"


@dataclass(frozen=True)
class Participant:
    id: str
    name: str
    role: str


@dataclass(frozen=True)
class Conflict:
    date: date
    day_of_week: str
    type: ConflictType
    details: str
    participant: Participant | None = None
    teacher_slots: tuple[TimeRange, ...] = ()
    student_slots: tuple[TimeRange, ...] = ()
    available_slots: tuple[TimeRange, ...] = ()

    @property
    def is_soft(self) -> bool:
        return self.type in SOFT_CONFLICT_TYPES


@dataclass(frozen=True)
class DateDetection:
    date: date
    conflicts: tuple[Conflict, ...] = ()

    @property
    def state(self) -> DetectionState:
        return DetectionState.FLAGGED if self.conflicts else DetectionState.NO_CONFLICT


@dataclass
class ConflictDetector:
    """Classifies every occurrence of a series as clean or flagged.

    ``teacher_availability`` / ``student_availability`` are ``None`` when the
    participant is not selected, in which case no availability conflict is
    raised for that side. ``bookings`` are existing sessions; cancelled ones
    are ignored.
    """

    definition: SeriesDefinition
    teacher: Participant | None = None
    student: Participant | None = None
    teacher_availability: PersonAvailability | None = None
    student_availability: PersonAvailability | None = None
    vacations: VacationCalendar = field(default_factory=VacationCalendar)
    bookings: Sequence[BookedSession] = ()
    default_horizon_months: int = 1

    def __post_init__(self) -> None:
        self._bookings_by_date: dict[date, list[BookedSession]] = {}
        for booking in self.bookings:
            if booking.is_cancelled:
                continue
            self._bookings_by_date.setdefault(booking.date, []).append(booking)

    def detect(self, dates: Iterable[date] | None = None) -> list[DateDetection]:
        targets = sorted(set(dates)) if dates is not None else candidate_dates(
            self.definition, self.default_horizon_months
        )
        results = [DateDetection(date=target, conflicts=tuple(self.detect_date(target))) for target in targets]
        flagged = sum(1 for item in results if item.state == DetectionState.FLAGGED)
        logger.debug("Detected %d flagged dates out of %d", flagged, len(results))
        return results

    def conflicts(self, dates: Iterable[date] | None = None) -> list[Conflict]:
        return [conflict for detection in self.detect(dates) for conflict in detection.conflicts]

    def detect_date(
        self,
        target: date,
        start_time: str | None = None,
        end_time: str | None = None,
        *,
        include_availability: bool | None = None,
        include_vacations: bool = True,
    ) -> list[Conflict]:
        start = start_time or self.definition.start_time
        end = end_time or self.definition.end_time
        check_availability = self.definition.check_availability if include_availability is None else include_availability

        found: list[Conflict] = []
        if include_vacations:
            vacation = self.vacations.find(target)
            if vacation is not None:
                found.append(
                    Conflict(
                        date=target,
                        day_of_week=day_name(target),
                        type=ConflictType.VACATION,
                        details=f"{target.isoformat()} falls within the vacation '{vacation.name}'",
                    )
                )

        if check_availability:
            found.extend(self._availability_conflicts(target, start, end))
        found.extend(self._booking_conflicts(target, start, end))
        if found:
            logger.debug("%s: %s", target.isoformat(), ", ".join(item.type.value for item in found))
        return found

    def _resolved(self, availability: PersonAvailability | None, target: date) -> AvailabilityWindow | None:
        if availability is None or not availability.has_any_data:
            return ALWAYS_AVAILABLE
        return resolve_for_date(target, availability, AvailabilityMode.with_special)

    def _availability_conflicts(self, target: date, start: str, end: str) -> list[Conflict]:
        teacher_window = self._resolved(self.teacher_availability, target)
        student_window = self._resolved(self.student_availability, target)
        teacher_slots = tuple(window_ranges(teacher_window))
        student_slots = tuple(window_ranges(student_window))
        available = tuple(shared_ranges(teacher_window, student_window))

        found: list[Conflict] = []
        sides = (
            ("teacher", self.teacher, self.teacher_availability, teacher_window),
            ("student", self.student, self.student_availability, student_window),
        )
        for role, participant, availability, window in sides:
            if availability is None:
                continue
            outcome = _coverage_outcome(window, start, end)
            if outcome is None:
                continue
            conflict_type = ConflictType(f"{role.upper()}_{outcome}")
            label = participant.name if participant is not None else role.capitalize()
            if outcome == "UNAVAILABLE":
                details = f"{label} has no availability on {target.isoformat()}"
            else:
                details = f"{label} is not available between {start} and {end}"
            found.append(
                Conflict(
                    date=target,
                    day_of_week=day_name(target),
                    type=conflict_type,
                    details=details,
                    participant=participant,
                    teacher_slots=teacher_slots,
                    student_slots=student_slots,
                    available_slots=available,
                )
            )
        return found

    def _booking_conflicts(self, target: date, start: str, end: str) -> list[Conflict]:
        overlapping = [
            booking
            for booking in self._bookings_by_date.get(target, [])
            if times_overlap(start, end, booking.start_time, booking.end_time)
        ]
        if not overlapping:
            return []

        definition = self.definition
        checks = (
            (ConflictType.BOOTH_CONFLICT, "booth_id", definition.booth_id, None),
            (ConflictType.TEACHER_CONFLICT, "teacher_id", definition.teacher_id, self.teacher),
            (ConflictType.STUDENT_CONFLICT, "student_id", definition.student_id, self.student),
        )
        found: list[Conflict] = []
        for conflict_type, attribute, wanted, participant in checks:
            if not wanted:
                continue
            clash = next((booking for booking in overlapping if getattr(booking, attribute) == wanted), None)
            if clash is None:
                continue
            found.append(
                Conflict(
                    date=target,
                    day_of_week=day_name(target),
                    type=conflict_type,
                    details=_booking_details(conflict_type, clash),
                    participant=participant,
                )
            )
        return found


def _coverage_outcome(window: AvailabilityWindow | None, start: str, end: str) -> str | None:
    if window is None or window.is_unavailable:
        return "UNAVAILABLE"
    # Ranges that start or end between slots still count at minute precision.
    return None if window_covers(window, start, end) else "WRONG_TIME"


def _booking_details(conflict_type: ConflictType, clash: BookedSession) -> str:
    span = f"{clash.start_time}-{clash.end_time}"
    if conflict_type == ConflictType.BOOTH_CONFLICT:
        return f"Booth {clash.booth_name or clash.booth_id} is already booked {span}"
    if conflict_type == ConflictType.TEACHER_CONFLICT:
        return f"Teacher {clash.teacher_name or clash.teacher_id} already teaches {span}"
    return f"Student {clash.student_name or clash.student_id} already has a lesson {span}"


def group_by_date(conflicts: Iterable[Conflict]) -> dict[date, list[Conflict]]:
    grouped: dict[date, list[Conflict]] = {}
    for conflict in conflicts:
        grouped.setdefault(conflict.date, []).append(conflict)
    return dict(sorted(grouped.items()))


def has_booking_conflict(conflicts: Iterable[Conflict]) -> bool:
    return any(item.type in BOOKING_CONFLICT_TYPES for item in conflicts)

"""Canonical shapes for records crossing the scheduling boundary.

Session and conflict payloads arrive either as ORM rows, nested dicts
(``{"subject": {"name": ...}}``) or flat dicts using snake_case or camelCase
keys. Everything downstream works on the typed records produced here.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any

from lessonforge.core.exceptions import ScheduleValidationError
from lessonforge.services.availability import TimeRange, day_name
from lessonforge.services.conflict_service import Conflict, ConflictType, Participant
from lessonforge.services.time_slots import minutes_to_hhmm, parse_time_to_minutes


@dataclass(frozen=True)
class BookedSession:
    id: str | None
    date: date
    start_time: str
    end_time: str
    series_id: str | None = None
    teacher_id: str | None = None
    teacher_name: str | None = None
    student_id: str | None = None
    student_name: str | None = None
    subject_id: str | None = None
    subject_name: str | None = None
    booth_id: str | None = None
    booth_name: str | None = None
    is_cancelled: bool = False


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


def _read(source: Any, key: str, default: Any = None) -> Any:
    if isinstance(source, Mapping):
        if key in source:
            return source[key]
        return source.get(_camel(key), default)
    value = getattr(source, key, None)
    if value is None:
        value = getattr(source, _camel(key), default)
    return value


def _nested_or_flat(source: Any, entity: str, attribute: str) -> Any:
    nested = _read(source, entity)
    if nested is not None and not isinstance(nested, (str, int)):
        value = _read(nested, attribute)
        if value is not None:
            return value
    return _read(source, f"{entity}_{attribute}")


def parse_date(value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value[:10])
        except ValueError as exc:
            raise ScheduleValidationError("Invalid date value", details={"value": value}) from exc
    raise ScheduleValidationError("Missing or invalid date", details={"value": repr(value)})


def normalize_time(value: Any) -> str:
    if isinstance(value, datetime):
        return value.strftime("%H:%M")
    if not isinstance(value, str) or not value:
        raise ScheduleValidationError("Missing or invalid time", details={"value": repr(value)})
    # Accept "H:MM", "HH:MM:SS" and ISO timestamps by keeping the clock part.
    clock = value.split("T", 1)[1] if "T" in value else value
    hours, _, rest = clock.partition(":")
    try:
        return minutes_to_hhmm(parse_time_to_minutes(f"{hours.strip().zfill(2)}:{rest[:2]}"))
    except ValueError as exc:
        raise ScheduleValidationError("Invalid time value", details={"value": value}) from exc


def _optional_str(value: Any) -> str | None:
    if value is None or value == "":
        return None
    return str(value)


def normalize_booked_session(source: Any) -> BookedSession:
    """Produce one ``BookedSession`` from any supported session shape."""
    session_id = _read(source, "id")
    if session_id is None:
        session_id = _read(source, "class_id")
    return BookedSession(
        id=_optional_str(session_id),
        date=parse_date(_read(source, "date")),
        start_time=normalize_time(_read(source, "start_time")),
        end_time=normalize_time(_read(source, "end_time")),
        series_id=_optional_str(_read(source, "series_id")),
        teacher_id=_optional_str(_read(source, "teacher_id") or _nested_or_flat(source, "teacher", "id")),
        teacher_name=_optional_str(_nested_or_flat(source, "teacher", "name")),
        student_id=_optional_str(_read(source, "student_id") or _nested_or_flat(source, "student", "id")),
        student_name=_optional_str(_nested_or_flat(source, "student", "name")),
        subject_id=_optional_str(_read(source, "subject_id") or _nested_or_flat(source, "subject", "id")),
        subject_name=_optional_str(_nested_or_flat(source, "subject", "name")),
        booth_id=_optional_str(_read(source, "booth_id") or _nested_or_flat(source, "booth", "id")),
        booth_name=_optional_str(_nested_or_flat(source, "booth", "name")),
        is_cancelled=bool(_read(source, "is_cancelled", False)),
    )


def normalize_booked_sessions(sources) -> list[BookedSession]:
    sessions = [normalize_booked_session(item) for item in sources]
    return sorted(sessions, key=lambda item: (item.date, item.start_time, item.id or ""))


def _time_ranges(raw: Any) -> tuple[TimeRange, ...]:
    ranges: list[TimeRange] = []
    for item in raw or []:
        start = _read(item, "start_time")
        end = _read(item, "end_time")
        if start and end:
            ranges.append(TimeRange(normalize_time(start), normalize_time(end)))
    return tuple(ranges)


def normalize_conflict(source: Any) -> Conflict:
    """Produce one ``Conflict`` from a server payload in either key style."""
    target = parse_date(_read(source, "date"))
    raw_type = _read(source, "type")
    try:
        conflict_type = ConflictType(str(getattr(raw_type, "value", raw_type)))
    except ValueError as exc:
        raise ScheduleValidationError("Unknown conflict type", details={"type": repr(raw_type)}) from exc

    participant = None
    raw_participant = _read(source, "participant")
    if raw_participant:
        participant = Participant(
            id=str(_read(raw_participant, "id")),
            name=str(_read(raw_participant, "name") or ""),
            role=str(getattr(_read(raw_participant, "role"), "value", _read(raw_participant, "role"))),
        )

    available = _read(source, "available_slots")
    if available is None:
        available = _read(source, "shared_available_slots")
    return Conflict(
        date=target,
        day_of_week=str(_read(source, "day_of_week") or day_name(target)),
        type=conflict_type,
        details=str(_read(source, "details") or ""),
        participant=participant,
        teacher_slots=_time_ranges(_read(source, "teacher_slots")),
        student_slots=_time_ranges(_read(source, "student_slots")),
        available_slots=_time_ranges(available),
    )


def normalize_conflicts(sources) -> list[Conflict]:
    conflicts = [normalize_conflict(item) for item in sources or []]
    return sorted(conflicts, key=lambda item: item.date)

from datetime import date
from types import SimpleNamespace

import pytest

from lessonforge.core.exceptions import ScheduleValidationError
from lessonforge.services.availability import TimeRange
from lessonforge.services.conflict_service import ConflictType
from lessonforge.services.normalization import (
    normalize_booked_session,
    normalize_booked_sessions,
    normalize_conflict,
)


def test_nested_and_flat_sessions_normalize_alike():
    nested = normalize_booked_session(
        {
            "classId": "c1",
            "date": "2024-01-01T00:00:00.000Z",
            "startTime": "1970-01-01T10:00:00.000Z",
            "endTime": "11:00:00",
            "subject": {"id": "math", "name": "Math"},
            "booth": {"id": "b1", "name": "Booth A"},
        }
    )
    flat = normalize_booked_session(
        {
            "id": "c1",
            "date": "2024-01-01",
            "start_time": "10:00",
            "end_time": "11:00",
            "subject_id": "math",
            "subjectName": "Math",
            "booth_id": "b1",
            "booth_name": "Booth A",
        }
    )
    assert nested == flat
    assert flat.date == date(2024, 1, 1)
    assert flat.subject_name == "Math"


def test_orm_like_rows_are_accepted():
    row = SimpleNamespace(
        id="s1",
        date=date(2024, 1, 2),
        start_time="09:00",
        end_time="10:00",
        series_id=None,
        teacher_id="t1",
        student_id="st1",
        subject_id="math",
        booth_id="b1",
        is_cancelled=True,
    )
    session = normalize_booked_session(row)
    assert session.is_cancelled
    assert session.teacher_id == "t1"


def test_sessions_are_sorted():
    sessions = normalize_booked_sessions(
        [
            {"id": "b", "date": "2024-01-02", "start_time": "09:00", "end_time": "10:00"},
            {"id": "a", "date": "2024-01-01", "start_time": "11:00", "end_time": "12:00"},
        ]
    )
    assert [item.id for item in sessions] == ["a", "b"]


def test_missing_date_is_rejected():
    with pytest.raises(ScheduleValidationError):
        normalize_booked_session({"start_time": "09:00", "end_time": "10:00"})


def test_conflict_payload_in_camel_case():
    conflict = normalize_conflict(
        {
            "date": "2024-01-01",
            "dayOfWeek": "MONDAY",
            "type": "TEACHER_WRONG_TIME",
            "details": "not available",
            "participant": {"id": "t1", "name": "Aiko", "role": "teacher"},
            "teacherSlots": [{"startTime": "09:00", "endTime": "12:00"}],
            "sharedAvailableSlots": [{"startTime": "09:00", "endTime": "10:00"}],
        }
    )
    assert conflict.type == ConflictType.TEACHER_WRONG_TIME
    assert conflict.participant.role == "teacher"
    assert conflict.teacher_slots == (TimeRange("09:00", "12:00"),)
    assert conflict.available_slots == (TimeRange("09:00", "10:00"),)


def test_unknown_conflict_type_is_rejected():
    with pytest.raises(ScheduleValidationError):
        normalize_conflict({"date": "2024-01-01", "type": "SOMETHING_ELSE"})


def test_single_digit_hours_are_padded():
    session = normalize_booked_session(
        {"id": "a", "date": "2024-01-01", "start_time": "9:00", "end_time": "10:30:00"}
    )
    assert (session.start_time, session.end_time) == ("09:00", "10:30")


def test_malformed_time_is_rejected():
    with pytest.raises(ScheduleValidationError):
        normalize_booked_session({"id": "a", "date": "2024-01-01", "start_time": "9h", "end_time": "10:00"})
    with pytest.raises(ScheduleValidationError):
        normalize_booked_session({"id": "a", "date": "2024-01-01", "start_time": "25:00", "end_time": "26:00"})

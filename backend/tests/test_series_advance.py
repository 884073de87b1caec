from datetime import date, timedelta

import pytest
from sqlalchemy import create_engine, select
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from lessonforge.core.config import Settings, get_settings
from lessonforge.core.exceptions import ResourceNotFoundError
from lessonforge.db.base import Base
from lessonforge.models.booth import Booth
from lessonforge.models.class_series import ClassSeries, SeriesStatus
from lessonforge.models.class_session import ClassSession, SessionStatus
from lessonforge.models.person import Student, Teacher
from lessonforge.models.subject import Subject
from lessonforge.services.series import add_months
from lessonforge.services.series_generation import advance_series, compute_advance_window

NEW_YEAR = date(2030, 1, 1)
MONDAY = date(2030, 1, 7)
NEXT_MONDAY = date(2030, 1, 14)
THIRD_MONDAY = date(2030, 1, 21)


@pytest.fixture()
def db():
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def settings():
    return Settings(database_url="sqlite://")


@pytest.fixture()
def people(db):
    records = {
        "teacher": Teacher(name="Aiko Tanaka", email="aiko@example.com"),
        "student": Student(name="Ren Sato"),
        "subject": Subject(name="Math"),
        "booth": Booth(name="Booth A"),
    }
    db.add_all(records.values())
    db.commit()
    return records


def make_series(db, people, **overrides):
    values = {
        "teacher_id": people["teacher"].id,
        "student_id": people["student"].id,
        "subject_id": people["subject"].id,
        "booth_id": people["booth"].id,
        "start_time": "10:00",
        "end_time": "11:00",
        "start_date": MONDAY,
        "end_date": None,
        "days_of_week": [1],
        "status": SeriesStatus.active,
    }
    values.update(overrides)
    series = ClassSeries(**values)
    db.add(series)
    db.commit()
    return series


def sessions_of(db, series):
    return list(
        db.execute(select(ClassSession).where(ClassSession.series_id == series.id).order_by(ClassSession.date)).scalars()
    )


def test_window_starts_at_series_start_when_never_generated():
    assert compute_advance_window(NEW_YEAR, None, MONDAY, None, 30) == (MONDAY, date(2030, 1, 31))


def test_window_resumes_after_last_generated_date():
    assert compute_advance_window(NEW_YEAR, NEXT_MONDAY, MONDAY, None, 30) == (date(2030, 1, 15), date(2030, 1, 31))


def test_window_never_reaches_into_the_past():
    start, _ = compute_advance_window(date(2030, 2, 1), MONDAY, MONDAY, None, 10)
    assert start == date(2030, 2, 1)


def test_window_is_capped_at_series_end():
    assert compute_advance_window(NEW_YEAR, None, MONDAY, NEXT_MONDAY, 30) == (MONDAY, NEXT_MONDAY)


def test_advance_creates_confirmed_sessions_through_the_window(db, people, settings):
    series = make_series(db, people)

    run = advance_series(db, settings, 30, today=NEW_YEAR)

    assert run.processed == 1
    assert run.totals() == {"created_confirmed": 4, "created_conflicted": 0, "skipped": 0}
    assert [item.date for item in sessions_of(db, series)] == [MONDAY, NEXT_MONDAY, THIRD_MONDAY, date(2030, 1, 28)]
    db.refresh(series)
    assert series.last_generated_through == date(2030, 1, 31)
    assert series.status == SeriesStatus.active


def test_conflicted_dates_become_cancelled_placeholders(db, people, settings):
    series = make_series(db, people, end_date=THIRD_MONDAY)
    other_teacher = Teacher(name="Bea Kim", email="bea@example.com")
    other_student = Student(name="Kai Ito")
    db.add_all([other_teacher, other_student])
    db.flush()
    db.add(
        ClassSession(
            teacher_id=other_teacher.id,
            student_id=other_student.id,
            subject_id=people["subject"].id,
            booth_id=people["booth"].id,
            date=NEXT_MONDAY,
            start_time="10:30",
            end_time="11:30",
            status=SessionStatus.confirmed,
        )
    )
    db.commit()

    run = advance_series(db, settings, 30, today=NEW_YEAR)

    result = run.results[0]
    assert (result.attempted, result.created_confirmed, result.created_conflicted) == (3, 2, 1)
    placeholder = [item for item in sessions_of(db, series) if item.date == NEXT_MONDAY][0]
    assert placeholder.is_cancelled is True
    assert placeholder.status == SessionStatus.conflicted
    assert "BOOTH_CONFLICT" in placeholder.conflict_reasons
    db.refresh(series)
    assert series.status == SeriesStatus.ended


def test_dates_already_generated_are_skipped(db, people, settings):
    series = make_series(db, people)
    db.add(
        ClassSession(
            series_id=series.id,
            teacher_id=series.teacher_id,
            student_id=series.student_id,
            subject_id=series.subject_id,
            booth_id=series.booth_id,
            date=THIRD_MONDAY,
            start_time="10:00",
            end_time="11:00",
            status=SessionStatus.confirmed,
        )
    )
    db.commit()

    run = advance_series(db, settings, 30, today=NEW_YEAR)

    assert run.totals() == {"created_confirmed": 3, "created_conflicted": 0, "skipped": 1}
    assert [item.date for item in sessions_of(db, series)].count(THIRD_MONDAY) == 1


def test_series_past_its_end_is_marked_ended(db, people, settings):
    series = make_series(db, people, end_date=NEXT_MONDAY, last_generated_through=NEXT_MONDAY)

    run = advance_series(db, settings, 30, today=date(2030, 2, 1))

    assert run.results[0].attempted == 0
    db.refresh(series)
    assert series.status == SeriesStatus.ended


def test_series_already_generated_far_enough_is_up_to_date(db, people, settings):
    make_series(db, people, last_generated_through=date(2030, 3, 1))

    run = advance_series(db, settings, 30, today=NEW_YEAR)

    assert (run.processed, run.up_to_date, run.results) == (1, 1, [])


def test_paused_series_are_left_alone(db, people, settings):
    make_series(db, people, status=SeriesStatus.paused)

    run = advance_series(db, settings, 30, today=NEW_YEAR)

    assert run.processed == 0


def test_limit_takes_the_series_furthest_behind_first(db, people, settings):
    make_series(db, people, last_generated_through=NEXT_MONDAY)
    behind = make_series(db, people, start_time="13:00", end_time="14:00")

    run = advance_series(db, settings, 30, limit=1, today=NEW_YEAR)

    assert run.processed == 1
    assert run.results[0].series_id == behind.id


def test_series_filter_rejects_unknown_id(db, settings):
    with pytest.raises(ResourceNotFoundError):
        advance_series(db, settings, 30, series_id="missing", today=NEW_YEAR)


def test_one_failing_series_does_not_stop_the_run(db, people, settings):
    broken = make_series(db, people, teacher_id="gone")
    healthy = make_series(db, people, start_time="13:00", end_time="14:00")

    run = advance_series(db, settings, 30, today=NEW_YEAR)

    assert list(run.failed) == [broken.id]
    assert [item.series_id for item in run.results] == [healthy.id]
    assert len(sessions_of(db, healthy)) == 4
    assert sessions_of(db, broken) == []


def test_advance_endpoint_rolls_series_forward(client, seeded):
    today = date.today()
    created = client.post(
        "/api/class-series",
        json={
            "definition": {
                "teacher_id": seeded["teacher"]["id"],
                "student_id": seeded["student"]["id"],
                "subject_id": seeded["subject"]["id"],
                "booth_id": seeded["booth"]["id"],
                "start_time": "10:00",
                "end_time": "11:00",
                "start_date": today.isoformat(),
                "days_of_week": [0, 1, 2, 3, 4, 5, 6],
            },
            "session_actions": [],
        },
    ).json()
    assert created["success"] is True
    generated_through = add_months(today, get_settings().series_default_horizon_months)

    response = client.post("/api/class-series/advance", params={"lead_days": 60})

    assert response.status_code == 200
    body = response.json()
    assert body["processed"] == 1
    assert body["created_confirmed"] == (today + timedelta(days=60) - generated_through).days
    assert body["results"][0]["series_id"] == created["series_id"]

    again = client.post("/api/class-series/advance", params={"lead_days": 60}).json()
    assert again["up_to_date"] == 1
    assert again["created_confirmed"] == 0


def test_advance_endpoint_validates_lead_days(client):
    assert client.post("/api/class-series/advance", params={"lead_days": 0}).status_code == 422
    assert client.post("/api/class-series/advance", params={"series_id": "missing"}).status_code == 404

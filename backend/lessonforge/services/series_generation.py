"""Server side of the preview and create/extend contracts.

Preview runs the conflict detector over a series' candidate dates and reports
what it found. Create and extend apply the operator's session actions to the
same detection and either write every resulting session or, when some date
is still unresolved, write nothing and report the
re-validated conflicts of every flagged date along with the dates that still
lack a usable action.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import date, timedelta

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from lessonforge.core.config import Settings
from lessonforge.core.exceptions import AppError, ResourceNotFoundError, ScheduleValidationError
from lessonforge.models.availability import UserAvailability
from lessonforge.models.booth import Booth
from lessonforge.models.class_series import ClassSeries, SeriesStatus
from lessonforge.models.class_session import ClassSession, SessionStatus
from lessonforge.models.person import PersonRole, Student, Teacher
from lessonforge.models.subject import Subject
from lessonforge.models.vacation import Vacation
from lessonforge.services.availability import build_person_availability
from lessonforge.services.conflict_resolution import ResolutionAction, SessionAction
from lessonforge.services.conflict_service import (
    Conflict,
    ConflictDetector,
    DateDetection,
    DetectionState,
    Participant,
    has_booking_conflict,
)
from lessonforge.services.normalization import normalize_booked_sessions
from lessonforge.services.series import (
    SeriesDefinition,
    VacationCalendar,
    add_months,
    candidate_dates,
    effective_end_date,
    normalize_days_of_week,
    validate_time_window,
)
from lessonforge.services.time_slots import NOT_FOUND, index_of_end, index_of_start

logger = logging.getLogger(__name__)


@dataclass
class SeriesPreview:
    definition: SeriesDefinition
    detections: list[DateDetection]

    @property
    def dates(self) -> list[date]:
        return [item.date for item in self.detections]

    @property
    def conflicts(self) -> list[Conflict]:
        return [conflict for item in self.detections for conflict in item.conflicts]

    @property
    def flagged_dates(self) -> list[date]:
        return [item.date for item in self.detections if item.state == DetectionState.FLAGGED]

    @property
    def requires_confirmation(self) -> bool:
        return bool(self.flagged_dates)

    def summary(self) -> dict[str, int]:
        flagged = len(self.flagged_dates)
        return {
            "total_sessions": len(self.detections),
            "sessions_with_conflicts": flagged,
            "valid_sessions": len(self.detections) - flagged,
        }


@dataclass
class PlannedSession:
    date: date
    start_time: str
    end_time: str
    conflicts: list[Conflict] = field(default_factory=list)

    @property
    def status(self) -> SessionStatus:
        return SessionStatus.conflicted if self.conflicts else SessionStatus.confirmed


@dataclass
class SeriesMutationResult:
    success: bool
    series_id: str | None = None
    created_ids: list[str] = field(default_factory=list)
    skipped: list[date] = field(default_factory=list)
    conflicts: list[Conflict] | None = None
    unresolved_dates: list[date] = field(default_factory=list)
    message: str | None = None


def validate_definition(definition: SeriesDefinition) -> None:
    validate_time_window(definition.start_time, definition.end_time)
    if index_of_start(definition.start_time) == NOT_FOUND or index_of_end(definition.end_time) == NOT_FOUND:
        raise ScheduleValidationError(
            "Lesson times must fall on the 15-minute grid between 08:00 and 22:15",
            details={"start_time": definition.start_time, "end_time": definition.end_time},
        )
    if definition.end_date is not None and definition.end_date < definition.start_date:
        raise ScheduleValidationError(
            "Series end date must not be before its start date",
            details={"start_date": definition.start_date.isoformat(), "end_date": definition.end_date.isoformat()},
        )


def definition_from_series(series: ClassSeries, start_date: date, end_date: date) -> SeriesDefinition:
    return SeriesDefinition(
        teacher_id=series.teacher_id,
        student_id=series.student_id,
        subject_id=series.subject_id,
        booth_id=series.booth_id,
        start_time=series.start_time,
        end_time=series.end_time,
        start_date=start_date,
        end_date=end_date,
        days_of_week=tuple(series.days_of_week or ()),
        check_availability=series.check_availability,
    )


def extension_range(series: ClassSeries, months: int) -> tuple[date, date]:
    anchor = series.last_generated_through or (series.start_date - timedelta(days=1))
    start = anchor + timedelta(days=1)
    end = add_months(anchor, months)
    if series.end_date is not None and end > series.end_date:
        end = series.end_date
    if start > end:
        raise ScheduleValidationError(
            "Series has no dates left to generate",
            details={"series_id": series.id, "last_generated_through": anchor.isoformat()},
        )
    return start, end


def _participant(db: Session, model, role: PersonRole, person_id: str) -> Participant:
    person = db.get(model, person_id)
    if person is None:
        raise ResourceNotFoundError(role.value.capitalize(), person_id)
    return Participant(id=person.id, name=person.name, role=role.value)


def _availability(db: Session, role: PersonRole, person_id: str):
    rows = db.execute(
        select(UserAvailability).where(
            UserAvailability.owner_role == role,
            UserAvailability.owner_id == person_id,
        )
    ).scalars()
    return build_person_availability(rows)


def build_detector(db: Session, definition: SeriesDefinition, settings: Settings) -> ConflictDetector:
    teacher = _participant(db, Teacher, PersonRole.teacher, definition.teacher_id)
    student = _participant(db, Student, PersonRole.student, definition.student_id)
    if db.get(Subject, definition.subject_id) is None:
        raise ResourceNotFoundError("Subject", definition.subject_id)
    if db.get(Booth, definition.booth_id) is None:
        raise ResourceNotFoundError("Booth", definition.booth_id)

    dates = candidate_dates(definition, settings.series_default_horizon_months)
    bookings = []
    if dates:
        rows = db.execute(
            select(ClassSession).where(
                ClassSession.date >= dates[0],
                ClassSession.date <= dates[-1],
                ClassSession.is_cancelled.is_(False),
                or_(
                    ClassSession.booth_id == definition.booth_id,
                    ClassSession.teacher_id == definition.teacher_id,
                    ClassSession.student_id == definition.student_id,
                ),
            )
        ).scalars()
        bookings = normalize_booked_sessions(rows)

    vacations = VacationCalendar.from_rows(db.execute(select(Vacation)).scalars())
    return ConflictDetector(
        definition=definition,
        teacher=teacher,
        student=student,
        teacher_availability=_availability(db, PersonRole.teacher, definition.teacher_id),
        student_availability=_availability(db, PersonRole.student, definition.student_id),
        vacations=vacations,
        bookings=bookings,
        default_horizon_months=settings.series_default_horizon_months,
    )


def preview(db: Session, definition: SeriesDefinition, settings: Settings) -> SeriesPreview:
    validate_definition(definition)
    detector = build_detector(db, definition, settings)
    return SeriesPreview(definition=definition, detections=detector.detect())


def _check_months(months: int, limit: int) -> None:
    if months < 1 or months > limit:
        raise ScheduleValidationError(
            f"months must be between 1 and {limit}",
            details={"months": months, "max_months": limit},
        )


def get_series(db: Session, series_id: str) -> ClassSeries:
    series = db.get(ClassSeries, series_id)
    if series is None:
        raise ResourceNotFoundError("Class series", series_id)
    return series


def preview_extension(db: Session, series_id: str, months: int, settings: Settings) -> SeriesPreview:
    _check_months(months, settings.series_preview_max_months)
    series = get_series(db, series_id)
    start, end = extension_range(series, months)
    return preview(db, definition_from_series(series, start, end), settings)


@dataclass
class SessionPlan:
    """Outcome of applying operator actions to one detection run.

    ``conflicts`` is the full re-validated set for every flagged date, acted
    on or not. Nothing may be written while ``unresolved_dates`` is non-empty.
    """

    planned: list[PlannedSession] = field(default_factory=list)
    skipped: list[date] = field(default_factory=list)
    conflicts: list[Conflict] = field(default_factory=list)
    unresolved_dates: list[date] = field(default_factory=list)


def plan_sessions(
    detector: ConflictDetector,
    detections: Sequence[DateDetection],
    actions: Sequence[SessionAction],
) -> SessionPlan:
    by_date = {item.date: item for item in detections}
    action_by_date: dict[date, SessionAction] = {}
    for action in actions:
        if action.date not in by_date:
            raise ScheduleValidationError(
                "Session action targets a date outside the series",
                details={"date": action.date.isoformat()},
            )
        if action.date in action_by_date:
            raise ScheduleValidationError(
                "Only one session action is allowed per date",
                details={"date": action.date.isoformat()},
            )
        action_by_date[action.date] = action

    definition = detector.definition
    plan = SessionPlan()

    for detection in detections:
        plan.conflicts.extend(detection.conflicts)
        action = action_by_date.get(detection.date)
        if action is None:
            if detection.state == DetectionState.FLAGGED:
                plan.unresolved_dates.append(detection.date)
            else:
                plan.planned.append(PlannedSession(detection.date, definition.start_time, definition.end_time))
            continue

        if action.action == ResolutionAction.SKIP:
            plan.skipped.append(detection.date)
        elif action.action == ResolutionAction.FORCE_CREATE:
            plan.planned.append(
                PlannedSession(
                    detection.date,
                    definition.start_time,
                    definition.end_time,
                    conflicts=list(detection.conflicts),
                )
            )
        else:
            start = action.alternative_start_time
            end = action.alternative_end_time
            if start is None or end is None:
                raise ScheduleValidationError(
                    "USE_ALTERNATIVE requires an alternative start and end time",
                    details={"date": detection.date.isoformat()},
                )
            validate_time_window(start, end)
            rechecked = detector.detect_date(detection.date, start, end)
            if has_booking_conflict(rechecked):
                # Unflagged dates have no detection conflicts of their own.
                if not detection.conflicts:
                    plan.conflicts.extend(rechecked)
                plan.unresolved_dates.append(detection.date)
                continue
            plan.planned.append(PlannedSession(detection.date, start, end, conflicts=rechecked))

    return plan

def _write_sessions(
    db: Session,
    definition: SeriesDefinition,
    series_id: str | None,
    planned: Sequence[PlannedSession],
    *,
    park_conflicted: bool = False,
) -> list[str]:
    sessions: list[ClassSession] = []
    for item in planned:
        session = ClassSession(
            series_id=series_id,
            teacher_id=definition.teacher_id,
            student_id=definition.student_id,
            subject_id=definition.subject_id,
            booth_id=definition.booth_id,
            date=item.date,
            start_time=item.start_time,
            end_time=item.end_time,
            status=item.status,
            conflict_reasons=[conflict.type.value for conflict in item.conflicts],
            is_cancelled=park_conflicted and bool(item.conflicts),
        )
        db.add(session)
        sessions.append(session)
    db.flush()
    return [session.id for session in sessions]


def _rejected(plan: SessionPlan, series_id: str | None) -> SeriesMutationResult:
    logger.warning(
        "Rejected series submission: %d of %d conflicted dates unresolved",
        len(plan.unresolved_dates),
        len({conflict.date for conflict in plan.conflicts}),
    )
    return SeriesMutationResult(
        success=False,
        series_id=series_id,
        conflicts=sorted(plan.conflicts, key=lambda item: item.date),
        unresolved_dates=list(plan.unresolved_dates),
        message=f"{len(plan.unresolved_dates)} date(s) still have unresolved conflicts",
    )

def create_series(
    db: Session,
    definition: SeriesDefinition,
    actions: Sequence[SessionAction],
    settings: Settings,
    *,
    notes: str | None = None,
) -> SeriesMutationResult:
    validate_definition(definition)
    detector = build_detector(db, definition, settings)
    preview_result = SeriesPreview(definition=definition, detections=detector.detect())
    plan = plan_sessions(detector, preview_result.detections, actions)
    if plan.unresolved_dates:
        return _rejected(plan, None)

    series = ClassSeries(
        teacher_id=definition.teacher_id,
        student_id=definition.student_id,
        subject_id=definition.subject_id,
        booth_id=definition.booth_id,
        start_time=definition.start_time,
        end_time=definition.end_time,
        start_date=definition.start_date,
        end_date=definition.end_date,
        days_of_week=normalize_days_of_week(definition.days_of_week, definition.start_date),
        check_availability=definition.check_availability,
        status=SeriesStatus.active,
        last_generated_through=effective_end_date(definition, settings.series_default_horizon_months),
        notes=notes,
    )
    db.add(series)
    db.flush()
    created_ids = _write_sessions(db, definition, series.id, plan.planned)
    db.commit()
    logger.info(
        "Created series %s with %d sessions (%d skipped)",
        series.id,
        len(created_ids),
        len(plan.skipped),
    )
    return SeriesMutationResult(success=True, series_id=series.id, created_ids=created_ids, skipped=plan.skipped)


def extend_series(
    db: Session,
    series_id: str,
    months: int,
    actions: Sequence[SessionAction],
    settings: Settings,
) -> SeriesMutationResult:
    _check_months(months, settings.series_extend_max_months)
    series = get_series(db, series_id)
    if series.status != SeriesStatus.active:
        raise ScheduleValidationError(
            "Only active series can be extended",
            details={"series_id": series.id, "status": series.status.value},
        )
    start, end = extension_range(series, months)
    definition = definition_from_series(series, start, end)
    validate_definition(definition)
    detector = build_detector(db, definition, settings)
    preview_result = SeriesPreview(definition=definition, detections=detector.detect())
    plan = plan_sessions(detector, preview_result.detections, actions)
    if plan.unresolved_dates:
        return _rejected(plan, series.id)

    created_ids = _write_sessions(db, definition, series.id, plan.planned)
    series.last_generated_through = end
    db.commit()
    logger.info(
        "Extended series %s through %s with %d sessions (%d skipped)",
        series.id,
        end.isoformat(),
        len(created_ids),
        len(plan.skipped),
    )
    return SeriesMutationResult(success=True, series_id=series.id, created_ids=created_ids, skipped=plan.skipped)


def book_single_session(
    db: Session,
    definition: SeriesDefinition,
    settings: Settings,
    *,
    force_create: bool = False,
    notes: str | None = None,
) -> tuple[ClassSession | None, list[Conflict]]:
    """Book one occurrence outside any series; conflicts block it unless forced."""
    validate_time_window(definition.start_time, definition.end_time)
    detector = build_detector(db, definition, settings)
    conflicts = detector.detect_date(definition.start_date)
    if conflicts and not force_create:
        logger.info("Refused session on %s: %d conflicts", definition.start_date.isoformat(), len(conflicts))
        return None, conflicts

    session = ClassSession(
        teacher_id=definition.teacher_id,
        student_id=definition.student_id,
        subject_id=definition.subject_id,
        booth_id=definition.booth_id,
        date=definition.start_date,
        start_time=definition.start_time,
        end_time=definition.end_time,
        status=SessionStatus.conflicted if conflicts else SessionStatus.confirmed,
        conflict_reasons=[conflict.type.value for conflict in conflicts],
        is_cancelled=False,
        notes=notes,
    )
    db.add(session)
    db.commit()
    db.refresh(session)
    return session, conflicts


@dataclass
class AdvanceResult:
    series_id: str
    from_date: date
    to_date: date
    attempted: int = 0
    created_confirmed: int = 0
    created_conflicted: int = 0
    skipped: int = 0


@dataclass
class AdvanceRun:
    processed: int = 0
    up_to_date: int = 0
    results: list[AdvanceResult] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)

    def totals(self) -> dict[str, int]:
        return {
            "created_confirmed": sum(item.created_confirmed for item in self.results),
            "created_conflicted": sum(item.created_conflicted for item in self.results),
            "skipped": sum(item.skipped for item in self.results),
        }


def compute_advance_window(
    today: date,
    last_generated_through: date | None,
    start_date: date,
    end_date: date | None,
    lead_days: int,
) -> tuple[date, date]:
    """Inclusive range the next advance run generates for one series.

    Generation resumes the day after ``last_generated_through``, never before
    the series start or today, and reaches ``lead_days`` past today, capped at
    the series end date. The range is empty when the start is after the end.
    """
    start_bound = max(start_date, today)
    start = last_generated_through + timedelta(days=1) if last_generated_through else start_bound
    start = max(start, start_bound)
    end = today + timedelta(days=max(1, lead_days))
    if end_date is not None and end > end_date:
        end = end_date
    return start, end


def _generated_dates(db: Session, series_id: str, start: date, end: date) -> set[date]:
    rows = db.execute(
        select(ClassSession.date).where(
            ClassSession.series_id == series_id,
            ClassSession.date >= start,
            ClassSession.date <= end,
        )
    ).scalars()
    return set(rows)


def advance_one(db: Session, series: ClassSeries, settings: Settings, lead_days: int, today: date) -> AdvanceResult:
    """Generate one series' sessions through its advance window.

    Operators are not involved: flagged dates are written as cancelled
    ``conflicted`` placeholders and dates that already have a session of
    this series are skipped. The caller commits.
    """
    start, end = compute_advance_window(today, series.last_generated_through, series.start_date, series.end_date, lead_days)
    result = AdvanceResult(series_id=series.id, from_date=start, to_date=end)
    if start > end:
        if series.end_date is not None and start > series.end_date:
            series.status = SeriesStatus.ended
        return result

    definition = definition_from_series(series, start, end)
    validate_definition(definition)
    detector = build_detector(db, definition, settings)
    detections = detector.detect()
    existing = _generated_dates(db, series.id, start, end)

    actions: list[SessionAction] = []
    for detection in detections:
        if detection.date in existing:
            actions.append(SessionAction(detection.date, ResolutionAction.SKIP))
        elif detection.state == DetectionState.FLAGGED:
            actions.append(SessionAction(detection.date, ResolutionAction.FORCE_CREATE))
    plan = plan_sessions(detector, detections, actions)
    _write_sessions(db, definition, series.id, plan.planned, park_conflicted=True)

    result.attempted = len(detections)
    result.created_conflicted = sum(1 for item in plan.planned if item.conflicts)
    result.created_confirmed = len(plan.planned) - result.created_conflicted
    result.skipped = len(plan.skipped)
    series.last_generated_through = end
    if series.end_date is not None and end >= series.end_date:
        series.status = SeriesStatus.ended
    return result


def advance_series(
    db: Session,
    settings: Settings,
    lead_days: int | None = None,
    series_id: str | None = None,
    limit: int | None = None,
    *,
    today: date | None = None,
) -> AdvanceRun:
    """Roll every active series (or one) forward to ``lead_days`` past today.

    Series that are furthest behind go first, so a ``limit`` still advances
    everything over successive runs. Each series commits on its own; one that
    fails is rolled back, recorded in ``failed`` and does not stop the run.
    """
    lead = lead_days if lead_days is not None else settings.series_advance_lead_days
    current = today or date.today()

    query = (
        select(ClassSeries)
        .where(ClassSeries.status == SeriesStatus.active)
        .order_by(ClassSeries.last_generated_through.nulls_first(), ClassSeries.id)
    )
    if series_id is not None:
        get_series(db, series_id)
        query = query.where(ClassSeries.id == series_id)
    if limit is not None:
        query = query.limit(limit)

    run = AdvanceRun()
    for series in db.execute(query).scalars().all():
        run.processed += 1
        start, end = compute_advance_window(current, series.last_generated_through, series.start_date, series.end_date, lead)
        if start > end and (series.end_date is None or start <= series.end_date):
            run.up_to_date += 1
            continue
        try:
            run.results.append(advance_one(db, series, settings, lead, current))
            db.commit()
        except AppError as exc:
            db.rollback()
            logger.warning("Advance of series %s failed: %s", series.id, exc.message)
            run.failed[series.id] = exc.message

    totals = run.totals()
    logger.info(
        "Advanced %d series (%d up to date, %d failed): %d confirmed, %d conflicted, %d skipped",
        run.processed,
        run.up_to_date,
        len(run.failed),
        totals["created_confirmed"],
        totals["created_conflicted"],
        totals["skipped"],
    )
    return run

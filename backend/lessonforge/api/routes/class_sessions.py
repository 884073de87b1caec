from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select, update
from sqlalchemy.orm import Session

from lessonforge.api.deps import get_app_settings, get_db
from lessonforge.core.config import Settings
from lessonforge.models.class_session import ClassSession
from lessonforge.schemas.class_series import ConflictOut
from lessonforge.schemas.class_session import (
    ClassSessionCancelRequest,
    ClassSessionCreate,
    ClassSessionCreateResponse,
    ClassSessionOut,
)
from lessonforge.services.availability import day_index
from lessonforge.services.series import SeriesDefinition
from lessonforge.services.series_generation import book_single_session

router = APIRouter()


@router.get("/", response_model=list[ClassSessionOut])
def list_sessions(
    on_date: date | None = Query(default=None, alias="date"),
    start_date: date | None = None,
    end_date: date | None = None,
    teacher_id: str | None = None,
    student_id: str | None = None,
    booth_id: str | None = None,
    series_id: str | None = None,
    include_cancelled: bool = False,
    db: Session = Depends(get_db),
) -> list[ClassSessionOut]:
    query = select(ClassSession).order_by(ClassSession.date, ClassSession.start_time)
    if on_date is not None:
        query = query.where(ClassSession.date == on_date)
    if start_date is not None:
        query = query.where(ClassSession.date >= start_date)
    if end_date is not None:
        query = query.where(ClassSession.date <= end_date)
    if teacher_id:
        query = query.where(ClassSession.teacher_id == teacher_id)
    if student_id:
        query = query.where(ClassSession.student_id == student_id)
    if booth_id:
        query = query.where(ClassSession.booth_id == booth_id)
    if series_id:
        query = query.where(ClassSession.series_id == series_id)
    if not include_cancelled:
        query = query.where(ClassSession.is_cancelled.is_(False))
    return list(db.execute(query).scalars())


@router.post("/", response_model=ClassSessionCreateResponse)
def create_session(
    payload: ClassSessionCreate,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> ClassSessionCreateResponse:
    definition = SeriesDefinition(
        teacher_id=payload.teacher_id,
        student_id=payload.student_id,
        subject_id=payload.subject_id,
        booth_id=payload.booth_id,
        start_time=payload.start_time,
        end_time=payload.end_time,
        start_date=payload.date,
        end_date=payload.date,
        days_of_week=(day_index(payload.date),),
        check_availability=payload.check_availability,
    )
    session, conflicts = book_single_session(
        db,
        definition,
        settings,
        force_create=payload.force_create,
        notes=payload.notes,
    )
    return ClassSessionCreateResponse(
        success=session is not None,
        session=ClassSessionOut.model_validate(session) if session is not None else None,
        conflicts=[ConflictOut.model_validate(item) for item in conflicts],
    )


@router.post("/cancel")
def cancel_sessions(payload: ClassSessionCancelRequest, db: Session = Depends(get_db)) -> dict:
    result = db.execute(
        update(ClassSession)
        .where(ClassSession.id.in_(payload.session_ids), ClassSession.is_cancelled.is_(False))
        .values(is_cancelled=True)
    )
    db.commit()
    return {"success": True, "cancelled": result.rowcount}


@router.get("/{session_id}", response_model=ClassSessionOut)
def get_session(session_id: str, db: Session = Depends(get_db)) -> ClassSessionOut:
    session = db.get(ClassSession, session_id)
    if session is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Class session not found")
    return session


@router.delete("/{session_id}")
def delete_session(session_id: str, db: Session = Depends(get_db)) -> dict:
    session = db.get(ClassSession, session_id)
    if session is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Class session not found")
    db.delete(session)
    db.commit()
    return {"success": True}

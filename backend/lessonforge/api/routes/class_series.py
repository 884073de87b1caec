from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from lessonforge.api.deps import get_app_settings, get_db
from lessonforge.core.config import Settings
from lessonforge.models.class_series import ClassSeries
from lessonforge.schemas.class_series import (
    AdvanceResultOut,
    AdvanceRunResponse,
    ClassSeriesOut,
    ConflictOut,
    PreviewSummary,
    SeriesCreateRequest,
    SeriesDefinitionIn,
    SeriesExtendRequest,
    SeriesMutationResponse,
    SeriesPreviewResponse,
    SeriesUpdate,
    SessionActionIn,
)
from lessonforge.services import series_generation
from lessonforge.services.conflict_resolution import SessionAction
from lessonforge.services.conflict_service import group_by_date
from lessonforge.services.series import SeriesDefinition

router = APIRouter()


def _definition(payload: SeriesDefinitionIn) -> SeriesDefinition:
    return SeriesDefinition(
        teacher_id=payload.teacher_id,
        student_id=payload.student_id,
        subject_id=payload.subject_id,
        booth_id=payload.booth_id,
        start_time=payload.start_time,
        end_time=payload.end_time,
        start_date=payload.start_date,
        end_date=payload.end_date,
        days_of_week=tuple(payload.days_of_week),
        check_availability=payload.check_availability,
    )


def _actions(items: list[SessionActionIn]) -> list[SessionAction]:
    return [
        SessionAction(
            date=item.date,
            action=item.action,
            alternative_start_time=item.alternative_start_time,
            alternative_end_time=item.alternative_end_time,
        )
        for item in items
    ]


def _preview_response(result: series_generation.SeriesPreview) -> SeriesPreviewResponse:
    conflicts = result.conflicts
    return SeriesPreviewResponse(
        dates=result.dates,
        conflicts=[ConflictOut.model_validate(item) for item in conflicts],
        conflicts_by_date={
            key.isoformat(): [ConflictOut.model_validate(item) for item in items]
            for key, items in group_by_date(conflicts).items()
        },
        requires_confirmation=result.requires_confirmation,
        summary=PreviewSummary(**result.summary()),
    )


def _mutation_response(result: series_generation.SeriesMutationResult) -> SeriesMutationResponse:
    conflicts = None
    if result.conflicts is not None:
        conflicts = [ConflictOut.model_validate(item) for item in result.conflicts]
    return SeriesMutationResponse(
        success=result.success,
        series_id=result.series_id,
        created_ids=result.created_ids,
        skipped=result.skipped,
        conflicts=conflicts,
        unresolved_dates=result.unresolved_dates,
        message=result.message,
    )


@router.get("", response_model=list[ClassSeriesOut])
def list_series(teacher_id: str | None = None, student_id: str | None = None, db: Session = Depends(get_db)) -> list[ClassSeriesOut]:
    query = select(ClassSeries).order_by(ClassSeries.start_date)
    if teacher_id:
        query = query.where(ClassSeries.teacher_id == teacher_id)
    if student_id:
        query = query.where(ClassSeries.student_id == student_id)
    return list(db.execute(query).scalars())


@router.post("/preview", response_model=SeriesPreviewResponse)
def preview_series(
    payload: SeriesDefinitionIn,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> SeriesPreviewResponse:
    result = series_generation.preview(db, _definition(payload), settings)
    return _preview_response(result)


@router.post("", response_model=SeriesMutationResponse)
def create_series(
    payload: SeriesCreateRequest,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> SeriesMutationResponse:
    result = series_generation.create_series(
        db,
        _definition(payload.definition),
        _actions(payload.session_actions),
        settings,
        notes=payload.definition.notes,
    )
    return _mutation_response(result)


@router.post("/advance", response_model=AdvanceRunResponse)
def advance_series(
    lead_days: int | None = Query(default=None, ge=1, le=366),
    series_id: str | None = None,
    limit: int | None = Query(default=None, ge=1),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> AdvanceRunResponse:
    run = series_generation.advance_series(db, settings, lead_days, series_id=series_id, limit=limit)
    return AdvanceRunResponse(
        processed=run.processed,
        up_to_date=run.up_to_date,
        results=[AdvanceResultOut.model_validate(item) for item in run.results],
        failed=run.failed,
        **run.totals(),
    )


@router.get("/{series_id}", response_model=ClassSeriesOut)
def get_series(series_id: str, db: Session = Depends(get_db)) -> ClassSeriesOut:
    series = db.get(ClassSeries, series_id)
    if series is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Class series not found")
    return series


@router.patch("/{series_id}", response_model=ClassSeriesOut)
def update_series(series_id: str, payload: SeriesUpdate, db: Session = Depends(get_db)) -> ClassSeriesOut:
    series = db.get(ClassSeries, series_id)
    if series is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Class series not found")
    for key, value in payload.model_dump(exclude_unset=True).items():
        setattr(series, key, value)
    db.commit()
    db.refresh(series)
    return series


@router.get("/{series_id}/extend/preview", response_model=SeriesPreviewResponse)
def preview_extension(
    series_id: str,
    months: int = Query(default=1),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> SeriesPreviewResponse:
    result = series_generation.preview_extension(db, series_id, months, settings)
    return _preview_response(result)


@router.post("/{series_id}/extend", response_model=SeriesMutationResponse)
def extend_series(
    series_id: str,
    payload: SeriesExtendRequest,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> SeriesMutationResponse:
    result = series_generation.extend_series(
        db,
        series_id,
        payload.months,
        _actions(payload.session_actions),
        settings,
    )
    return _mutation_response(result)

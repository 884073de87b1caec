from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from lessonforge.api.deps import get_db
from lessonforge.models.availability import UserAvailability
from lessonforge.models.person import PersonRole, Student, Teacher
from lessonforge.schemas.availability import (
    AvailabilityEntryOut,
    AvailabilityReplaceRequest,
    ResolvedAvailabilityOut,
    TimeRangeOut,
    TimeSlotOut,
)
from lessonforge.services.availability import (
    AvailabilityMode,
    build_person_availability,
    day_name,
    rasterize,
    resolve_for_date,
    window_ranges,
)
from lessonforge.services.time_slots import generate_time_slots

router = APIRouter()


def _require_person(db: Session, role: PersonRole, person_id: str) -> None:
    model = Teacher if role == PersonRole.teacher else Student
    if db.get(model, person_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"{role.value.capitalize()} not found")


def _rows(db: Session, role: PersonRole, person_id: str) -> list[UserAvailability]:
    query = (
        select(UserAvailability)
        .where(UserAvailability.owner_role == role, UserAvailability.owner_id == person_id)
        .order_by(UserAvailability.kind, UserAvailability.day_of_week, UserAvailability.date, UserAvailability.start_time)
    )
    return list(db.execute(query).scalars())


@router.get("/time-slots", response_model=list[TimeSlotOut])
def list_time_slots() -> list[TimeSlotOut]:
    return [TimeSlotOut.model_validate(slot) for slot in generate_time_slots()]


@router.get("/{role}/{person_id}", response_model=list[AvailabilityEntryOut])
def list_availability(role: PersonRole, person_id: str, db: Session = Depends(get_db)) -> list[AvailabilityEntryOut]:
    _require_person(db, role, person_id)
    return _rows(db, role, person_id)


@router.put("/{role}/{person_id}", response_model=list[AvailabilityEntryOut])
def replace_availability(
    role: PersonRole,
    person_id: str,
    payload: AvailabilityReplaceRequest,
    db: Session = Depends(get_db),
) -> list[AvailabilityEntryOut]:
    _require_person(db, role, person_id)
    db.execute(
        delete(UserAvailability).where(
            UserAvailability.owner_role == role,
            UserAvailability.owner_id == person_id,
        )
    )
    for entry in payload.entries:
        db.add(UserAvailability(owner_role=role, owner_id=person_id, **entry.model_dump()))
    db.commit()
    return _rows(db, role, person_id)


@router.get("/{role}/{person_id}/resolve", response_model=ResolvedAvailabilityOut)
def resolve_availability(
    role: PersonRole,
    person_id: str,
    target_date: date = Query(alias="date"),
    mode: AvailabilityMode = Query(default=AvailabilityMode.with_special),
    db: Session = Depends(get_db),
) -> ResolvedAvailabilityOut:
    _require_person(db, role, person_id)
    availability = build_person_availability(_rows(db, role, person_id))
    window = resolve_for_date(target_date, availability, mode)

    source = None
    if window is not None:
        source = "exception" if window.date is not None else "regular"
    return ResolvedAvailabilityOut(
        date=target_date,
        day_of_week=day_name(target_date),
        mode=mode,
        has_data=availability.has_any_data,
        source=source,
        full_day=bool(window and window.full_day),
        is_unavailable=window is None or window.is_unavailable,
        ranges=[TimeRangeOut.model_validate(item) for item in window_ranges(window)],
        coverage=rasterize(window),
    )

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from lessonforge.api.deps import get_db
from lessonforge.models.vacation import Vacation
from lessonforge.schemas.vacation import VacationCreate, VacationOut

router = APIRouter()


@router.get("/", response_model=list[VacationOut])
def list_vacations(db: Session = Depends(get_db)) -> list[VacationOut]:
    return list(db.execute(select(Vacation).order_by(Vacation.start_date)).scalars())


@router.post("/", response_model=VacationOut, status_code=status.HTTP_201_CREATED)
def create_vacation(payload: VacationCreate, db: Session = Depends(get_db)) -> VacationOut:
    vacation = Vacation(**payload.model_dump())
    db.add(vacation)
    db.commit()
    db.refresh(vacation)
    return vacation


@router.delete("/{vacation_id}")
def delete_vacation(vacation_id: str, db: Session = Depends(get_db)) -> dict:
    vacation = db.get(Vacation, vacation_id)
    if vacation is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Vacation not found")
    db.delete(vacation)
    db.commit()
    return {"success": True}

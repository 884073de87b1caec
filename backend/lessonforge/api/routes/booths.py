from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from lessonforge.api.deps import get_db
from lessonforge.models.booth import Booth
from lessonforge.schemas.booth import BoothCreate, BoothOut, BoothUpdate

router = APIRouter()


@router.get("/", response_model=list[BoothOut])
def list_booths(db: Session = Depends(get_db)) -> list[BoothOut]:
    return list(db.execute(select(Booth).order_by(Booth.name)).scalars())


@router.post("/", response_model=BoothOut, status_code=status.HTTP_201_CREATED)
def create_booth(payload: BoothCreate, db: Session = Depends(get_db)) -> BoothOut:
    existing = db.execute(select(Booth).where(Booth.name == payload.name)).scalar_one_or_none()
    if existing:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Booth name already exists")
    booth = Booth(**payload.model_dump())
    db.add(booth)
    db.commit()
    db.refresh(booth)
    return booth


@router.put("/{booth_id}", response_model=BoothOut)
def update_booth(booth_id: str, payload: BoothUpdate, db: Session = Depends(get_db)) -> BoothOut:
    booth = db.get(Booth, booth_id)
    if booth is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Booth not found")

    data = payload.model_dump(exclude_unset=True)
    if "name" in data:
        existing = db.execute(select(Booth).where(Booth.name == data["name"], Booth.id != booth_id)).scalar_one_or_none()
        if existing:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Booth name already exists")

    for key, value in data.items():
        setattr(booth, key, value)
    db.commit()
    db.refresh(booth)
    return booth


@router.delete("/{booth_id}")
def delete_booth(booth_id: str, db: Session = Depends(get_db)) -> dict:
    booth = db.get(Booth, booth_id)
    if booth is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Booth not found")
    db.delete(booth)
    db.commit()
    return {"success": True}

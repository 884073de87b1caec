from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from lessonforge.api.deps import get_db
from lessonforge.models.subject import Subject, SubjectType
from lessonforge.schemas.subject import SubjectCreate, SubjectOut, SubjectTypeCreate, SubjectTypeOut

router = APIRouter()


@router.get("/subjects", response_model=list[SubjectOut])
def list_subjects(db: Session = Depends(get_db)) -> list[SubjectOut]:
    return list(db.execute(select(Subject).order_by(Subject.name)).scalars())


@router.post("/subjects", response_model=SubjectOut, status_code=status.HTTP_201_CREATED)
def create_subject(payload: SubjectCreate, db: Session = Depends(get_db)) -> SubjectOut:
    existing = db.execute(select(Subject).where(Subject.name == payload.name)).scalar_one_or_none()
    if existing:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Subject name already exists")
    subject = Subject(**payload.model_dump())
    db.add(subject)
    db.commit()
    db.refresh(subject)
    return subject


@router.delete("/subjects/{subject_id}")
def delete_subject(subject_id: str, db: Session = Depends(get_db)) -> dict:
    subject = db.get(Subject, subject_id)
    if subject is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Subject not found")
    db.delete(subject)
    db.commit()
    return {"success": True}


@router.get("/subject-types", response_model=list[SubjectTypeOut])
def list_subject_types(db: Session = Depends(get_db)) -> list[SubjectTypeOut]:
    return list(db.execute(select(SubjectType).order_by(SubjectType.name)).scalars())


@router.post("/subject-types", response_model=SubjectTypeOut, status_code=status.HTTP_201_CREATED)
def create_subject_type(payload: SubjectTypeCreate, db: Session = Depends(get_db)) -> SubjectTypeOut:
    existing = db.execute(select(SubjectType).where(SubjectType.name == payload.name)).scalar_one_or_none()
    if existing:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Subject type name already exists")
    subject_type = SubjectType(**payload.model_dump())
    db.add(subject_type)
    db.commit()
    db.refresh(subject_type)
    return subject_type


@router.delete("/subject-types/{subject_type_id}")
def delete_subject_type(subject_type_id: str, db: Session = Depends(get_db)) -> dict:
    subject_type = db.get(SubjectType, subject_type_id)
    if subject_type is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Subject type not found")
    db.delete(subject_type)
    db.commit()
    return {"success": True}

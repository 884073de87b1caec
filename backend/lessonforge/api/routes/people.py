from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from lessonforge.api.deps import get_db
from lessonforge.models.availability import UserAvailability
from lessonforge.models.person import PersonRole, PersonStatus, Student, Teacher
from lessonforge.schemas.person import (
    StudentCreate,
    StudentOut,
    StudentUpdate,
    TeacherCreate,
    TeacherOut,
    TeacherUpdate,
)

router = APIRouter()


def _email_taken(db: Session, model, email: str | None, exclude_id: str | None = None) -> bool:
    if not email:
        return False
    query = select(model).where(model.email == email)
    if exclude_id is not None:
        query = query.where(model.id != exclude_id)
    return db.execute(query).scalar_one_or_none() is not None


@router.get("/teachers", response_model=list[TeacherOut])
def list_teachers(include_inactive: bool = False, db: Session = Depends(get_db)) -> list[TeacherOut]:
    query = select(Teacher).order_by(Teacher.name)
    if not include_inactive:
        query = query.where(Teacher.status == PersonStatus.active)
    return list(db.execute(query).scalars())


@router.get("/teachers/{teacher_id}", response_model=TeacherOut)
def get_teacher(teacher_id: str, db: Session = Depends(get_db)) -> TeacherOut:
    teacher = db.get(Teacher, teacher_id)
    if teacher is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Teacher not found")
    return teacher


@router.post("/teachers", response_model=TeacherOut, status_code=status.HTTP_201_CREATED)
def create_teacher(payload: TeacherCreate, db: Session = Depends(get_db)) -> TeacherOut:
    if _email_taken(db, Teacher, payload.email):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Teacher email already exists")
    teacher = Teacher(**payload.model_dump())
    db.add(teacher)
    db.commit()
    db.refresh(teacher)
    return teacher


@router.put("/teachers/{teacher_id}", response_model=TeacherOut)
def update_teacher(teacher_id: str, payload: TeacherUpdate, db: Session = Depends(get_db)) -> TeacherOut:
    teacher = db.get(Teacher, teacher_id)
    if teacher is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Teacher not found")

    data = payload.model_dump(exclude_unset=True)
    if "email" in data and _email_taken(db, Teacher, data["email"], exclude_id=teacher_id):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Teacher email already exists")

    for key, value in data.items():
        setattr(teacher, key, value)
    db.commit()
    db.refresh(teacher)
    return teacher


@router.delete("/teachers/{teacher_id}")
def delete_teacher(teacher_id: str, db: Session = Depends(get_db)) -> dict:
    teacher = db.get(Teacher, teacher_id)
    if teacher is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Teacher not found")
    db.execute(
        delete(UserAvailability).where(
            UserAvailability.owner_role == PersonRole.teacher,
            UserAvailability.owner_id == teacher_id,
        )
    )
    db.delete(teacher)
    db.commit()
    return {"success": True}


@router.get("/students", response_model=list[StudentOut])
def list_students(include_inactive: bool = False, db: Session = Depends(get_db)) -> list[StudentOut]:
    query = select(Student).order_by(Student.name)
    if not include_inactive:
        query = query.where(Student.status == PersonStatus.active)
    return list(db.execute(query).scalars())


@router.get("/students/{student_id}", response_model=StudentOut)
def get_student(student_id: str, db: Session = Depends(get_db)) -> StudentOut:
    student = db.get(Student, student_id)
    if student is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Student not found")
    return student


@router.post("/students", response_model=StudentOut, status_code=status.HTTP_201_CREATED)
def create_student(payload: StudentCreate, db: Session = Depends(get_db)) -> StudentOut:
    if _email_taken(db, Student, payload.email):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Student email already exists")
    student = Student(**payload.model_dump())
    db.add(student)
    db.commit()
    db.refresh(student)
    return student


@router.put("/students/{student_id}", response_model=StudentOut)
def update_student(student_id: str, payload: StudentUpdate, db: Session = Depends(get_db)) -> StudentOut:
    student = db.get(Student, student_id)
    if student is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Student not found")

    data = payload.model_dump(exclude_unset=True)
    if "email" in data and _email_taken(db, Student, data["email"], exclude_id=student_id):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Student email already exists")

    for key, value in data.items():
        setattr(student, key, value)
    db.commit()
    db.refresh(student)
    return student


@router.delete("/students/{student_id}")
def delete_student(student_id: str, db: Session = Depends(get_db)) -> dict:
    student = db.get(Student, student_id)
    if student is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Student not found")
    db.execute(
        delete(UserAvailability).where(
            UserAvailability.owner_role == PersonRole.student,
            UserAvailability.owner_id == student_id,
        )
    )
    db.delete(student)
    db.commit()
    return {"success": True}

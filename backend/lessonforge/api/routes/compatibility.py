from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from lessonforge.api.deps import get_db
from lessonforge.models.person import PersonStatus, Student, Teacher
from lessonforge.models.subject import Subject
from lessonforge.schemas.compatibility import CompatibilityOut, RankedCandidateOut
from lessonforge.services.compatibility import (
    RankedCandidate,
    classify_pair,
    classify_subject,
    rank_candidates,
    rank_students_for_teacher,
    rank_teachers_for_student,
    to_preferences,
)

router = APIRouter()


def _get_or_404(db: Session, model, person_id: str | None, label: str):
    if person_id is None:
        return None
    person = db.get(model, person_id)
    if person is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"{label} not found")
    return person


@router.get("/teachers", response_model=list[RankedCandidateOut])
def rank_teachers(student_id: str | None = None, db: Session = Depends(get_db)) -> list[RankedCandidateOut]:
    student = _get_or_404(db, Student, student_id, "Student")
    teachers = db.execute(select(Teacher).where(Teacher.status == PersonStatus.active)).scalars()
    ranked = rank_teachers_for_student(
        ((item.id, item.name, to_preferences(item.subject_preferences)) for item in teachers),
        to_preferences(student.subject_preferences) if student else None,
        student_selected=student is not None,
    )
    return [RankedCandidateOut.model_validate(item) for item in ranked]


@router.get("/students", response_model=list[RankedCandidateOut])
def rank_students(teacher_id: str | None = None, db: Session = Depends(get_db)) -> list[RankedCandidateOut]:
    teacher = _get_or_404(db, Teacher, teacher_id, "Teacher")
    students = db.execute(select(Student).where(Student.status == PersonStatus.active)).scalars()
    ranked = rank_students_for_teacher(
        ((item.id, item.name, to_preferences(item.subject_preferences)) for item in students),
        to_preferences(teacher.subject_preferences) if teacher else None,
        teacher_selected=teacher is not None,
    )
    return [RankedCandidateOut.model_validate(item) for item in ranked]


@router.get("/subjects", response_model=list[RankedCandidateOut])
def rank_subjects(
    teacher_id: str | None = None,
    student_id: str | None = None,
    db: Session = Depends(get_db),
) -> list[RankedCandidateOut]:
    teacher = _get_or_404(db, Teacher, teacher_id, "Teacher")
    student = _get_or_404(db, Student, student_id, "Student")
    teacher_preferences = to_preferences(teacher.subject_preferences) if teacher else None
    student_preferences = to_preferences(student.subject_preferences) if student else None

    candidates = [
        RankedCandidate(
            id=subject.id,
            name=subject.name,
            compatibility=classify_subject(
                subject.id,
                teacher_preferences,
                student_preferences,
                teacher_selected=teacher is not None,
                student_selected=student is not None,
            ),
        )
        for subject in db.execute(select(Subject)).scalars()
    ]
    return [RankedCandidateOut.model_validate(item) for item in rank_candidates(candidates)]


@router.get("/pair", response_model=CompatibilityOut)
def pair_compatibility(teacher_id: str, student_id: str, db: Session = Depends(get_db)) -> CompatibilityOut:
    teacher = _get_or_404(db, Teacher, teacher_id, "Teacher")
    student = _get_or_404(db, Student, student_id, "Student")
    result = classify_pair(
        to_preferences(teacher.subject_preferences),
        to_preferences(student.subject_preferences),
    )
    return CompatibilityOut.model_validate(result)

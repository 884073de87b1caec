from pydantic import BaseModel, EmailStr, Field, field_validator

from lessonforge.models.person import PersonStatus


class SubjectPreferenceIn(BaseModel):
    subject_id: str = Field(min_length=1, max_length=36)
    subject_type_ids: list[str] = Field(default_factory=list, max_length=50)

    @field_validator("subject_type_ids")
    @classmethod
    def dedupe_subject_types(cls, value: list[str]) -> list[str]:
        seen: set[str] = set()
        cleaned: list[str] = []
        for item in value:
            type_id = item.strip()
            if not type_id or type_id in seen:
                continue
            seen.add(type_id)
            cleaned.append(type_id)
        return cleaned


def _dedupe_preferences(value: list[SubjectPreferenceIn] | None) -> list[SubjectPreferenceIn] | None:
    if value is None:
        return None
    merged: dict[str, SubjectPreferenceIn] = {}
    for item in value:
        existing = merged.get(item.subject_id)
        if existing is None:
            merged[item.subject_id] = item
            continue
        combined = list(dict.fromkeys([*existing.subject_type_ids, *item.subject_type_ids]))
        merged[item.subject_id] = SubjectPreferenceIn(subject_id=item.subject_id, subject_type_ids=combined)
    return list(merged.values())


class TeacherBase(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    email: EmailStr
    status: PersonStatus = PersonStatus.active
    subject_preferences: list[SubjectPreferenceIn] = Field(default_factory=list, max_length=100)
    notes: str | None = Field(default=None, max_length=2000)

    @field_validator("subject_preferences")
    @classmethod
    def merge_subject_preferences(cls, value: list[SubjectPreferenceIn]) -> list[SubjectPreferenceIn]:
        return _dedupe_preferences(value)


class TeacherCreate(TeacherBase):
    pass


class TeacherUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=200)
    email: EmailStr | None = None
    status: PersonStatus | None = None
    subject_preferences: list[SubjectPreferenceIn] | None = Field(default=None, max_length=100)
    notes: str | None = Field(default=None, max_length=2000)

    @field_validator("subject_preferences")
    @classmethod
    def merge_subject_preferences(cls, value: list[SubjectPreferenceIn] | None) -> list[SubjectPreferenceIn] | None:
        return _dedupe_preferences(value)


class TeacherOut(TeacherBase):
    id: str

    model_config = {"from_attributes": True}


class StudentBase(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    email: EmailStr | None = None
    grade: str | None = Field(default=None, max_length=50)
    status: PersonStatus = PersonStatus.active
    subject_preferences: list[SubjectPreferenceIn] = Field(default_factory=list, max_length=100)
    notes: str | None = Field(default=None, max_length=2000)

    @field_validator("subject_preferences")
    @classmethod
    def merge_subject_preferences(cls, value: list[SubjectPreferenceIn]) -> list[SubjectPreferenceIn]:
        return _dedupe_preferences(value)


class StudentCreate(StudentBase):
    pass


class StudentUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=200)
    email: EmailStr | None = None
    grade: str | None = Field(default=None, max_length=50)
    status: PersonStatus | None = None
    subject_preferences: list[SubjectPreferenceIn] | None = Field(default=None, max_length=100)
    notes: str | None = Field(default=None, max_length=2000)

    @field_validator("subject_preferences")
    @classmethod
    def merge_subject_preferences(cls, value: list[SubjectPreferenceIn] | None) -> list[SubjectPreferenceIn] | None:
        return _dedupe_preferences(value)


class StudentOut(StudentBase):
    id: str

    model_config = {"from_attributes": True}

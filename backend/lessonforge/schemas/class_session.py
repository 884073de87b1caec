from datetime import date as date_type

from pydantic import BaseModel, Field, field_validator, model_validator

from lessonforge.models.class_session import SessionStatus
from lessonforge.schemas.class_series import ConflictOut
from lessonforge.services.time_slots import TIME_PATTERN, parse_time_to_minutes


class ClassSessionCreate(BaseModel):
    teacher_id: str = Field(min_length=1, max_length=36)
    student_id: str = Field(min_length=1, max_length=36)
    subject_id: str = Field(min_length=1, max_length=36)
    booth_id: str = Field(min_length=1, max_length=36)
    date: date_type
    start_time: str
    end_time: str
    check_availability: bool = True
    force_create: bool = False
    notes: str | None = Field(default=None, max_length=2000)

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_time_format(cls, value: str) -> str:
        if not TIME_PATTERN.match(value):
            raise ValueError("Time must be in HH:MM 24-hour format")
        return value

    @model_validator(mode="after")
    def validate_order(self) -> "ClassSessionCreate":
        if parse_time_to_minutes(self.end_time) <= parse_time_to_minutes(self.start_time):
            raise ValueError("end_time must be after start_time")
        return self


class ClassSessionOut(BaseModel):
    id: str
    series_id: str | None = None
    teacher_id: str | None = None
    student_id: str | None = None
    subject_id: str | None = None
    booth_id: str | None = None
    date: date_type
    start_time: str
    end_time: str
    status: SessionStatus
    conflict_reasons: list[str] = Field(default_factory=list)
    is_cancelled: bool
    notes: str | None = None

    model_config = {"from_attributes": True}


class ClassSessionCreateResponse(BaseModel):
    success: bool
    session: ClassSessionOut | None = None
    conflicts: list[ConflictOut] = Field(default_factory=list)


class ClassSessionCancelRequest(BaseModel):
    session_ids: list[str] = Field(min_length=1, max_length=500)

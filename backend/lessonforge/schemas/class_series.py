from datetime import date as date_type

from pydantic import BaseModel, Field, field_validator, model_validator

from lessonforge.models.class_series import SeriesStatus
from lessonforge.models.person import PersonRole
from lessonforge.schemas.availability import TimeRangeOut
from lessonforge.services.conflict_resolution import ResolutionAction
from lessonforge.services.conflict_service import ConflictType
from lessonforge.services.time_slots import TIME_PATTERN


def _check_time(value: str) -> str:
    if not TIME_PATTERN.match(value):
        raise ValueError("Time must be in HH:MM 24-hour format")
    return value


class SeriesDefinitionIn(BaseModel):
    teacher_id: str = Field(min_length=1, max_length=36)
    student_id: str = Field(min_length=1, max_length=36)
    subject_id: str = Field(min_length=1, max_length=36)
    booth_id: str = Field(min_length=1, max_length=36)
    start_time: str
    end_time: str
    start_date: date_type
    end_date: date_type | None = None
    days_of_week: list[int] = Field(default_factory=list, max_length=7)
    check_availability: bool = True
    notes: str | None = Field(default=None, max_length=2000)

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_time_format(cls, value: str) -> str:
        return _check_time(value)

    @field_validator("days_of_week")
    @classmethod
    def normalize_days(cls, value: list[int]) -> list[int]:
        for day in value:
            if day < 0 or day > 6:
                raise ValueError("days_of_week values must be between 0 (Sunday) and 6 (Saturday)")
        return sorted(set(value))


class SessionActionIn(BaseModel):
    date: date_type
    action: ResolutionAction
    alternative_start_time: str | None = None
    alternative_end_time: str | None = None

    @field_validator("alternative_start_time", "alternative_end_time")
    @classmethod
    def validate_time_format(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return _check_time(value)

    @model_validator(mode="after")
    def validate_alternative(self) -> "SessionActionIn":
        if self.action == ResolutionAction.USE_ALTERNATIVE:
            if self.alternative_start_time is None or self.alternative_end_time is None:
                raise ValueError("USE_ALTERNATIVE requires alternative_start_time and alternative_end_time")
        return self


class SeriesCreateRequest(BaseModel):
    definition: SeriesDefinitionIn
    session_actions: list[SessionActionIn] = Field(default_factory=list, max_length=1000)


class SeriesExtendRequest(BaseModel):
    months: int = Field(ge=1)
    session_actions: list[SessionActionIn] = Field(default_factory=list, max_length=1000)


class SeriesUpdate(BaseModel):
    status: SeriesStatus | None = None
    check_availability: bool | None = None
    notes: str | None = Field(default=None, max_length=2000)


class ParticipantOut(BaseModel):
    id: str
    name: str
    role: PersonRole

    model_config = {"from_attributes": True}


class ConflictOut(BaseModel):
    date: date_type
    day_of_week: str
    type: ConflictType
    details: str
    participant: ParticipantOut | None = None
    teacher_slots: list[TimeRangeOut] = Field(default_factory=list)
    student_slots: list[TimeRangeOut] = Field(default_factory=list)
    available_slots: list[TimeRangeOut] = Field(default_factory=list)

    model_config = {"from_attributes": True}


class PreviewSummary(BaseModel):
    total_sessions: int
    sessions_with_conflicts: int
    valid_sessions: int


class SeriesPreviewResponse(BaseModel):
    dates: list[date_type] = Field(default_factory=list)
    conflicts: list[ConflictOut] = Field(default_factory=list)
    conflicts_by_date: dict[str, list[ConflictOut]] = Field(default_factory=dict)
    requires_confirmation: bool
    summary: PreviewSummary


class SeriesMutationResponse(BaseModel):
    success: bool
    series_id: str | None = None
    created_ids: list[str] = Field(default_factory=list)
    skipped: list[date_type] = Field(default_factory=list)
    conflicts: list[ConflictOut] | None = None
    unresolved_dates: list[date_type] = Field(default_factory=list)
    message: str | None = None


class ClassSeriesOut(BaseModel):
    id: str
    teacher_id: str | None = None
    student_id: str | None = None
    subject_id: str | None = None
    booth_id: str | None = None
    start_time: str
    end_time: str
    start_date: date_type
    end_date: date_type | None = None
    days_of_week: list[int]
    check_availability: bool
    status: SeriesStatus
    last_generated_through: date_type | None = None
    notes: str | None = None

    model_config = {"from_attributes": True}


class AdvanceResultOut(BaseModel):
    series_id: str
    from_date: date_type
    to_date: date_type
    attempted: int
    created_confirmed: int
    created_conflicted: int
    skipped: int

    model_config = {"from_attributes": True}


class AdvanceRunResponse(BaseModel):
    processed: int
    up_to_date: int
    created_confirmed: int
    created_conflicted: int
    skipped: int
    results: list[AdvanceResultOut]
    failed: dict[str, str] = Field(default_factory=dict)

from datetime import date as date_type

from pydantic import BaseModel, Field, field_validator, model_validator

from lessonforge.models.availability import AvailabilityKind
from lessonforge.services.availability import DAY_NAMES, AvailabilityMode
from lessonforge.services.time_slots import TIME_PATTERN, parse_time_to_minutes


class TimeRangeOut(BaseModel):
    start_time: str
    end_time: str

    model_config = {"from_attributes": True}


class TimeSlotOut(BaseModel):
    index: int
    start: str
    end: str

    model_config = {"from_attributes": True}


class AvailabilityEntryIn(BaseModel):
    kind: AvailabilityKind
    day_of_week: str | None = None
    date: date_type | None = None
    full_day: bool = False
    start_time: str | None = None
    end_time: str | None = None

    @field_validator("day_of_week")
    @classmethod
    def validate_day(cls, value: str | None) -> str | None:
        if value is None:
            return None
        day = value.strip().upper()
        if day not in DAY_NAMES:
            raise ValueError("Invalid day value")
        return day

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_time_format(cls, value: str | None) -> str | None:
        if value is not None and not TIME_PATTERN.match(value):
            raise ValueError("Time must be in HH:MM 24-hour format")
        return value

    @model_validator(mode="after")
    def validate_shape(self) -> "AvailabilityEntryIn":
        if self.kind == AvailabilityKind.regular:
            if self.day_of_week is None:
                raise ValueError("Regular availability requires day_of_week")
            if self.date is not None:
                raise ValueError("Regular availability cannot carry a date")
        else:
            if self.date is None:
                raise ValueError("Exceptional availability requires a date")
            if self.day_of_week is not None:
                raise ValueError("Exceptional availability cannot carry day_of_week")

        if self.full_day:
            self.start_time = None
            self.end_time = None
            return self
        if (self.start_time is None) != (self.end_time is None):
            raise ValueError("start_time and end_time must be provided together")
        if self.start_time is None:
            # An exception with no times marks the date as unavailable.
            if self.kind == AvailabilityKind.regular:
                raise ValueError("Regular availability needs full_day or a time range")
            return self
        if parse_time_to_minutes(self.end_time) <= parse_time_to_minutes(self.start_time):
            raise ValueError("end_time must be after start_time")
        return self


class AvailabilityEntryOut(BaseModel):
    id: str
    kind: AvailabilityKind
    day_of_week: str | None = None
    date: date_type | None = None
    full_day: bool
    start_time: str | None = None
    end_time: str | None = None

    model_config = {"from_attributes": True}


class AvailabilityReplaceRequest(BaseModel):
    entries: list[AvailabilityEntryIn] = Field(default_factory=list, max_length=500)


class ResolvedAvailabilityOut(BaseModel):
    date: date_type
    day_of_week: str
    mode: AvailabilityMode
    has_data: bool
    source: str | None = None
    full_day: bool = False
    is_unavailable: bool = False
    ranges: list[TimeRangeOut] = Field(default_factory=list)
    coverage: list[bool] = Field(default_factory=list)

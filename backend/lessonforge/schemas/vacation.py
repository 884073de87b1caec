from datetime import date

from pydantic import BaseModel, Field, model_validator


class VacationBase(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    start_date: date
    end_date: date
    is_recurring: bool = False

    @model_validator(mode="after")
    def validate_range(self) -> "VacationBase":
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class VacationCreate(VacationBase):
    pass


class VacationOut(VacationBase):
    id: str

    model_config = {"from_attributes": True}

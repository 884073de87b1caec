from pydantic import BaseModel, Field, field_validator


class SubjectBase(BaseModel):
    name: str = Field(min_length=1, max_length=100)

    @field_validator("name")
    @classmethod
    def strip_name(cls, value: str) -> str:
        name = value.strip()
        if not name:
            raise ValueError("name cannot be blank")
        return name


class SubjectCreate(SubjectBase):
    pass


class SubjectOut(SubjectBase):
    id: str

    model_config = {"from_attributes": True}


class SubjectTypeCreate(SubjectBase):
    pass


class SubjectTypeOut(SubjectBase):
    id: str

    model_config = {"from_attributes": True}

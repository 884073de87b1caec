from pydantic import BaseModel, Field


class BoothBase(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    is_active: bool = True


class BoothCreate(BoothBase):
    pass


class BoothUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    is_active: bool | None = None


class BoothOut(BoothBase):
    id: str

    model_config = {"from_attributes": True}

from pydantic import BaseModel

from lessonforge.services.compatibility import CompatibilityTier


class CompatibilityOut(BaseModel):
    tier: CompatibilityTier
    priority: int
    matching_subjects_count: int = 0
    partial_matching_subjects_count: int = 0
    has_matching_subjects: bool

    model_config = {"from_attributes": True}


class RankedCandidateOut(BaseModel):
    id: str
    name: str
    compatibility: CompatibilityOut

    model_config = {"from_attributes": True}

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from edtriage.application.dto.types import UtcDatetime
from edtriage.domain.constants import EwsLevel, EwsType


class EwsAssessmentDto(BaseModel):
    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: int
    visit_id: str
    type: EwsType
    score: int | None = None
    level: EwsLevel
    flags: list[str] = Field(default_factory=list)
    created_by: str
    created_at: UtcDatetime

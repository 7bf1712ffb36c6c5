from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from edtriage.application.dto.types import UtcDatetime
from edtriage.domain.constants import ArrivalPath, VisitStatus


class CheckInRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    patient_ref: str = Field(..., min_length=1)
    arrival_path: ArrivalPath = ArrivalPath.WALK_IN
    arrival_at: UtcDatetime | None = None
    notes: str | None = None


class VisitDto(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    patient_ref: str
    arrival_at: UtcDatetime
    arrival_path: ArrivalPath
    status: VisitStatus
    notes: str | None = None
    external_encounter_id: str | None = None
    updated_at: UtcDatetime | None = None


class WaitingRoomEntryDto(BaseModel):
    visit: VisitDto
    wait_minutes: int
    latest_level: str | None = None
    latest_score: int | None = None
    latest_type: str | None = None
    flags: list[str] = Field(default_factory=list)

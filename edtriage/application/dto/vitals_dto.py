from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from edtriage.application.dto.types import UtcDatetime


class VitalsMeasurements(BaseModel):
    model_config = ConfigDict(extra="forbid")

    heart_rate: int | None = Field(default=None, ge=0, le=400)
    bp_systolic: int | None = Field(default=None, ge=0, le=400)
    bp_diastolic: int | None = Field(default=None, ge=0, le=300)
    respirations: int | None = Field(default=None, ge=0, le=120)
    temperature_f: float | None = Field(default=None, gt=0, le=120)
    spo2: int | None = Field(default=None, ge=0, le=100)
    weight_kg: float | None = Field(default=None, gt=0, le=700)


class VitalsRecordDto(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    visit_id: str
    heart_rate: int | None = None
    bp_systolic: int | None = None
    bp_diastolic: int | None = None
    respirations: int | None = None
    temperature_f: float | None = None
    spo2: int | None = None
    weight_kg: float | None = None
    recorded_by: str
    recorded_at: UtcDatetime

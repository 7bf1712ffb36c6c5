from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from edtriage.application.dto.types import UtcDatetime


class AuditEntryDto(BaseModel):
    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: int
    event_ts: UtcDatetime
    actor_ref: str
    entity_type: str
    entity_id: str
    action: str
    field: str
    old_value: str | None = None
    new_value: str | None = None

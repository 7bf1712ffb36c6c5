from __future__ import annotations

from pydantic import BaseModel, Field

from edtriage.domain.constants import EwsLevel


class TimeToTriageMetric(BaseModel):
    average_minutes: float | None = None
    median_minutes: float | None = None
    min_minutes: int | None = None
    max_minutes: int | None = None
    count: int = 0


class EwsLevelShare(BaseModel):
    level: EwsLevel
    count: int
    percentage: float


class EwsDistributionMetric(BaseModel):
    levels: list[EwsLevelShare]
    total: int

    def by_level(self) -> dict[str, EwsLevelShare]:
        return {item.level.value: item for item in self.levels}


class CensusByStatus(BaseModel):
    waiting: int = 0
    in_triage: int = 0
    roomed: int = 0


class CensusByArrivalPath(BaseModel):
    walk_in: int = 0
    ems: int = 0
    trauma_direct: int = 0
    other: int = 0


class ActiveCensusMetric(BaseModel):
    total: int = 0
    by_status: CensusByStatus = Field(default_factory=CensusByStatus)
    by_arrival_path: CensusByArrivalPath = Field(default_factory=CensusByArrivalPath)


class AnalyticsSnapshot(BaseModel):
    time_to_triage: TimeToTriageMetric | None = None
    ews_distribution: EwsDistributionMetric | None = None
    active_census: ActiveCensusMetric | None = None
    errors: dict[str, str] = Field(default_factory=dict)

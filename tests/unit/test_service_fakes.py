from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from contextlib import AbstractContextManager, contextmanager
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, cast

import pytest
from sqlalchemy.exc import OperationalError

from edtriage.application.errors import (
    AlreadyTriagedError,
    DependencyFailureError,
    InvalidInputError,
    InvalidTransitionError,
)
from edtriage.application.services.analytics_service import AnalyticsService
from edtriage.application.services.ews_service import EwsService
from edtriage.application.services.visit_service import VisitService
from edtriage.application.services.waiting_room_service import WaitingRoomService

NOW = datetime(2025, 3, 1, 12, 0, tzinfo=UTC)


def make_session_factory() -> Callable[[], AbstractContextManager[object]]:
    @contextmanager
    def _session_scope() -> Iterator[object]:
        yield object()

    return _session_scope


@dataclass
class FakeVisit:
    id: str
    status: str
    patient_ref: str = "MRN-1"
    arrival_at: datetime = NOW
    arrival_path: str = "WALK_IN"
    notes: str | None = None
    external_encounter_id: str | None = None
    updated_at: datetime | None = None


@dataclass
class RacingVisitRepo:
    """Reports WAITING on the first read, then loses the conditional update to another writer."""

    reads: list[str] = field(default_factory=lambda: ["WAITING", "IN_TRIAGE"])
    update_calls: int = 0

    def get(self, _session: object, visit_id: str) -> FakeVisit:
        status = self.reads.pop(0) if len(self.reads) > 1 else self.reads[0]
        return FakeVisit(id=visit_id, status=status)

    def update_status(self, _session: object, *_args: Any, **_kwargs: Any) -> bool:
        self.update_calls += 1
        return False


class RecordingAudit:
    def __init__(self) -> None:
        self.calls: list[tuple] = []

    def record_change(self, *args: Any, **kwargs: Any) -> None:
        self.calls.append((args, kwargs))


def test_lost_race_on_triage_reports_already_triaged() -> None:
    repo = RacingVisitRepo()
    audit = RecordingAudit()
    service = VisitService(
        visit_repo=cast(Any, repo),
        audit_service=cast(Any, audit),
        encounter_client=cast(Any, object()),
        session_factory=make_session_factory(),
    )

    with pytest.raises(AlreadyTriagedError):
        service.complete_triage("visit-1", "nurse-7")
    assert repo.update_calls == 1
    assert audit.calls == []


def test_unknown_status_is_rejected_before_store_access() -> None:
    service = VisitService(
        visit_repo=cast(Any, object()),
        audit_service=cast(Any, RecordingAudit()),
        encounter_client=cast(Any, object()),
        session_factory=make_session_factory(),
    )
    with pytest.raises(InvalidInputError, match="status must be one of"):
        service.transition("visit-1", "BOARDED", "nurse-7")


def test_record_assessment_validates_before_store_access() -> None:
    service = EwsService(
        ews_repo=cast(Any, object()),
        visit_repo=cast(Any, object()),
        audit_service=cast(Any, RecordingAudit()),
        session_factory=make_session_factory(),
    )
    with pytest.raises(InvalidInputError):
        service.record_assessment("visit-1", type="GUESSED", level="HIGH", creator_id="kiosk")
    with pytest.raises(InvalidInputError):
        service.record_assessment("visit-1", type="VERIFIED", level="SEVERE", creator_id="nurse-7")
    with pytest.raises(InvalidInputError):
        service.record_assessment("visit-1", type="VERIFIED", level="HIGH", creator_id="  ")
    with pytest.raises(InvalidInputError):
        service.record_assessment("visit-1", type="VERIFIED", level="HIGH", creator_id="nurse-7", score=-1)


class FakeAnalyticsRepo:
    def __init__(self, *, fail_vitals: bool = False) -> None:
        self.fail_vitals = fail_vitals

    def get_first_vitals_rows(self, _session: object) -> list[dict]:
        if self.fail_vitals:
            raise OperationalError("SELECT", {}, Exception("database is locked"))
        return [
            {"visit_id": "a", "arrival_at": NOW, "first_recorded_at": datetime(2025, 3, 1, 12, 47, 30, tzinfo=UTC)},
            {"visit_id": "b", "arrival_at": NOW, "first_recorded_at": datetime(2025, 3, 1, 12, 13, tzinfo=UTC)},
        ]

    def get_active_counts(self, _session: object, _statuses: list[str]) -> list[dict]:
        return [
            {"status": "WAITING", "arrival_path": "WALK_IN", "total": 2},
            {"status": "IN_TRIAGE", "arrival_path": "EMS", "total": 1},
            {"status": "ROOMED", "arrival_path": "TRAUMA_DIRECT", "total": 1},
        ]


class EmptyVisitRepo:
    def list_since(self, _session: object, _since: datetime) -> list:
        return []


class EmptyEwsRepo:
    def list_for_visits(self, _session: object, _ids: list[str]) -> dict:
        return {}


def make_analytics(repo: FakeAnalyticsRepo) -> AnalyticsService:
    return AnalyticsService(
        repo=cast(Any, repo),
        visit_repo=cast(Any, EmptyVisitRepo()),
        ews_repo=cast(Any, EmptyEwsRepo()),
        session_factory=make_session_factory(),
        clock=lambda: NOW,
    )


def test_time_to_triage_from_repo_rows() -> None:
    metric = make_analytics(FakeAnalyticsRepo()).time_to_triage()
    assert metric.average_minutes == 30.0
    assert metric.median_minutes == 30.0
    assert (metric.min_minutes, metric.max_minutes, metric.count) == (13, 47, 2)


def test_active_census_buckets() -> None:
    census = make_analytics(FakeAnalyticsRepo()).active_census()
    assert census.total == 4
    assert (census.by_status.waiting, census.by_status.in_triage, census.by_status.roomed) == (2, 1, 1)
    assert census.by_arrival_path.walk_in == 2
    assert census.by_arrival_path.ems == 1
    assert census.by_arrival_path.trauma_direct == 1
    assert census.by_arrival_path.other == 0


def test_empty_distribution_has_all_levels_at_zero() -> None:
    distribution = make_analytics(FakeAnalyticsRepo()).ews_distribution()
    assert distribution.total == 0
    assert [share.level.value for share in distribution.levels] == ["CRITICAL", "HIGH", "MODERATE", "LOW"]
    assert all(share.count == 0 and share.percentage == 0.0 for share in distribution.levels)


def test_store_failure_surfaces_as_dependency_failure() -> None:
    service = make_analytics(FakeAnalyticsRepo(fail_vitals=True))
    with pytest.raises(DependencyFailureError) as excinfo:
        service.time_to_triage()
    assert isinstance(excinfo.value.__cause__, OperationalError)


def test_snapshot_isolates_failing_metric() -> None:
    snapshot = make_analytics(FakeAnalyticsRepo(fail_vitals=True)).snapshot()
    assert snapshot.time_to_triage is None
    assert snapshot.errors == {"time_to_triage": "dependency_failure"}
    assert snapshot.active_census is not None
    assert snapshot.active_census.total == 4
    assert snapshot.ews_distribution is not None


def test_waiting_room_rejects_unknown_sort() -> None:
    service = WaitingRoomService(
        visit_repo=cast(Any, object()),
        ews_repo=cast(Any, object()),
        session_factory=make_session_factory(),
    )
    with pytest.raises(InvalidInputError, match="sort must be one of"):
        service.list_waiting(sort="acuity")


class StaleSyncVisitRepo:
    """Reads WAITING but another writer changes the row before the sync update lands."""

    def get(self, _session: object, visit_id: str) -> FakeVisit:
        return FakeVisit(id=visit_id, status="WAITING")

    def update_status(self, _session: object, *_args: Any, **_kwargs: Any) -> bool:
        return False


class FixedEncounterClient:
    def push_encounter(self, visit: Any) -> str:
        return f"ENC-{visit.id[:8]}"


def test_lost_race_after_push_logs_orphaned_encounter(caplog: pytest.LogCaptureFixture) -> None:
    audit = RecordingAudit()
    service = VisitService(
        visit_repo=cast(Any, StaleSyncVisitRepo()),
        audit_service=cast(Any, audit),
        encounter_client=cast(Any, FixedEncounterClient()),
        session_factory=make_session_factory(),
    )

    with caplog.at_level(logging.WARNING, logger="edtriage.application.services.visit_service"):
        with pytest.raises(InvalidTransitionError):
            service.sync_external_encounter("abcdef123456", "nurse-7")

    assert "ENC-abcdef12" in caplog.text
    assert audit.calls == []


class CorruptCensusRepo(FakeAnalyticsRepo):
    def get_active_counts(self, _session: object, _statuses: list[str]) -> list[dict]:
        return [{"status": "BOARDED", "arrival_path": "WALK_IN", "total": 1}]


def test_snapshot_isolates_unexpected_metric_failure() -> None:
    snapshot = make_analytics(CorruptCensusRepo()).snapshot()

    assert snapshot.active_census is None
    assert snapshot.errors == {"active_census": "app_error"}
    assert snapshot.time_to_triage is not None
    assert snapshot.time_to_triage.count == 2
    assert snapshot.ews_distribution is not None

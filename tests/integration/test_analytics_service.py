from __future__ import annotations

from datetime import UTC, datetime, timedelta

from edtriage.application.services.analytics_service import AnalyticsService
from edtriage.application.services.audit_service import AuditService
from edtriage.application.services.ews_service import EwsService
from edtriage.application.services.visit_service import VisitService
from edtriage.application.services.vitals_service import VitalsService
from edtriage.infrastructure.db.session import SessionFactory

NOW = datetime(2025, 3, 1, 12, 0, tzinfo=UTC)


def make_services(session_factory: SessionFactory) -> tuple[VisitService, EwsService, VitalsService, AnalyticsService]:
    audit = AuditService(session_factory=session_factory)
    return (
        VisitService(audit_service=audit, session_factory=session_factory),
        EwsService(audit_service=audit, session_factory=session_factory),
        VitalsService(session_factory=session_factory),
        AnalyticsService(session_factory=session_factory, clock=lambda: NOW, ews_window_hours=24.0),
    )


def test_time_to_triage_uses_earliest_vitals(session_factory: SessionFactory) -> None:
    visits, _, vitals, analytics = make_services(session_factory)
    arrival = NOW - timedelta(hours=2)
    slow = visits.check_in("MRN-1", "WALK_IN", "kiosk", arrival_at=arrival)
    fast = visits.check_in("MRN-2", "EMS", "kiosk", arrival_at=arrival)
    visits.check_in("MRN-3", "WALK_IN", "kiosk", arrival_at=arrival)

    vitals.record_vitals(slow.id, "nurse-7", {"heart_rate": 88}, recorded_at=arrival + timedelta(minutes=47, seconds=40))
    vitals.record_vitals(slow.id, "nurse-7", {"heart_rate": 90}, recorded_at=arrival + timedelta(minutes=90))
    vitals.record_vitals(fast.id, "nurse-8", {"spo2": 97}, recorded_at=arrival + timedelta(minutes=13))

    metric = analytics.time_to_triage()

    assert metric.average_minutes == 30.0
    assert metric.median_minutes == 30.0
    assert metric.min_minutes == 13
    assert metric.max_minutes == 47
    assert metric.count == 2


def test_time_to_triage_without_vitals_is_empty(session_factory: SessionFactory) -> None:
    visits, _, _, analytics = make_services(session_factory)
    visits.check_in("MRN-1", "WALK_IN", "kiosk", arrival_at=NOW)

    metric = analytics.time_to_triage()

    assert metric.count == 0
    assert metric.average_minutes is None
    assert metric.median_minutes is None
    assert metric.min_minutes is None
    assert metric.max_minutes is None


def test_ews_distribution_counts_latest_assessment_per_visit(session_factory: SessionFactory) -> None:
    visits, ews, _, analytics = make_services(session_factory)
    recent = NOW - timedelta(hours=3)
    first = visits.check_in("MRN-1", "WALK_IN", "kiosk", arrival_at=recent)
    second = visits.check_in("MRN-2", "EMS", "kiosk", arrival_at=recent)
    third = visits.check_in("MRN-3", "WALK_IN", "kiosk", arrival_at=recent)
    visits.check_in("MRN-4", "WALK_IN", "kiosk", arrival_at=recent)
    stale = visits.check_in("MRN-5", "WALK_IN", "kiosk", arrival_at=NOW - timedelta(hours=30))

    ews.record_assessment(first.id, type="PROVISIONAL", level="LOW", creator_id="kiosk")
    ews.record_assessment(first.id, type="VERIFIED", level="HIGH", creator_id="nurse-7")
    ews.record_assessment(second.id, type="PROVISIONAL", level="HIGH", creator_id="kiosk")
    ews.record_assessment(third.id, type="VERIFIED", level="LOW", creator_id="nurse-7")
    ews.record_assessment(third.id, type="PROVISIONAL", level="CRITICAL", creator_id="kiosk")
    ews.record_assessment(stale.id, type="VERIFIED", level="CRITICAL", creator_id="nurse-7")

    distribution = analytics.ews_distribution()
    shares = distribution.by_level()

    assert distribution.total == 3
    assert [share.level.value for share in distribution.levels] == ["CRITICAL", "HIGH", "MODERATE", "LOW"]
    assert (shares["HIGH"].count, shares["HIGH"].percentage) == (2, 66.7)
    assert (shares["LOW"].count, shares["LOW"].percentage) == (1, 33.3)
    assert (shares["MODERATE"].count, shares["MODERATE"].percentage) == (0, 0.0)
    assert (shares["CRITICAL"].count, shares["CRITICAL"].percentage) == (0, 0.0)


def test_active_census_excludes_closed_visits(session_factory: SessionFactory) -> None:
    visits, _, _, analytics = make_services(session_factory)
    visits.check_in("MRN-1", "WALK_IN", "kiosk")
    visits.check_in("MRN-2", "EMS", "kiosk")
    triaged = visits.check_in("MRN-3", "TRAUMA_DIRECT", "kiosk")
    roomed = visits.check_in("MRN-4", "EMS", "kiosk")
    closed = visits.check_in("MRN-5", "OTHER", "kiosk")
    visits.complete_triage(triaged.id, "nurse-7")
    visits.room(roomed.id, "nurse-7")
    visits.discharge(closed.id, "doctor-2")

    census = analytics.active_census()

    assert census.total == 4
    assert census.by_status.waiting == 2
    assert census.by_status.in_triage == 1
    assert census.by_status.roomed == 1
    assert census.by_arrival_path.walk_in == 1
    assert census.by_arrival_path.ems == 2
    assert census.by_arrival_path.trauma_direct == 1
    assert census.by_arrival_path.other == 0


def test_snapshot_on_empty_store(session_factory: SessionFactory) -> None:
    _, _, _, analytics = make_services(session_factory)

    snapshot = analytics.snapshot()

    assert snapshot.errors == {}
    assert snapshot.time_to_triage is not None and snapshot.time_to_triage.count == 0
    assert snapshot.ews_distribution is not None and snapshot.ews_distribution.total == 0
    assert snapshot.active_census is not None and snapshot.active_census.total == 0

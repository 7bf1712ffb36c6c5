from __future__ import annotations

from dataclasses import dataclass

from edtriage.application.services.analytics_service import AnalyticsService
from edtriage.application.services.audit_service import AuditService
from edtriage.application.services.ews_service import EwsService
from edtriage.application.services.visit_service import VisitService
from edtriage.application.services.vitals_service import VitalsService
from edtriage.application.services.waiting_room_service import WaitingRoomService
from edtriage.infrastructure.db.repositories.analytics_repo import AnalyticsRepository
from edtriage.infrastructure.db.repositories.audit_repo import AuditLogRepository
from edtriage.infrastructure.db.repositories.ews_repo import EwsRepository
from edtriage.infrastructure.db.repositories.visit_repo import VisitRepository
from edtriage.infrastructure.db.repositories.vitals_repo import VitalsRepository
from edtriage.infrastructure.db.session import SessionFactory, session_scope
from edtriage.infrastructure.integrations.encounter_sync import EncounterSyncClient, StubEncounterSyncClient


@dataclass
class Container:
    visit_repo: VisitRepository
    ews_repo: EwsRepository
    vitals_repo: VitalsRepository
    audit_repo: AuditLogRepository
    analytics_repo: AnalyticsRepository

    audit_service: AuditService
    visit_service: VisitService
    ews_service: EwsService
    vitals_service: VitalsService
    waiting_room_service: WaitingRoomService
    analytics_service: AnalyticsService


def build_container(
    session_factory: SessionFactory = session_scope,
    encounter_client: EncounterSyncClient | None = None,
) -> Container:
    visit_repo = VisitRepository()
    ews_repo = EwsRepository()
    vitals_repo = VitalsRepository()
    audit_repo = AuditLogRepository()
    analytics_repo = AnalyticsRepository()

    audit_service = AuditService(audit_repo=audit_repo, session_factory=session_factory)
    visit_service = VisitService(
        visit_repo=visit_repo,
        audit_service=audit_service,
        encounter_client=encounter_client or StubEncounterSyncClient(),
        session_factory=session_factory,
    )
    ews_service = EwsService(
        ews_repo=ews_repo,
        visit_repo=visit_repo,
        audit_service=audit_service,
        session_factory=session_factory,
    )
    vitals_service = VitalsService(
        vitals_repo=vitals_repo, visit_repo=visit_repo, session_factory=session_factory
    )
    waiting_room_service = WaitingRoomService(
        visit_repo=visit_repo, ews_repo=ews_repo, session_factory=session_factory
    )
    analytics_service = AnalyticsService(
        repo=analytics_repo,
        visit_repo=visit_repo,
        ews_repo=ews_repo,
        session_factory=session_factory,
    )

    return Container(
        visit_repo=visit_repo,
        ews_repo=ews_repo,
        vitals_repo=vitals_repo,
        audit_repo=audit_repo,
        analytics_repo=analytics_repo,
        audit_service=audit_service,
        visit_service=visit_service,
        ews_service=ews_service,
        vitals_service=vitals_service,
        waiting_room_service=waiting_room_service,
        analytics_service=analytics_service,
    )

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime

from pydantic import ValidationError
from sqlalchemy.orm import Session

from edtriage.application.dto.visit_dto import CheckInRequest, VisitDto
from edtriage.application.errors import (
    AlreadyTriagedError,
    AppError,
    DependencyFailureError,
    InvalidInputError,
    InvalidTransitionError,
    NotFoundError,
)
from edtriage.application.services.audit_service import AuditService
from edtriage.application.services.common import parse_choice, require_ref, store_errors
from edtriage.domain.calculations.durations import as_utc
from edtriage.domain.constants import ArrivalPath, VisitStatus
from edtriage.domain.rules.visit_rules import (
    TransitionVerdict,
    allowed_sources,
    check_transition,
    encounter_sync_target,
)
from edtriage.infrastructure.db.models_sqlalchemy import Visit
from edtriage.infrastructure.db.repositories.visit_repo import VisitRepository
from edtriage.infrastructure.db.session import session_scope
from edtriage.infrastructure.integrations.encounter_sync import EncounterSyncClient, StubEncounterSyncClient

logger = logging.getLogger(__name__)


def _raise_for_verdict(visit_id: str, verdict: TransitionVerdict, current: VisitStatus, target: VisitStatus) -> None:
    if verdict == TransitionVerdict.ALLOWED:
        return
    if verdict == TransitionVerdict.ALREADY_TRIAGED:
        raise AlreadyTriagedError(
            f"Visit {visit_id} is already {current.value}",
            current=current.value,
            target=target.value,
        )
    if verdict == TransitionVerdict.FROM_TERMINAL:
        raise InvalidTransitionError(
            f"Visit {visit_id} is closed ({current.value})",
            current=current.value,
            target=target.value,
        )
    sources = ", ".join(status.value for status in allowed_sources(target)) or "nowhere"
    raise InvalidTransitionError(
        f"Visit {visit_id} cannot move from {current.value} to {target.value} (allowed from: {sources})",
        current=current.value,
        target=target.value,
    )


class VisitService:
    """Visit lifecycle: WAITING -> IN_TRIAGE -> ROOMED -> DISCHARGED / LEFT_WITHOUT_BEING_SEEN.

    Two write paths exist. ``transition`` (and its wrappers) enforces the
    state machine and serializes concurrent writers with a conditional update
    keyed on the status it read. ``force_set`` is the registrar correction
    path and applies status/notes without any guard; both paths are audited.
    """

    def __init__(
        self,
        visit_repo: VisitRepository | None = None,
        audit_service: AuditService | None = None,
        encounter_client: EncounterSyncClient | None = None,
        session_factory: Callable = session_scope,
    ) -> None:
        self.visit_repo = visit_repo or VisitRepository()
        self.audit_service = audit_service or AuditService(session_factory=session_factory)
        self.encounter_client = encounter_client or StubEncounterSyncClient()
        self.session_factory = session_factory

    def check_in(
        self,
        patient_ref: str,
        arrival_path: ArrivalPath | str,
        actor_id: str,
        *,
        arrival_at: datetime | None = None,
        notes: str | None = None,
    ) -> VisitDto:
        actor = require_ref(actor_id, "actor_id")
        try:
            request = CheckInRequest(
                patient_ref=patient_ref,
                arrival_path=arrival_path,
                arrival_at=arrival_at,
                notes=notes,
            )
        except ValidationError as exc:
            raise InvalidInputError(f"Invalid check-in: {exc.error_count()} field error(s)") from None

        with store_errors("check_in"), self.session_factory() as session:
            visit = self.visit_repo.create(
                session,
                patient_ref=request.patient_ref,
                arrival_path=request.arrival_path.value,
                status=VisitStatus.WAITING.value,
                arrival_at=as_utc(request.arrival_at),
                notes=request.notes,
            )
            self.audit_service.record_change(
                str(visit.id),
                "status",
                None,
                VisitStatus.WAITING.value,
                actor,
                action="check_in",
                session=session,
            )
            result = VisitDto.model_validate(visit)
        logger.info("Visit %s checked in via %s", result.id, result.arrival_path.value)
        return result

    def get_visit(self, visit_id: str) -> VisitDto:
        with store_errors("get_visit"), self.session_factory() as session:
            return VisitDto.model_validate(self._require(session, visit_id))

    def transition(
        self,
        visit_id: str,
        target: VisitStatus | str,
        actor_id: str,
        *,
        notes: str | None = None,
    ) -> VisitDto:
        target_status = parse_choice(VisitStatus, target, "status")
        actor = require_ref(actor_id, "actor_id")

        with store_errors("transition"), self.session_factory() as session:
            visit = self._require(session, visit_id)
            current = VisitStatus(str(visit.status))
            _raise_for_verdict(visit_id, check_transition(current, target_status), current, target_status)

            applied = self.visit_repo.update_status(
                session, visit_id, target_status.value, expected_statuses=[current.value]
            )
            if not applied:
                # Another writer moved the visit after our read; judge against what it is now.
                latest = VisitStatus(str(self._require(session, visit_id).status))
                _raise_for_verdict(visit_id, check_transition(latest, target_status), latest, target_status)
                raise InvalidTransitionError(
                    f"Visit {visit_id} changed concurrently",
                    current=latest.value,
                    target=target_status.value,
                )

            self.audit_service.record_change(
                visit_id,
                "status",
                current.value,
                target_status.value,
                actor,
                action="transition",
                session=session,
            )
            if notes is not None and notes != visit.notes:
                self._write_notes(session, visit_id, visit.notes, notes, actor, action="transition")
            result = VisitDto.model_validate(self._require(session, visit_id))
        logger.info("Visit %s moved %s -> %s", visit_id, current.value, target_status.value)
        return result

    def complete_triage(self, visit_id: str, actor_id: str, *, notes: str | None = None) -> VisitDto:
        return self.transition(visit_id, VisitStatus.IN_TRIAGE, actor_id, notes=notes)

    def room(self, visit_id: str, actor_id: str) -> VisitDto:
        return self.transition(visit_id, VisitStatus.ROOMED, actor_id)

    def discharge(self, visit_id: str, actor_id: str) -> VisitDto:
        return self.transition(visit_id, VisitStatus.DISCHARGED, actor_id)

    def mark_left_without_being_seen(self, visit_id: str, actor_id: str) -> VisitDto:
        return self.transition(visit_id, VisitStatus.LEFT_WITHOUT_BEING_SEEN, actor_id)

    def force_set(
        self,
        visit_id: str,
        actor_id: str,
        *,
        status: VisitStatus | str | None = None,
        notes: str | None = None,
    ) -> VisitDto:
        """Registrar correction: writes status and/or notes without state machine guards."""
        if status is None and notes is None:
            raise InvalidInputError("force_set needs a status or notes")
        new_status = parse_choice(VisitStatus, status, "status") if status is not None else None
        actor = require_ref(actor_id, "actor_id")

        with store_errors("force_set"), self.session_factory() as session:
            visit = self._require(session, visit_id)
            changed: list[str] = []
            if new_status is not None and new_status.value != visit.status:
                self.visit_repo.update_fields(session, visit_id, status=new_status.value)
                self.audit_service.record_change(
                    visit_id,
                    "status",
                    visit.status,
                    new_status.value,
                    actor,
                    action="force_set",
                    session=session,
                )
                changed.append("status")
            if notes is not None and notes != visit.notes:
                self._write_notes(session, visit_id, visit.notes, notes, actor, action="force_set")
                changed.append("notes")
            result = VisitDto.model_validate(self._require(session, visit_id))
        if changed:
            logger.warning("Visit %s corrected without guards: %s", visit_id, ", ".join(changed))
        return result

    def sync_external_encounter(self, visit_id: str, actor_id: str) -> VisitDto:
        """Push the visit downstream, then store the encounter id and advance status in one transaction.

        A failed push leaves the visit untouched.
        """
        actor = require_ref(actor_id, "actor_id")
        with store_errors("sync_external_encounter"), self.session_factory() as session:
            visit = self._require(session, visit_id)
            current = VisitStatus(str(visit.status))
            if current.is_terminal:
                raise InvalidTransitionError(
                    f"Visit {visit_id} is closed ({current.value})",
                    current=current.value,
                    target=VisitStatus.IN_TRIAGE.value,
                )
            snapshot = VisitDto.model_validate(visit)
            try:
                encounter_id = self.encounter_client.push_encounter(snapshot)
            except AppError:
                raise
            except Exception as exc:  # noqa: BLE001
                logger.exception("Encounter push failed for visit %s", visit_id)
                raise DependencyFailureError(f"Encounter push failed for visit {visit_id}") from exc

            target = encounter_sync_target(current)
            applied = self.visit_repo.update_status(
                session,
                visit_id,
                target.value,
                expected_statuses=[current.value],
                external_encounter_id=encounter_id,
            )
            if not applied:
                logger.warning(
                    "Visit %s changed during encounter sync; downstream encounter %s has no local link",
                    visit_id,
                    encounter_id,
                )
                raise InvalidTransitionError(
                    f"Visit {visit_id} changed during encounter sync",
                    current=current.value,
                    target=target.value,
                )
            self.audit_service.record_change(
                visit_id,
                "external_encounter_id",
                snapshot.external_encounter_id,
                encounter_id,
                actor,
                action="encounter_sync",
                session=session,
            )
            if target != current:
                self.audit_service.record_change(
                    visit_id,
                    "status",
                    current.value,
                    target.value,
                    actor,
                    action="encounter_sync",
                    session=session,
                )
            result = VisitDto.model_validate(self._require(session, visit_id))
        logger.info("Visit %s synced as encounter %s", visit_id, encounter_id)
        return result

    def _write_notes(
        self,
        session: Session,
        visit_id: str,
        old_notes: str | None,
        new_notes: str,
        actor: str,
        *,
        action: str,
    ) -> None:
        self.visit_repo.update_fields(session, visit_id, notes=new_notes)
        self.audit_service.record_change(
            visit_id, "notes", old_notes, new_notes, actor, action=action, session=session
        )

    def _require(self, session: Session, visit_id: str) -> Visit:
        visit = self.visit_repo.get(session, visit_id)
        if visit is None:
            raise NotFoundError(f"Visit {visit_id} not found")
        return visit

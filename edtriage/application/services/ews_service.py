from __future__ import annotations

import logging
from collections.abc import Callable, Iterable

from sqlalchemy.orm import Session

from edtriage.application.dto.ews_dto import EwsAssessmentDto
from edtriage.application.errors import InvalidInputError, NotFoundError
from edtriage.application.services.audit_service import AuditService
from edtriage.application.services.common import parse_choice, require_ref, store_errors
from edtriage.domain.constants import EwsLevel, EwsType
from edtriage.domain.rules.ews_rules import normalize_flags
from edtriage.infrastructure.db.repositories.ews_repo import EwsRepository
from edtriage.infrastructure.db.repositories.visit_repo import VisitRepository
from edtriage.infrastructure.db.session import session_scope

logger = logging.getLogger(__name__)


def _validate_score(score: object) -> int | None:
    if score is None:
        return None
    if isinstance(score, bool) or not isinstance(score, int):
        raise InvalidInputError("score must be a whole number")
    if score < 0:
        raise InvalidInputError("score must not be negative")
    return score


class EwsService:
    """Append-only early warning score history for a visit.

    Reads project the history through one ordering: VERIFIED before
    PROVISIONAL, then newest first. Recording an assessment never changes the
    visit status; callers decide whether a new level warrants a transition.
    """

    def __init__(
        self,
        ews_repo: EwsRepository | None = None,
        visit_repo: VisitRepository | None = None,
        audit_service: AuditService | None = None,
        session_factory: Callable = session_scope,
    ) -> None:
        self.ews_repo = ews_repo or EwsRepository()
        self.visit_repo = visit_repo or VisitRepository()
        self.audit_service = audit_service or AuditService(session_factory=session_factory)
        self.session_factory = session_factory

    def record_assessment(
        self,
        visit_id: str,
        *,
        type: EwsType | str,
        level: EwsLevel | str,
        creator_id: str,
        score: int | None = None,
        flags: Iterable[str] | None = None,
    ) -> EwsAssessmentDto:
        assessment_type = parse_choice(EwsType, type, "type")
        assessment_level = parse_choice(EwsLevel, level, "level")
        creator = require_ref(creator_id, "creator_id")
        checked_score = _validate_score(score)
        try:
            checked_flags = normalize_flags(flags)
        except ValueError as exc:
            raise InvalidInputError(str(exc)) from None

        with store_errors("record_assessment"), self.session_factory() as session:
            self._require_visit(session, visit_id)
            record = self.ews_repo.append(
                session,
                visit_id=visit_id,
                type=assessment_type.value,
                level=assessment_level.value,
                score=checked_score,
                flags=checked_flags,
                created_by=creator,
            )
            self.audit_service.record_change(
                str(record.id),
                "level",
                None,
                assessment_level.value,
                creator,
                entity_type="ews_assessment",
                action=f"ews_{assessment_type.value.lower()}",
                session=session,
            )
            result = EwsAssessmentDto.model_validate(record)
        logger.info(
            "Recorded %s assessment %s for visit %s (level %s)",
            assessment_type.value,
            result.id,
            visit_id,
            assessment_level.value,
        )
        return result

    def list_assessments(self, visit_id: str) -> list[EwsAssessmentDto]:
        with store_errors("list_assessments"), self.session_factory() as session:
            self._require_visit(session, visit_id)
            rows = self.ews_repo.list_for_visit(session, visit_id)
            return [EwsAssessmentDto.model_validate(row) for row in rows]

    def latest_assessment(self, visit_id: str) -> EwsAssessmentDto | None:
        assessments = self.list_assessments(visit_id)
        return assessments[0] if assessments else None

    def _require_visit(self, session: Session, visit_id: str) -> None:
        if not self.visit_repo.exists(session, visit_id):
            raise NotFoundError(f"Visit {visit_id} not found")

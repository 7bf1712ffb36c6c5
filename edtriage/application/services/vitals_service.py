from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from datetime import datetime

from pydantic import ValidationError
from sqlalchemy.orm import Session

from edtriage.application.dto.vitals_dto import VitalsMeasurements, VitalsRecordDto
from edtriage.application.errors import InvalidInputError, NotFoundError
from edtriage.application.services.common import require_ref, store_errors
from edtriage.domain.calculations.durations import as_utc
from edtriage.infrastructure.db.repositories.visit_repo import VisitRepository
from edtriage.infrastructure.db.repositories.vitals_repo import VitalsRepository
from edtriage.infrastructure.db.session import session_scope

logger = logging.getLogger(__name__)


class VitalsService:
    def __init__(
        self,
        vitals_repo: VitalsRepository | None = None,
        visit_repo: VisitRepository | None = None,
        session_factory: Callable = session_scope,
    ) -> None:
        self.vitals_repo = vitals_repo or VitalsRepository()
        self.visit_repo = visit_repo or VisitRepository()
        self.session_factory = session_factory

    def record_vitals(
        self,
        visit_id: str,
        recorded_by: str,
        measurements: VitalsMeasurements | Mapping[str, int | float | None] | None = None,
        *,
        recorded_at: datetime | None = None,
    ) -> VitalsRecordDto:
        recorder = require_ref(recorded_by, "recorded_by")
        if isinstance(measurements, VitalsMeasurements):
            checked = measurements
        else:
            try:
                checked = VitalsMeasurements.model_validate(dict(measurements or {}))
            except ValidationError as exc:
                raise InvalidInputError(f"Invalid vitals: {exc.error_count()} field error(s)") from None

        with store_errors("record_vitals"), self.session_factory() as session:
            self._require_visit(session, visit_id)
            record = self.vitals_repo.append(
                session,
                visit_id=visit_id,
                recorded_by=recorder,
                recorded_at=as_utc(recorded_at),
                measurements=checked.model_dump(),
            )
            result = VitalsRecordDto.model_validate(record)
        logger.info("Recorded vitals %s for visit %s", result.id, visit_id)
        return result

    def earliest_vitals(self, visit_id: str) -> VitalsRecordDto | None:
        with store_errors("earliest_vitals"), self.session_factory() as session:
            self._require_visit(session, visit_id)
            record = self.vitals_repo.earliest_for_visit(session, visit_id)
            return VitalsRecordDto.model_validate(record) if record else None

    def _require_visit(self, session: Session, visit_id: str) -> None:
        if not self.visit_repo.exists(session, visit_id):
            raise NotFoundError(f"Visit {visit_id} not found")

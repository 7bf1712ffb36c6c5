from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime

from sqlalchemy import case, select
from sqlalchemy.orm import Session

from edtriage.infrastructure.db.models_sqlalchemy import EwsAssessment, utc_now

# VERIFIED sorts before PROVISIONAL regardless of collation.
_TYPE_PRECEDENCE = case((EwsAssessment.type == "VERIFIED", 1), else_=0)


class EwsRepository:
    """Append-only access to EWS assessments; rows are never updated or deleted."""

    def append(
        self,
        session: Session,
        *,
        visit_id: str,
        type: str,
        level: str,
        score: int | None,
        flags: list[str],
        created_by: str,
        created_at: datetime | None = None,
    ) -> EwsAssessment:
        record = EwsAssessment(
            visit_id=visit_id,
            type=type,
            level=level,
            score=score,
            flags=list(flags),
            created_by=created_by,
            created_at=created_at or utc_now(),
        )
        session.add(record)
        session.flush()
        return record

    def list_for_visit(self, session: Session, visit_id: str) -> list[EwsAssessment]:
        stmt = (
            select(EwsAssessment)
            .where(EwsAssessment.visit_id == visit_id)
            .order_by(_TYPE_PRECEDENCE.desc(), EwsAssessment.created_at.desc(), EwsAssessment.id.desc())
        )
        return list(session.execute(stmt).scalars())

    def list_for_visits(self, session: Session, visit_ids: Iterable[str]) -> dict[str, list[EwsAssessment]]:
        ids = list(visit_ids)
        result: dict[str, list[EwsAssessment]] = {visit_id: [] for visit_id in ids}
        if not ids:
            return result
        stmt = (
            select(EwsAssessment)
            .where(EwsAssessment.visit_id.in_(ids))
            .order_by(_TYPE_PRECEDENCE.desc(), EwsAssessment.created_at.desc(), EwsAssessment.id.desc())
        )
        for record in session.execute(stmt).scalars():
            result[str(record.visit_id)].append(record)
        return result

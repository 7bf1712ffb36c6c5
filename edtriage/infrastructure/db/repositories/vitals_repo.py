from __future__ import annotations

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.orm import Session

from edtriage.infrastructure.db.models_sqlalchemy import VitalsRecord, utc_now


class VitalsRepository:
    def append(
        self,
        session: Session,
        *,
        visit_id: str,
        recorded_by: str,
        recorded_at: datetime | None = None,
        measurements: dict[str, int | float | None],
    ) -> VitalsRecord:
        record = VitalsRecord(
            visit_id=visit_id,
            recorded_by=recorded_by,
            recorded_at=recorded_at or utc_now(),
            **measurements,
        )
        session.add(record)
        session.flush()
        return record

    def earliest_for_visit(self, session: Session, visit_id: str) -> VitalsRecord | None:
        stmt = (
            select(VitalsRecord)
            .where(VitalsRecord.visit_id == visit_id)
            .order_by(VitalsRecord.recorded_at.asc(), VitalsRecord.id.asc())
            .limit(1)
        )
        return session.execute(stmt).scalar_one_or_none()

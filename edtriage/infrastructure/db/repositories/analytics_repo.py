from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from edtriage.infrastructure.db.models_sqlalchemy import Visit, VitalsRecord


class AnalyticsRepository:
    def get_first_vitals_rows(self, session: Session) -> list[dict]:
        """One row per visit having vitals: arrival time and earliest recording time."""
        first_vitals = (
            select(
                VitalsRecord.visit_id.label("visit_id"),
                func.min(VitalsRecord.recorded_at).label("first_recorded_at"),
            )
            .group_by(VitalsRecord.visit_id)
            .subquery()
        )
        stmt = (
            select(Visit.id, Visit.arrival_at, first_vitals.c.first_recorded_at)
            .join(first_vitals, first_vitals.c.visit_id == Visit.id)
            .order_by(Visit.arrival_at.asc())
        )
        rows = session.execute(stmt).all()
        return [
            {
                "visit_id": row.id,
                "arrival_at": row.arrival_at,
                "first_recorded_at": row.first_recorded_at,
            }
            for row in rows
        ]

    def get_active_counts(self, session: Session, statuses: list[str]) -> list[dict]:
        stmt = (
            select(
                Visit.status,
                Visit.arrival_path,
                func.count(Visit.id).label("total"),
            )
            .where(Visit.status.in_(statuses))
            .group_by(Visit.status, Visit.arrival_path)
        )
        rows = session.execute(stmt).all()
        return [
            {"status": row.status, "arrival_path": row.arrival_path, "total": row.total or 0}
            for row in rows
        ]

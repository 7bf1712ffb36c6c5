from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from edtriage.infrastructure.db.models_sqlalchemy import Visit, utc_now


class VisitRepository:
    def get(self, session: Session, visit_id: str) -> Visit | None:
        stmt = select(Visit).where(Visit.id == visit_id).execution_options(populate_existing=True)
        return session.execute(stmt).scalar_one_or_none()

    def exists(self, session: Session, visit_id: str) -> bool:
        stmt = select(Visit.id).where(Visit.id == visit_id)
        return session.execute(stmt).first() is not None

    def create(
        self,
        session: Session,
        *,
        patient_ref: str,
        arrival_path: str,
        status: str,
        arrival_at: datetime | None = None,
        notes: str | None = None,
    ) -> Visit:
        now = utc_now()
        visit = Visit(
            patient_ref=patient_ref,
            arrival_path=arrival_path,
            status=status,
            arrival_at=arrival_at or now,
            notes=notes,
            created_at=now,
            updated_at=now,
        )
        session.add(visit)
        session.flush()  # populate id
        return visit

    def update_status(
        self,
        session: Session,
        visit_id: str,
        status: str,
        expected_statuses: Iterable[str] | None = None,
        *,
        external_encounter_id: str | None = None,
    ) -> bool:
        """Conditional status write; False when the row was not in an expected status."""
        values: dict[str, object] = {"status": status, "updated_at": utc_now()}
        if external_encounter_id is not None:
            values["external_encounter_id"] = external_encounter_id
        stmt = update(Visit).where(Visit.id == visit_id)
        if expected_statuses is not None:
            stmt = stmt.where(Visit.status.in_(list(expected_statuses)))
        result = session.execute(stmt.values(**values).execution_options(synchronize_session=False))
        return (result.rowcount or 0) > 0

    def update_fields(self, session: Session, visit_id: str, **values: object) -> None:
        allowed = {"status", "notes", "external_encounter_id"}
        unknown = set(values) - allowed
        if unknown:
            raise ValueError(f"Visit fields are not writable: {', '.join(sorted(unknown))}")
        stmt = (
            update(Visit)
            .where(Visit.id == visit_id)
            .values(**values, updated_at=utc_now())
            .execution_options(synchronize_session=False)
        )
        session.execute(stmt)

    def list_by_status(self, session: Session, statuses: Iterable[str]) -> list[Visit]:
        stmt = (
            select(Visit)
            .where(Visit.status.in_(list(statuses)))
            .order_by(Visit.arrival_at.asc(), Visit.id.asc())
        )
        return list(session.execute(stmt).scalars())

    def list_since(self, session: Session, since: datetime) -> list[Visit]:
        stmt = select(Visit).where(Visit.arrival_at >= since).order_by(Visit.arrival_at.asc())
        return list(session.execute(stmt).scalars())

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from edtriage.infrastructure.db.models_sqlalchemy import AuditLog


class AuditLogRepository:
    def append_entry(
        self,
        session: Session,
        *,
        actor_ref: str,
        entity_type: str,
        entity_id: str,
        action: str,
        field: str,
        old_value: str | None,
        new_value: str | None,
    ) -> AuditLog:
        entry = AuditLog(
            actor_ref=actor_ref,
            entity_type=entity_type,
            entity_id=entity_id,
            action=action,
            field=field,
            old_value=old_value,
            new_value=new_value,
        )
        session.add(entry)
        session.flush()
        return entry

    def list_for_entity(self, session: Session, entity_type: str, entity_id: str) -> list[AuditLog]:
        stmt = (
            select(AuditLog)
            .where(AuditLog.entity_type == entity_type, AuditLog.entity_id == entity_id)
            .order_by(AuditLog.event_ts.asc(), AuditLog.id.asc())
        )
        return list(session.execute(stmt).scalars())

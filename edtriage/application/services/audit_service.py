from __future__ import annotations

import json
from collections.abc import Callable
from typing import Any

from sqlalchemy.orm import Session

from edtriage.application.dto.audit_dto import AuditEntryDto
from edtriage.application.services.common import require_ref, store_errors
from edtriage.infrastructure.db.repositories.audit_repo import AuditLogRepository
from edtriage.infrastructure.db.session import session_scope


def _encode(value: Any) -> str | None:
    if value is None:
        return None
    return json.dumps(value, ensure_ascii=False, default=str)


class AuditService:
    """Write-once field-level change log.

    Entries are never updated or deleted. Writes made with a
    caller-supplied ``session`` join that caller's transaction, so the change
    and its audit entry commit or roll back together.
    """

    def __init__(
        self,
        audit_repo: AuditLogRepository | None = None,
        session_factory: Callable = session_scope,
    ) -> None:
        self.audit_repo = audit_repo or AuditLogRepository()
        self.session_factory = session_factory

    def record_change(
        self,
        entity_id: str,
        field: str,
        old_value: Any,
        new_value: Any,
        actor_id: str,
        *,
        entity_type: str = "visit",
        action: str = "update",
        session: Session | None = None,
    ) -> AuditEntryDto:
        entity_ref = require_ref(entity_id, "entity_id")
        actor_ref = require_ref(actor_id, "actor_id")
        field_name = require_ref(field, "field")
        if session is not None:
            return self._append(session, entity_type, entity_ref, field_name, old_value, new_value, actor_ref, action)
        with store_errors("record_change"), self.session_factory() as own_session:
            return self._append(
                own_session, entity_type, entity_ref, field_name, old_value, new_value, actor_ref, action
            )

    def history(self, entity_type: str, entity_id: str) -> list[AuditEntryDto]:
        with store_errors("audit_history"), self.session_factory() as session:
            rows = self.audit_repo.list_for_entity(session, entity_type, entity_id)
            return [AuditEntryDto.model_validate(row) for row in rows]

    def _append(
        self,
        session: Session,
        entity_type: str,
        entity_id: str,
        field: str,
        old_value: Any,
        new_value: Any,
        actor_ref: str,
        action: str,
    ) -> AuditEntryDto:
        entry = self.audit_repo.append_entry(
            session,
            actor_ref=actor_ref,
            entity_type=entity_type,
            entity_id=entity_id,
            action=action,
            field=field,
            old_value=_encode(old_value),
            new_value=_encode(new_value),
        )
        return AuditEntryDto.model_validate(entry)

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime

from edtriage.application.dto.visit_dto import VisitDto, WaitingRoomEntryDto
from edtriage.application.errors import InvalidInputError
from edtriage.application.services.common import store_errors
from edtriage.domain.calculations.durations import minutes_between
from edtriage.domain.constants import EwsLevel, VisitStatus
from edtriage.domain.rules.ews_rules import pick_latest
from edtriage.infrastructure.db.repositories.ews_repo import EwsRepository
from edtriage.infrastructure.db.repositories.visit_repo import VisitRepository
from edtriage.infrastructure.db.session import session_scope

SORT_OPTIONS = ("risk", "arrival")


def _utc_now() -> datetime:
    return datetime.now(UTC)


def _risk_key(entry: WaitingRoomEntryDto) -> tuple[int, datetime, str]:
    # Unassessed visits rank below LOW.
    severity = EwsLevel(entry.latest_level).severity if entry.latest_level else -1
    return -severity, entry.visit.arrival_at, entry.visit.id


def _arrival_key(entry: WaitingRoomEntryDto) -> tuple[datetime, str]:
    return entry.visit.arrival_at, entry.visit.id


class WaitingRoomService:
    def __init__(
        self,
        visit_repo: VisitRepository | None = None,
        ews_repo: EwsRepository | None = None,
        session_factory: Callable = session_scope,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self.visit_repo = visit_repo or VisitRepository()
        self.ews_repo = ews_repo or EwsRepository()
        self.session_factory = session_factory
        self._clock = clock

    def list_waiting(self, sort: str = "risk") -> list[WaitingRoomEntryDto]:
        """WAITING visits, most at-risk first (``risk``) or first come first served (``arrival``)."""
        if sort not in SORT_OPTIONS:
            raise InvalidInputError(f"sort must be one of: {', '.join(SORT_OPTIONS)}")

        now = self._clock()
        with store_errors("list_waiting"), self.session_factory() as session:
            visits = self.visit_repo.list_by_status(session, [VisitStatus.WAITING.value])
            history = self.ews_repo.list_for_visits(session, [str(visit.id) for visit in visits])
            entries: list[WaitingRoomEntryDto] = []
            for visit in visits:
                latest = pick_latest(history.get(str(visit.id), []))
                entries.append(
                    WaitingRoomEntryDto(
                        visit=VisitDto.model_validate(visit),
                        wait_minutes=max(0, minutes_between(visit.arrival_at, now)),
                        latest_level=latest.level if latest else None,
                        latest_score=latest.score if latest else None,
                        latest_type=latest.type if latest else None,
                        flags=list(latest.flags or []) if latest else [],
                    )
                )

        return sorted(entries, key=_risk_key if sort == "risk" else _arrival_key)

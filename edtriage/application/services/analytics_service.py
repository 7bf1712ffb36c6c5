from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

from edtriage.application.dto.analytics_dto import (
    ActiveCensusMetric,
    AnalyticsSnapshot,
    CensusByArrivalPath,
    CensusByStatus,
    EwsDistributionMetric,
    EwsLevelShare,
    TimeToTriageMetric,
)
from edtriage.application.errors import AppError
from edtriage.application.services.common import store_errors
from edtriage.config import settings
from edtriage.domain.calculations.durations import minutes_between
from edtriage.domain.calculations.triage_stats import share_percent, summarize_minutes
from edtriage.domain.constants import ArrivalPath, EwsLevel, VisitStatus
from edtriage.domain.rules.ews_rules import pick_latest
from edtriage.infrastructure.db.repositories.analytics_repo import AnalyticsRepository
from edtriage.infrastructure.db.repositories.ews_repo import EwsRepository
from edtriage.infrastructure.db.repositories.visit_repo import VisitRepository
from edtriage.infrastructure.db.session import session_scope

logger = logging.getLogger(__name__)

_STATUS_BUCKETS = {
    VisitStatus.WAITING.value: "waiting",
    VisitStatus.IN_TRIAGE.value: "in_triage",
    VisitStatus.ROOMED.value: "roomed",
}
_PATH_BUCKETS = {
    ArrivalPath.WALK_IN.value: "walk_in",
    ArrivalPath.EMS.value: "ems",
    ArrivalPath.TRAUMA_DIRECT.value: "trauma_direct",
    ArrivalPath.OTHER.value: "other",
}


def _utc_now() -> datetime:
    return datetime.now(UTC)


class AnalyticsService:
    """Read-only operational metrics.

    Each metric runs in its own session with no shared intermediate state, so
    one metric failing does not affect the others.
    """

    def __init__(
        self,
        repo: AnalyticsRepository | None = None,
        visit_repo: VisitRepository | None = None,
        ews_repo: EwsRepository | None = None,
        session_factory: Callable = session_scope,
        clock: Callable[[], datetime] = _utc_now,
        ews_window_hours: float = settings.ews_window_hours,
    ) -> None:
        self.repo = repo or AnalyticsRepository()
        self.visit_repo = visit_repo or VisitRepository()
        self.ews_repo = ews_repo or EwsRepository()
        self.session_factory = session_factory
        self._clock = clock
        self.ews_window_hours = ews_window_hours

    def time_to_triage(self) -> TimeToTriageMetric:
        """Arrival to first vitals, in floored whole minutes, over every visit with vitals."""
        with store_errors("time_to_triage"), self.session_factory() as session:
            rows = self.repo.get_first_vitals_rows(session)
        durations = [
            minutes_between(row["arrival_at"], row["first_recorded_at"])
            for row in rows
            if row["first_recorded_at"] is not None
        ]
        return TimeToTriageMetric(**summarize_minutes(durations))

    def ews_distribution(self) -> EwsDistributionMetric:
        since = self._clock() - timedelta(hours=self.ews_window_hours)
        with store_errors("ews_distribution"), self.session_factory() as session:
            visits = self.visit_repo.list_since(session, since)
            history = self.ews_repo.list_for_visits(session, [str(visit.id) for visit in visits])

        counts = {level: 0 for level in EwsLevel.by_severity()}
        for assessments in history.values():
            latest = pick_latest(assessments)
            if latest is None:
                continue
            counts[EwsLevel(str(latest.level))] += 1

        total = sum(counts.values())
        return EwsDistributionMetric(
            levels=[
                EwsLevelShare(level=level, count=count, percentage=share_percent(count, total))
                for level, count in counts.items()
            ],
            total=total,
        )

    def active_census(self) -> ActiveCensusMetric:
        with store_errors("active_census"), self.session_factory() as session:
            rows = self.repo.get_active_counts(session, [status.value for status in VisitStatus.active()])

        by_status = dict.fromkeys(_STATUS_BUCKETS.values(), 0)
        by_path = dict.fromkeys(_PATH_BUCKETS.values(), 0)
        total = 0
        for row in rows:
            count = int(row["total"])
            total += count
            by_status[_STATUS_BUCKETS[row["status"]]] += count
            by_path[_PATH_BUCKETS[row["arrival_path"]]] += count
        return ActiveCensusMetric(
            total=total,
            by_status=CensusByStatus(**by_status),
            by_arrival_path=CensusByArrivalPath(**by_path),
        )

    def snapshot(self) -> AnalyticsSnapshot:
        result = AnalyticsSnapshot()
        loaders: dict[str, Callable[[], object]] = {
            "time_to_triage": self.time_to_triage,
            "ews_distribution": self.ews_distribution,
            "active_census": self.active_census,
        }
        for name, loader in loaders.items():
            try:
                setattr(result, name, loader())
            except AppError as exc:
                logger.exception("Analytics metric %s failed", name)
                result.errors[name] = exc.kind
            except Exception:  # noqa: BLE001
                logger.exception("Analytics metric %s failed unexpectedly", name)
                result.errors[name] = AppError.kind
        return result

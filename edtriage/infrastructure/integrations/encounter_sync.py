from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from edtriage.application.dto.visit_dto import VisitDto
from edtriage.config import settings

logger = logging.getLogger(__name__)


class EncounterSyncClient(ABC):
    """Outbound push of a visit to the downstream clinical record system."""

    @abstractmethod
    def push_encounter(self, visit: VisitDto) -> str:
        """Create or update the encounter and return its downstream id; raise on failure."""


class StubEncounterSyncClient(EncounterSyncClient):
    """Placeholder transport; raises when no base URL is configured."""

    def __init__(self, base_url: str | None = None) -> None:
        self.base_url = settings.encounter_base_url if base_url is None else base_url

    def push_encounter(self, visit: VisitDto) -> str:
        if not self.base_url:
            raise RuntimeError("Encounter sync endpoint is not configured")
        encounter_id = f"ENC-{visit.id[:8]}"
        logger.info("[ENCOUNTER] visit %s -> %s", visit.id, encounter_id)
        return encounter_id

from __future__ import annotations

from enum import StrEnum


class VisitStatus(StrEnum):
    WAITING = "WAITING"
    IN_TRIAGE = "IN_TRIAGE"
    ROOMED = "ROOMED"
    DISCHARGED = "DISCHARGED"
    LEFT_WITHOUT_BEING_SEEN = "LEFT_WITHOUT_BEING_SEEN"

    @classmethod
    def active(cls) -> tuple[VisitStatus, ...]:
        return (cls.WAITING, cls.IN_TRIAGE, cls.ROOMED)

    @classmethod
    def terminal(cls) -> tuple[VisitStatus, ...]:
        return (cls.DISCHARGED, cls.LEFT_WITHOUT_BEING_SEEN)

    @property
    def is_terminal(self) -> bool:
        return self in VisitStatus.terminal()


class ArrivalPath(StrEnum):
    WALK_IN = "WALK_IN"
    EMS = "EMS"
    TRAUMA_DIRECT = "TRAUMA_DIRECT"
    OTHER = "OTHER"


class EwsType(StrEnum):
    PROVISIONAL = "PROVISIONAL"
    VERIFIED = "VERIFIED"

    @property
    def precedence(self) -> int:
        # Nurse-verified findings outrank any automated estimate.
        return 1 if self is EwsType.VERIFIED else 0


class EwsLevel(StrEnum):
    LOW = "LOW"
    MODERATE = "MODERATE"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"

    @classmethod
    def by_severity(cls) -> list[EwsLevel]:
        """Levels from most to least severe."""
        return [cls.CRITICAL, cls.HIGH, cls.MODERATE, cls.LOW]

    @property
    def severity(self) -> int:
        return {"LOW": 0, "MODERATE": 1, "HIGH": 2, "CRITICAL": 3}[self.value]

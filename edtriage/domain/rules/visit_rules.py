from __future__ import annotations

from enum import StrEnum

from edtriage.domain.constants import VisitStatus

_ALLOWED_TRANSITIONS: dict[VisitStatus, frozenset[VisitStatus]] = {
    VisitStatus.WAITING: frozenset(
        {
            VisitStatus.IN_TRIAGE,
            VisitStatus.ROOMED,
            VisitStatus.DISCHARGED,
            VisitStatus.LEFT_WITHOUT_BEING_SEEN,
        }
    ),
    VisitStatus.IN_TRIAGE: frozenset(
        {VisitStatus.ROOMED, VisitStatus.DISCHARGED, VisitStatus.LEFT_WITHOUT_BEING_SEEN}
    ),
    VisitStatus.ROOMED: frozenset({VisitStatus.DISCHARGED, VisitStatus.LEFT_WITHOUT_BEING_SEEN}),
    VisitStatus.DISCHARGED: frozenset(),
    VisitStatus.LEFT_WITHOUT_BEING_SEEN: frozenset(),
}

_TRIAGED_STATUSES = frozenset({VisitStatus.IN_TRIAGE, VisitStatus.ROOMED})


class TransitionVerdict(StrEnum):
    ALLOWED = "allowed"
    ALREADY_TRIAGED = "already_triaged"
    FROM_TERMINAL = "from_terminal"
    ILLEGAL = "illegal"


def check_transition(current: VisitStatus, target: VisitStatus) -> TransitionVerdict:
    if current.is_terminal:
        return TransitionVerdict.FROM_TERMINAL
    if target == VisitStatus.IN_TRIAGE and current in _TRIAGED_STATUSES:
        return TransitionVerdict.ALREADY_TRIAGED
    if target in _ALLOWED_TRANSITIONS[current]:
        return TransitionVerdict.ALLOWED
    return TransitionVerdict.ILLEGAL


def allowed_sources(target: VisitStatus) -> tuple[VisitStatus, ...]:
    """Statuses from which ``target`` may be reached, in declaration order."""
    return tuple(status for status in VisitStatus if target in _ALLOWED_TRANSITIONS[status])


def encounter_sync_target(current: VisitStatus) -> VisitStatus:
    """Status after a successful downstream push; terminal visits are rejected before the push."""
    if current.is_terminal:
        return current
    return VisitStatus.IN_TRIAGE

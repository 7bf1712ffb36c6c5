from __future__ import annotations

from collections.abc import Iterable
from datetime import UTC, datetime
from typing import Any, Protocol, TypeVar

from edtriage.domain.calculations.durations import as_utc
from edtriage.domain.constants import EwsType


class AssessmentLike(Protocol):
    id: Any
    type: Any
    created_at: Any


T = TypeVar("T", bound=AssessmentLike)


def assessment_rank(item: AssessmentLike) -> tuple[int, datetime, int]:
    """Sort key: type precedence, then creation time, then id (higher wins)."""
    created_at = as_utc(item.created_at) or datetime.min.replace(tzinfo=UTC)
    return EwsType(str(item.type)).precedence, created_at, int(item.id or 0)


def order_assessments(items: Iterable[T]) -> list[T]:
    return sorted(items, key=assessment_rank, reverse=True)


def pick_latest(items: Iterable[T]) -> T | None:
    ordered = order_assessments(items)
    return ordered[0] if ordered else None


def normalize_flags(flags: Iterable[Any] | None) -> list[str]:
    if flags is None:
        return []
    if isinstance(flags, (str, bytes)):
        raise ValueError("flags must be a list of strings")
    result: list[str] = []
    for flag in flags:
        if not isinstance(flag, str):
            raise ValueError("flags must be a list of strings")
        cleaned = flag.strip()
        if not cleaned:
            raise ValueError("flags must not be blank")
        if cleaned in result:
            raise ValueError(f"duplicate flag: {cleaned}")
        result.append(cleaned)
    return result

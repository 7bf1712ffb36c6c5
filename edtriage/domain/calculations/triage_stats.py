from __future__ import annotations

from collections.abc import Sequence
from decimal import ROUND_HALF_UP, Decimal


def round_one_decimal(value: float) -> float:
    """Half-up rounding to one decimal place (66.65 -> 66.7, not banker's)."""
    return float(Decimal(str(value)).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def median(values: Sequence[int | float]) -> float | None:
    if not values:
        return None
    ordered = sorted(values)
    middle = len(ordered) // 2
    if len(ordered) % 2 == 0:
        return (ordered[middle - 1] + ordered[middle]) / 2
    return float(ordered[middle])


def summarize_minutes(values: Sequence[int]) -> dict[str, float | int | None]:
    if not values:
        return {
            "average_minutes": None,
            "median_minutes": None,
            "min_minutes": None,
            "max_minutes": None,
            "count": 0,
        }
    return {
        "average_minutes": round_one_decimal(sum(values) / len(values)),
        "median_minutes": median(values),
        "min_minutes": min(values),
        "max_minutes": max(values),
        "count": len(values),
    }


def share_percent(count: int, total: int) -> float:
    if total <= 0:
        return 0.0
    return round_one_decimal(count / total * 100.0)

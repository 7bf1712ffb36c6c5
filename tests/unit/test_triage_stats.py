from __future__ import annotations

from datetime import UTC, datetime, timedelta, timezone

from edtriage.domain.calculations.durations import as_utc, minutes_between, to_utc
from edtriage.domain.calculations.triage_stats import (
    median,
    round_one_decimal,
    share_percent,
    summarize_minutes,
)


def test_summarize_minutes_two_values() -> None:
    assert summarize_minutes([47, 13]) == {
        "average_minutes": 30.0,
        "median_minutes": 30.0,
        "min_minutes": 13,
        "max_minutes": 47,
        "count": 2,
    }


def test_summarize_minutes_empty() -> None:
    summary = summarize_minutes([])
    assert summary["count"] == 0
    assert all(summary[key] is None for key in ("average_minutes", "median_minutes", "min_minutes", "max_minutes"))


def test_median_odd_and_even() -> None:
    assert median([5, 1, 3]) == 3.0
    assert median([4, 1, 3, 2]) == 2.5
    assert median([]) is None


def test_rounding_is_half_up() -> None:
    assert round_one_decimal(0.25) == 0.3
    assert round_one_decimal(66.65) == 66.7
    assert round_one_decimal(2 / 3 * 100) == 66.7


def test_share_percent() -> None:
    assert share_percent(2, 3) == 66.7
    assert share_percent(1, 3) == 33.3
    assert share_percent(0, 0) == 0.0


def test_minutes_between_floors_partial_minutes() -> None:
    start = datetime(2025, 3, 1, 8, 0, tzinfo=UTC)
    assert minutes_between(start, start + timedelta(minutes=12, seconds=59)) == 12
    assert minutes_between(start, start) == 0


def test_minutes_between_mixes_naive_and_aware() -> None:
    start = datetime(2025, 3, 1, 8, 0)
    end = datetime(2025, 3, 1, 10, 30, tzinfo=timezone(timedelta(hours=2)))
    assert minutes_between(start, end) == 30


def test_as_utc_converts_offsets() -> None:
    value = datetime(2025, 3, 1, 10, 0, tzinfo=timezone(timedelta(hours=2)))
    assert as_utc(value) == datetime(2025, 3, 1, 8, 0, tzinfo=UTC)
    assert as_utc(None) is None


def test_to_utc_tags_naive_values_without_shifting() -> None:
    assert to_utc(datetime(2025, 3, 1, 8, 0)) == datetime(2025, 3, 1, 8, 0, tzinfo=UTC)
    assert to_utc(datetime(2025, 3, 1, 3, 0, tzinfo=timezone(timedelta(hours=-5)))).hour == 8

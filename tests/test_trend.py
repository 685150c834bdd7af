"""Unit tests for week-over-week trend computation."""

from datetime import date

import pytest

from reviewpulse.trend import compute_trend, week_sums
from reviewpulse.window import date_window, day_keys

RANGE = day_keys(date_window(date(2025, 1, 31)))
LAST_WEEK = RANGE[-7:]
PREV_WEEK = RANGE[-14:-7]


def _freqs(prev_sum: int, last_sum: int) -> dict[str, int]:
    """Put each week's whole sum on its first day."""
    freqs: dict[str, int] = {}
    if prev_sum:
        freqs[PREV_WEEK[0]] = prev_sum
    if last_sum:
        freqs[LAST_WEEK[0]] = last_sum
    return freqs


class TestWeekSums:
    def test_windows(self) -> None:
        freqs = {day: 1 for day in RANGE}
        assert week_sums(freqs, RANGE) == (7, 7)

    def test_older_days_ignored(self) -> None:
        freqs = {RANGE[0]: 100, RANGE[-15]: 50}
        assert week_sums(freqs, RANGE) == (0, 0)

    def test_week_boundaries(self) -> None:
        freqs = {RANGE[-14]: 3, RANGE[-8]: 4, RANGE[-7]: 5, RANGE[-1]: 6}
        assert week_sums(freqs, RANGE) == (7, 11)


class TestComputeTrend:
    @pytest.mark.parametrize(
        ("prev_sum", "last_sum", "expected"),
        [
            (0, 0, ("stable", 0)),
            (0, 10, ("up", 100)),
            (100, 120, ("up", 20)),
            (100, 80, ("down", 20)),
            (100, 105, ("stable", 5)),
            (100, 110, ("stable", 10)),
            (100, 90, ("stable", 10)),
            (10, 0, ("down", 100)),
            (3, 4, ("up", 33)),
        ],
    )
    def test_law(self, prev_sum: int, last_sum: int, expected: tuple[str, int]) -> None:
        assert compute_trend(_freqs(prev_sum, last_sum), RANGE) == expected

    def test_half_rounds_up(self) -> None:
        # 200 → 201 is +0.5%
        assert compute_trend(_freqs(200, 201), RANGE) == ("stable", 1)
        # 200 → 199 is -0.5%; magnitude rounds the same way
        assert compute_trend(_freqs(200, 199), RANGE) == ("stable", 1)

    def test_missing_days_count_as_zero(self) -> None:
        assert compute_trend({}, RANGE) == ("stable", 0)

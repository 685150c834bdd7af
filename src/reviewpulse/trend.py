"""Week-over-week trend for a single topic."""

from __future__ import annotations

import math
from collections.abc import Mapping, Sequence

from reviewpulse.models import Trend

_WEEK = 7
# Changes within ±10% are reported as stable.
_THRESHOLD = 10.0


def week_sums(frequencies: Mapping[str, int], date_range: Sequence[str]) -> tuple[int, int]:
    """Return ``(previous week sum, last week sum)`` over the tail of *date_range*."""
    last_week = date_range[-_WEEK:]
    prev_week = date_range[-2 * _WEEK:-_WEEK]
    last_sum = sum(frequencies.get(day, 0) for day in last_week)
    prev_sum = sum(frequencies.get(day, 0) for day in prev_week)
    return prev_sum, last_sum


def compute_trend(
    frequencies: Mapping[str, int],
    date_range: Sequence[str],
) -> tuple[Trend, int]:
    """Compare the last 7 days against the 7 before them.

    Returns the trend direction and the absolute change in percent.
    A topic that appears out of nothing is ``("up", 100)``.
    """
    prev_sum, last_sum = week_sums(frequencies, date_range)

    if prev_sum == 0:
        if last_sum == 0:
            return "stable", 0
        return "up", 100

    change = (last_sum - prev_sum) * 100 / prev_sum
    percentage = int(math.floor(abs(change) + 0.5))
    if change > _THRESHOLD:
        return "up", percentage
    if change < -_THRESHOLD:
        return "down", percentage
    return "stable", percentage

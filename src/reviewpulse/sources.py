"""Review sources: live scraping with a synthetic fallback."""

from __future__ import annotations

import logging
import random
import time
from collections.abc import Callable
from datetime import date
from typing import Protocol

from reviewpulse.exceptions import SourceError
from reviewpulse.generator import daily_count, generate_reviews_for_date
from reviewpulse.models import Review
from reviewpulse.scraper import FirecrawlScraper
from reviewpulse.window import day_key, days_between

logger = logging.getLogger(__name__)

# Called as (index, total days, day key) before each day is produced.
DayProgress = Callable[[int, int, str], None]


class ReviewSource(Protocol):
    def fetch(
        self,
        app_id: str,
        package: str,
        start: date,
        end: date,
        on_day: DayProgress | None = None,
    ) -> list[Review]: ...


class SyntheticReviewSource:
    """Generates template reviews for every day of the window. Never fails."""

    def __init__(
        self,
        daily_review_count: int = 50,
        variance: int = 15,
        pause_seconds: float = 0.0,
        seed: int | None = None,
    ) -> None:
        self._daily = daily_review_count
        self._variance = variance
        self._pause = pause_seconds
        self._rng = random.Random(seed)

    def fetch(
        self,
        app_id: str,
        package: str,
        start: date,
        end: date,
        on_day: DayProgress | None = None,
    ) -> list[Review]:
        days = days_between(start, end)
        reviews: list[Review] = []
        for i, day in enumerate(days):
            if on_day is not None:
                on_day(i, len(days), day_key(day))
            count = daily_count(self._daily, self._variance, self._rng)
            reviews.extend(generate_reviews_for_date(app_id, day, count, self._rng))
            if self._pause:
                time.sleep(self._pause)
        logger.info("Generated %d synthetic reviews for %s", len(reviews), app_id)
        return reviews


class LiveReviewSource:
    """Scrapes the Play Store; raises :class:`SourceError` on failure or empty result."""

    def __init__(self, scraper: FirecrawlScraper) -> None:
        self._scraper = scraper

    def fetch(
        self,
        app_id: str,
        package: str,
        start: date,
        end: date,
        on_day: DayProgress | None = None,
    ) -> list[Review]:
        return self._scraper.fetch(app_id, package, start, end)


def resolve_reviews(
    app_id: str,
    package: str,
    start: date,
    end: date,
    synthetic: ReviewSource,
    live: ReviewSource | None = None,
    on_day: DayProgress | None = None,
    on_notice: Callable[[str], None] | None = None,
) -> tuple[list[Review], bool]:
    """Fetch reviews for the window, live first when available.

    Returns ``(reviews, used_live)``. Any :class:`SourceError` from the live
    source falls back to *synthetic* for the same window.
    """

    def _notice(message: str) -> None:
        logger.warning(message)
        if on_notice is not None:
            on_notice(message)

    if live is not None:
        try:
            reviews = live.fetch(app_id, package, start, end)
        except SourceError as exc:
            _notice(f"Live reviews unavailable ({exc}); falling back to simulated data.")
        else:
            if reviews:
                logger.info("Using %d live reviews for %s", len(reviews), app_id)
                return reviews, True
            _notice("No live reviews found; falling back to simulated data.")

    return synthetic.fetch(app_id, package, start, end, on_day=on_day), False

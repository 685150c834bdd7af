"""Minimal Firecrawl client that scrapes Google Play review pages."""

from __future__ import annotations

import logging
import random
import re
import time
from datetime import date
from typing import Any

import requests

from reviewpulse.exceptions import EmptyResult, SourceUnavailable
from reviewpulse.models import Review
from reviewpulse.window import day_key, days_between

logger = logging.getLogger(__name__)

_SCRAPE_URL = "https://api.firecrawl.dev/v1/scrape"
_PLAY_STORE_URL = "https://play.google.com/store/apps/details?id={package}&hl=en&showAllReviews=true"

_RATED_PATTERNS: list[re.Pattern[str]] = [
    re.compile(
        r"(\d)\s*(?:stars?|★+)\s*(?:rating)?\s*[-–—]\s*([\s\S]*?)(?=\d\s*(?:stars?|★+)|$)",
        re.IGNORECASE,
    ),
    re.compile(r"Rating:\s*(\d)/5[\s\S]*?Review:\s*([\s\S]*?)(?=Rating:|$)", re.IGNORECASE),
]

_NEGATIVE_WORDS = (
    "terrible", "awful", "worst", "hate", "bug", "crash", "broken",
    "useless", "scam", "fraud", "waste",
)
_POSITIVE_WORDS = (
    "love", "great", "amazing", "excellent", "best", "perfect",
    "awesome", "fantastic", "wonderful",
)

_MAX_FALLBACK_LINES = 50
_AUTHOR = "PlayStore User"


def clean_review_text(text: str) -> str:
    """Strip markdown emphasis, links and parentheticals; collapse whitespace."""
    text = re.sub(r"\*+", "", text)
    text = re.sub(r"\[.*?\]", "", text)
    text = re.sub(r"\(.*?\)", "", text)
    return re.sub(r"\s+", " ", text).strip()


def guess_rating(text: str) -> int:
    """Rough 1–5 rating from sentiment words, for reviews scraped without stars."""
    lower = text.lower()
    negative = sum(1 for word in _NEGATIVE_WORDS if word in lower)
    positive = sum(1 for word in _POSITIVE_WORDS if word in lower)
    if negative > positive:
        return 1 if negative > 1 else 2
    if positive > negative:
        return 5 if positive > 1 else 4
    return 3


def parse_reviews(
    markdown: str,
    app_id: str,
    start: date,
    end: date,
    rng: random.Random | None = None,
) -> list[Review]:
    """Extract reviews from a scraped Play Store page.

    Scraped pages carry no usable per-review dates, so each review is given a
    day drawn uniformly from the window.
    """
    rng = rng or random.Random()
    days = [day_key(d) for d in days_between(start, end)] or [day_key(end)]
    stamp = int(time.time() * 1000)
    reviews: list[Review] = []

    def _append(text: str, rating: int) -> None:
        reviews.append(
            Review(
                id=f"scraped-{stamp}-{len(reviews)}",
                day=rng.choice(days),
                rating=min(5, max(1, rating)),
                text=text,
                app=app_id,
                author=_AUTHOR,
            )
        )

    for pattern in _RATED_PATTERNS:
        for match in pattern.finditer(markdown):
            text = (match.group(2) or "").strip()
            if 10 < len(text) < 2000:
                cleaned = clean_review_text(text)
                if cleaned:
                    _append(cleaned, int(match.group(1)))

    if reviews:
        return reviews

    candidates = [
        line.strip()
        for line in markdown.splitlines()
        if 20 < len(line.strip()) < 1000
        and not line.strip().startswith("#")
        and "http" not in line
        and "Install" not in line
        and "Download" not in line
    ]
    for line in candidates[:_MAX_FALLBACK_LINES]:
        text = clean_review_text(line)
        if len(text) > 20:
            _append(text, guess_rating(text))
    return reviews


class FirecrawlScraper:
    """Thin wrapper around Firecrawl's ``POST /v1/scrape``."""

    def __init__(self, api_key: str, timeout: float = 60.0) -> None:
        self._api_key = api_key
        self._timeout = timeout
        self._session = requests.Session()
        if api_key:
            self._session.headers.update({"Authorization": f"Bearer {api_key}"})

    # ── public ──────────────────────────────────────────────────────────
    def fetch(self, app_id: str, package: str, start: date, end: date) -> list[Review]:
        """Scrape reviews for *package* and tag them with days inside ``start..end``."""
        if not self._api_key:
            raise SourceUnavailable("FIRECRAWL_API_KEY is not configured.")
        if not package:
            raise SourceUnavailable(f"No Play Store package known for app '{app_id}'.")

        logger.info("Scraping reviews for %s from %s to %s", package, start, end)
        data = self._post(
            {
                "url": _PLAY_STORE_URL.format(package=package),
                "formats": ["markdown"],
                "onlyMainContent": True,
                "waitFor": 3000,
            }
        )
        markdown: str = (data.get("data") or {}).get("markdown") or ""
        reviews = parse_reviews(markdown, app_id, start, end)
        logger.info("Scraped %d reviews from Play Store", len(reviews))
        if not reviews:
            raise EmptyResult(f"No reviews found for {package}.")
        return reviews

    # ── private ─────────────────────────────────────────────────────────
    def _post(self, payload: dict[str, Any]) -> dict[str, Any]:
        try:
            resp = self._session.post(_SCRAPE_URL, json=payload, timeout=self._timeout)
        except requests.RequestException as exc:
            raise SourceUnavailable(f"Firecrawl request failed: {exc}") from exc
        if resp.status_code != 200:
            raise SourceUnavailable(
                f"Firecrawl returned {resp.status_code}: {resp.text[:500]}"
            )
        try:
            return resp.json()  # type: ignore[no-any-return]
        except ValueError as exc:
            raise SourceUnavailable("Firecrawl returned a non-JSON body") from exc

"""Shared stubs for the external services."""

from __future__ import annotations

from datetime import date

import pytest

from reviewpulse.exceptions import ClassifierUnavailable, DeduplicatorUnavailable, SourceUnavailable
from reviewpulse.models import MergeGroup, Review, SeedTopic, TopicMatch
from reviewpulse.sources import SyntheticReviewSource


class IssueLabelClassifier:
    """Labels every synthetic issue review with one fixed topic."""

    def __init__(self, label: str = "Delivery delayed", fail_days: set[str] | None = None) -> None:
        self.label = label
        self.fail_days = fail_days or set()
        self.calls: list[tuple[str, list[str]]] = []

    def classify(
        self,
        reviews: list[Review],
        seed_topics: list[SeedTopic],
        existing_topics: list[str],
    ) -> list[TopicMatch]:
        day = reviews[0].day
        self.calls.append((day, list(existing_topics)))
        if day in self.fail_days:
            raise ClassifierUnavailable("classifier down")
        indices = [i for i, r in enumerate(reviews, start=1) if "-issue-" in r.id]
        if not indices:
            return []
        return [TopicMatch(topic=self.label, category="issue", matched_reviews=indices)]


class ScriptedClassifier:
    """Returns a fixed list of matches per day key (empty when unscripted)."""

    def __init__(self, script: dict[str, list[TopicMatch]]) -> None:
        self.script = script
        self.calls: list[tuple[str, list[str]]] = []

    def classify(
        self,
        reviews: list[Review],
        seed_topics: list[SeedTopic],
        existing_topics: list[str],
    ) -> list[TopicMatch]:
        day = reviews[0].day
        self.calls.append((day, list(existing_topics)))
        return self.script.get(day, [])


class StaticDeduplicator:
    def __init__(self, groups: list[MergeGroup] | None = None, fail: bool = False) -> None:
        self.groups = groups or []
        self.fail = fail
        self.calls: list[list[str]] = []

    def deduplicate(self, topics: list[str]) -> list[MergeGroup]:
        self.calls.append(list(topics))
        if self.fail:
            raise DeduplicatorUnavailable("dedup down")
        return self.groups


class FailingLiveSource:
    def __init__(self) -> None:
        self.calls = 0

    def fetch(
        self, app_id: str, package: str, start: date, end: date, on_day: object = None
    ) -> list[Review]:
        self.calls += 1
        raise SourceUnavailable("scraper offline")


class FixedLiveSource:
    def __init__(self, reviews: list[Review]) -> None:
        self.reviews = reviews

    def fetch(
        self, app_id: str, package: str, start: date, end: date, on_day: object = None
    ) -> list[Review]:
        return list(self.reviews)


def make_review(day: str, n: int, text: str = "Delivery was late again", app: str = "swiggy") -> Review:
    return Review(id=f"{day}-x-{n}", day=day, rating=2, text=text, app=app, author="tester")


@pytest.fixture
def synthetic() -> SyntheticReviewSource:
    return SyntheticReviewSource(daily_review_count=50, variance=0, seed=7)


@pytest.fixture
def target() -> date:
    return date(2025, 1, 31)

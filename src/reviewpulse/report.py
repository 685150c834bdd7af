"""Assemble the final, immutable analysis report from the topic table."""

from __future__ import annotations

import logging
from datetime import UTC, datetime

from reviewpulse.aggregate import TopicTable
from reviewpulse.models import AnalysisReport, Category, TopicFrequency
from reviewpulse.trend import compute_trend

logger = logging.getLogger(__name__)

CATEGORIES: tuple[Category, ...] = ("issue", "request", "feedback")


def category_counts(report: AnalysisReport) -> dict[Category, int]:
    """Number of topics per category; every category is present, zero if unused."""
    counts: dict[Category, int] = {category: 0 for category in CATEGORIES}
    for topic in report.topics:
        counts[topic.category] += 1
    return counts


def topics_in_category(
    report: AnalysisReport,
    category: Category | None = None,
) -> list[TopicFrequency]:
    """The report's topics in report order, limited to *category* when given."""
    if category is None:
        return list(report.topics)
    return [topic for topic in report.topics if topic.category == category]


def topic_frequencies(table: TopicTable, date_range: list[str]) -> list[TopicFrequency]:
    """One entry per surviving topic, sorted by total count descending.

    ``sorted`` is stable, so equal totals keep discovery order.
    """
    items: list[TopicFrequency] = []
    for entry in table:
        trend, pct = compute_trend(entry.frequencies, date_range)
        items.append(
            TopicFrequency(
                topic=entry.label,
                category=entry.category,
                frequencies=dict(entry.frequencies),
                total_count=entry.total,
                trend=trend,
                trend_percentage=pct,
            )
        )
    return sorted(items, key=lambda t: t.total_count, reverse=True)


def build_report(
    table: TopicTable,
    date_range: list[str],
    app: str,
    target_date: str,
    total_reviews: int,
    new_topics: int,
) -> AnalysisReport:
    now = datetime.now(UTC)
    topics = topic_frequencies(table, date_range)
    report = AnalysisReport(
        id=f"report-{int(now.timestamp() * 1000)}",
        target_date=target_date,
        app=app,
        topics=topics,
        date_range=list(date_range),
        generated_at=now,
        total_reviews_analyzed=total_reviews,
        new_topics_discovered=new_topics,
    )
    logger.info(
        "Report for %s @ %s: %d topics from %d reviews (top=%s)",
        app,
        target_date,
        len(topics),
        total_reviews,
        topics[0].topic if topics else "-",
    )
    return report

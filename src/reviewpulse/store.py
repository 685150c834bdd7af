"""SQLite-backed stores for analysis reports and custom topics."""

from __future__ import annotations

import logging
import sqlite3
import uuid
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import yaml

from reviewpulse.exceptions import PersistenceFailure
from reviewpulse.models import (
    AnalysisReport,
    Category,
    CustomTopic,
    ReportSummary,
    SeedTopic,
    TopicFrequency,
)
from reviewpulse.window import day_keys, days_between, parse_day

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS analysis_reports (
    id                     TEXT PRIMARY KEY,
    app_id                 TEXT NOT NULL,
    app_name               TEXT NOT NULL,
    target_date            TEXT NOT NULL,
    date_range_start       TEXT NOT NULL,
    date_range_end         TEXT NOT NULL,
    total_reviews_analyzed INTEGER NOT NULL DEFAULT 0,
    new_topics_discovered  INTEGER NOT NULL DEFAULT 0,
    generated_at           TEXT NOT NULL,
    created_at             TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS report_topics (
    id               INTEGER PRIMARY KEY AUTOINCREMENT,
    report_id        TEXT NOT NULL REFERENCES analysis_reports(id) ON DELETE CASCADE,
    position         INTEGER NOT NULL,
    topic            TEXT NOT NULL,
    category         TEXT NOT NULL,
    total_count      INTEGER NOT NULL DEFAULT 0,
    trend            TEXT NOT NULL DEFAULT 'stable',
    trend_percentage INTEGER NOT NULL DEFAULT 0
);

CREATE TABLE IF NOT EXISTS topic_frequencies (
    topic_id  INTEGER NOT NULL REFERENCES report_topics(id) ON DELETE CASCADE,
    date      TEXT NOT NULL,
    frequency INTEGER NOT NULL DEFAULT 0,
    PRIMARY KEY (topic_id, date)
);

CREATE TABLE IF NOT EXISTS custom_topics (
    id         TEXT PRIMARY KEY,
    topic      TEXT NOT NULL,
    category   TEXT NOT NULL,
    app_id     TEXT,
    is_active  INTEGER NOT NULL DEFAULT 1,
    created_at TEXT NOT NULL
);
"""

_VALID_CATEGORIES: frozenset[str] = frozenset({"issue", "request", "feedback"})


class _SQLiteStore:
    def __init__(self, db_path: Path) -> None:
        db_path.parent.mkdir(parents=True, exist_ok=True)
        self._db_path = db_path
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        con = sqlite3.connect(str(self._db_path))
        con.row_factory = sqlite3.Row
        con.execute("PRAGMA foreign_keys = ON")
        return con

    def _init_db(self) -> None:
        con = self._connect()
        con.executescript(_SCHEMA)
        con.close()


class ReportStore(_SQLiteStore):
    """Archive of finished analysis reports."""

    # ── public ──────────────────────────────────────────────────────────

    def save(self, report: AnalysisReport) -> str:
        """Persist *report* with its topics and per-day frequencies; return the new id."""
        report_id = uuid.uuid4().hex
        con = self._connect()
        try:
            with con:
                con.execute(
                    """
                    INSERT INTO analysis_reports
                        (id, app_id, app_name, target_date, date_range_start, date_range_end,
                         total_reviews_analyzed, new_topics_discovered, generated_at, created_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        report_id,
                        report.app,
                        report.app[:1].upper() + report.app[1:],
                        report.target_date,
                        report.date_range[0] if report.date_range else report.target_date,
                        report.date_range[-1] if report.date_range else report.target_date,
                        report.total_reviews_analyzed,
                        report.new_topics_discovered,
                        report.generated_at.isoformat(),
                        datetime.now(UTC).isoformat(),
                    ),
                )
                for position, topic in enumerate(report.topics):
                    cur = con.execute(
                        """
                        INSERT INTO report_topics
                            (report_id, position, topic, category, total_count, trend, trend_percentage)
                        VALUES (?, ?, ?, ?, ?, ?, ?)
                        """,
                        (
                            report_id,
                            position,
                            topic.topic,
                            topic.category,
                            topic.total_count,
                            topic.trend,
                            topic.trend_percentage,
                        ),
                    )
                    con.executemany(
                        "INSERT INTO topic_frequencies (topic_id, date, frequency) VALUES (?, ?, ?)",
                        [(cur.lastrowid, day, freq) for day, freq in topic.frequencies.items()],
                    )
        except sqlite3.Error as exc:
            raise PersistenceFailure(f"Could not save report: {exc}") from exc
        finally:
            con.close()
        logger.info("Saved report %s (%d topics)", report_id, len(report.topics))
        return report_id

    def list(self, limit: int = 20) -> list[ReportSummary]:
        """Most recent reports first."""
        con = self._connect()
        try:
            rows = con.execute(
                "SELECT * FROM analysis_reports ORDER BY created_at DESC LIMIT ?", (limit,)
            ).fetchall()
        finally:
            con.close()
        return [
            ReportSummary(
                id=row["id"],
                app_id=row["app_id"],
                app_name=row["app_name"],
                target_date=row["target_date"],
                date_range_start=row["date_range_start"],
                date_range_end=row["date_range_end"],
                total_reviews_analyzed=row["total_reviews_analyzed"],
                new_topics_discovered=row["new_topics_discovered"],
                created_at=row["created_at"],
            )
            for row in rows
        ]

    def load_full(self, report_id: str) -> AnalysisReport | None:
        con = self._connect()
        try:
            row = con.execute(
                "SELECT * FROM analysis_reports WHERE id = ?", (report_id,)
            ).fetchone()
            if row is None:
                return None
            topic_rows = con.execute(
                "SELECT * FROM report_topics WHERE report_id = ? ORDER BY position",
                (report_id,),
            ).fetchall()
            topics: list[TopicFrequency] = []
            for t in topic_rows:
                freq_rows = con.execute(
                    "SELECT date, frequency FROM topic_frequencies WHERE topic_id = ? ORDER BY date",
                    (t["id"],),
                ).fetchall()
                topics.append(
                    TopicFrequency(
                        topic=t["topic"],
                        category=t["category"],
                        frequencies={f["date"]: f["frequency"] for f in freq_rows},
                        total_count=t["total_count"],
                        trend=t["trend"],
                        trend_percentage=t["trend_percentage"],
                    )
                )
        finally:
            con.close()

        date_range = day_keys(
            days_between(parse_day(row["date_range_start"]), parse_day(row["date_range_end"]))
        )
        return AnalysisReport(
            id=row["id"],
            target_date=row["target_date"],
            app=row["app_id"],
            topics=topics,
            date_range=date_range,
            generated_at=row["generated_at"],
            total_reviews_analyzed=row["total_reviews_analyzed"],
            new_topics_discovered=row["new_topics_discovered"],
        )

    def delete(self, report_id: str) -> bool:
        con = self._connect()
        try:
            with con:
                cur = con.execute("DELETE FROM analysis_reports WHERE id = ?", (report_id,))
            return cur.rowcount > 0
        finally:
            con.close()


class CustomTopicStore(_SQLiteStore):
    """User-defined topics offered to the classifier next to the seed vocabulary."""

    def add(self, label: str, category: Category, app_id: str | None = None) -> CustomTopic:
        label = label.strip()
        if not label:
            raise ValueError("Custom topic label must not be empty.")
        if category not in _VALID_CATEGORIES:
            raise ValueError(f"Unknown category '{category}'.")
        topic = CustomTopic(
            id=uuid.uuid4().hex,
            label=label,
            category=category,
            app_id=app_id or None,
            is_active=True,
            created_at=datetime.now(UTC),
        )
        con = self._connect()
        try:
            with con:
                con.execute(
                    """
                    INSERT INTO custom_topics (id, topic, category, app_id, is_active, created_at)
                    VALUES (?, ?, ?, ?, 1, ?)
                    """,
                    (topic.id, topic.label, topic.category, topic.app_id, topic.created_at.isoformat()),
                )
        finally:
            con.close()
        logger.info("Added custom topic '%s' (%s, app=%s)", label, category, app_id or "*")
        return topic

    def list_all(self) -> list[CustomTopic]:
        return self._query("SELECT * FROM custom_topics ORDER BY created_at DESC", ())

    def list_active(self, app_id: str | None = None) -> list[CustomTopic]:
        """Active topics for *app_id* plus global ones (all active when no app given)."""
        if app_id:
            return self._query(
                """
                SELECT * FROM custom_topics
                WHERE is_active = 1 AND (app_id = ? OR app_id IS NULL)
                ORDER BY created_at DESC
                """,
                (app_id,),
            )
        return self._query(
            "SELECT * FROM custom_topics WHERE is_active = 1 ORDER BY created_at DESC", ()
        )

    def active_seeds(self, app_id: str | None = None) -> list[SeedTopic]:
        return [topic.as_seed() for topic in self.list_active(app_id)]

    def set_active(self, topic_id: str, active: bool) -> bool:
        con = self._connect()
        try:
            with con:
                cur = con.execute(
                    "UPDATE custom_topics SET is_active = ? WHERE id = ?",
                    (1 if active else 0, topic_id),
                )
            return cur.rowcount > 0
        finally:
            con.close()

    def delete(self, topic_id: str) -> bool:
        con = self._connect()
        try:
            with con:
                cur = con.execute("DELETE FROM custom_topics WHERE id = ?", (topic_id,))
            return cur.rowcount > 0
        finally:
            con.close()

    def import_yaml(self, path: Path) -> int:
        """Add every topic listed under ``topics:`` in a YAML file; return count added.

        Each item needs ``label`` and ``category``; ``app`` is optional.
        """
        with open(path) as fh:
            cfg: dict[str, Any] = yaml.safe_load(fh) or {}

        added = 0
        for item in cfg.get("topics", []) or []:
            label = str(item.get("label", "")).strip()
            category = str(item.get("category", "")).strip().lower()
            if not label or category not in _VALID_CATEGORIES:
                logger.warning("Skipping invalid custom topic entry: %r", item)
                continue
            self.add(label, category, item.get("app"))  # type: ignore[arg-type]
            added += 1
        logger.info("Imported %d custom topics from %s", added, path)
        return added

    # ── private ─────────────────────────────────────────────────────────

    def _query(self, sql: str, params: tuple[Any, ...]) -> list[CustomTopic]:
        con = self._connect()
        try:
            rows = con.execute(sql, params).fetchall()
        finally:
            con.close()
        return [
            CustomTopic(
                id=row["id"],
                label=row["topic"],
                category=row["category"],
                app_id=row["app_id"],
                is_active=bool(row["is_active"]),
                created_at=row["created_at"],
            )
            for row in rows
        ]

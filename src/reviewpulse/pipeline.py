"""Pipeline orchestration: fetch → classify per day → dedupe → trend → report."""

from __future__ import annotations

import logging
import sqlite3
import threading
import time
from collections.abc import Callable
from datetime import date, datetime

from reviewpulse.aggregate import TopicTable
from reviewpulse.exceptions import (
    AnalysisCancelled,
    FatalInputError,
    PersistenceFailure,
    RunInProgressError,
    ServiceError,
)
from reviewpulse.llm import Classifier, Deduplicator
from reviewpulse.models import AnalysisReport, AppOption, Phase, PipelineStatus, Review, SeedTopic
from reviewpulse.report import build_report
from reviewpulse.sources import ReviewSource, resolve_reviews
from reviewpulse.status import CancelToken, StatusTracker
from reviewpulse.store import CustomTopicStore, ReportStore
from reviewpulse.topics import SEED_TOPICS, merge_with_custom
from reviewpulse.window import date_window, day_key, day_keys, parse_day

logger = logging.getLogger(__name__)

NoticeCallback = Callable[[str], None]


def group_by_day(reviews: list[Review], window: list[str]) -> dict[str, list[Review]]:
    """Bucket reviews by day key, in window order; days without reviews are omitted."""
    buckets: dict[str, list[Review]] = {day: [] for day in window}
    outside = 0
    for review in reviews:
        if review.day in buckets:
            buckets[review.day].append(review)
        else:
            outside += 1
    if outside:
        logger.warning("%d reviews fall outside the analysis window and are not classified", outside)
    return {day: batch for day, batch in buckets.items() if batch}


def load_vocabulary(
    app_id: str,
    custom_topics: CustomTopicStore | None,
    notice: NoticeCallback,
) -> list[SeedTopic]:
    """Seed topics merged with the app's active custom topics."""
    if custom_topics is None:
        return list(SEED_TOPICS)
    try:
        custom = custom_topics.active_seeds(app_id)
    except sqlite3.Error as exc:
        notice(f"Custom topics unavailable ({exc}); using built-in topics only.")
        return list(SEED_TOPICS)
    return merge_with_custom(SEED_TOPICS, custom)


def run_analysis(
    app_id: str,
    target_date: date | datetime | str | None,
    *,
    classifier: Classifier,
    deduplicator: Deduplicator,
    synthetic_source: ReviewSource,
    live_source: ReviewSource | None = None,
    use_live: bool = False,
    apps: dict[str, AppOption] | None = None,
    custom_topics: CustomTopicStore | None = None,
    report_store: ReportStore | None = None,
    tracker: StatusTracker | None = None,
    cancel: CancelToken | None = None,
    on_notice: NoticeCallback | None = None,
    pause_seconds: float = 0.0,
) -> AnalysisReport:
    """Execute one analysis run for *app_id* over the window ending at *target_date*.

    Keeps no state between calls; progress goes to *tracker*, degraded-path
    messages to *on_notice*. Raises :class:`FatalInputError` before touching
    the tracker when the input is unusable, :class:`AnalysisCancelled` when
    *cancel* fires, and re-raises anything unexpected after moving the
    tracker to ``error``.
    """
    if not app_id or not app_id.strip():
        raise FatalInputError("No app selected.")
    if target_date is None:
        raise FatalInputError("No target date selected.")
    days = date_window(target_date)
    window = day_keys(days)
    target = day_key(parse_day(target_date))

    tracker = tracker or StatusTracker()
    cancel = cancel or CancelToken()
    apps = apps or {}

    def _notice(message: str) -> None:
        logger.warning(message)
        if on_notice is not None:
            on_notice(message)

    if tracker.active:
        raise RunInProgressError("An analysis is already running.")

    logger.info("=== analysis start [app=%s, target=%s] ===", app_id, target)
    tracker.update(Phase.FETCHING, "Preparing analysis...", progress=0)
    try:
        report = _run_phases(
            app_id,
            target,
            days,
            window,
            classifier=classifier,
            deduplicator=deduplicator,
            synthetic_source=synthetic_source,
            live_source=live_source if use_live else None,
            app=apps.get(app_id),
            custom_topics=custom_topics,
            report_store=report_store,
            tracker=tracker,
            cancel=cancel,
            notice=_notice,
            pause_seconds=pause_seconds,
        )
    except AnalysisCancelled:
        logger.info("Analysis cancelled [app=%s]", app_id)
        tracker.cancel()
        raise
    except Exception as exc:
        tracker.fail(str(exc) or type(exc).__name__)
        raise

    logger.info("=== analysis done [app=%s] — %d topics ===", app_id, len(report.topics))
    return report


def _run_phases(
    app_id: str,
    target: str,
    days: list[date],
    window: list[str],
    *,
    classifier: Classifier,
    deduplicator: Deduplicator,
    synthetic_source: ReviewSource,
    live_source: ReviewSource | None,
    app: AppOption | None,
    custom_topics: CustomTopicStore | None,
    report_store: ReportStore | None,
    tracker: StatusTracker,
    cancel: CancelToken,
    notice: NoticeCallback,
    pause_seconds: float,
) -> AnalysisReport:
    # ── 1. Vocabulary ─────────────────────────────────────────────────
    vocabulary = load_vocabulary(app_id, custom_topics, notice)
    logger.info("Vocabulary: %d seed + custom topics", len(vocabulary))

    # ── 2. Fetch reviews ──────────────────────────────────────────────
    package = app.package if app else ""
    if live_source is not None:
        if package:
            tracker.update(Phase.FETCHING, "Scraping reviews from Google Play Store...", progress=10)
        else:
            notice(f"No Play Store package known for '{app_id}'; using simulated data.")
            live_source = None

    def _on_day(index: int, total: int, day: str) -> None:
        cancel.raise_if_cancelled()
        tracker.update(
            Phase.FETCHING,
            f"Generating reviews for {day}...",
            progress=5 + index * 25 // max(total, 1),
            current_day=day,
        )

    reviews, used_live = resolve_reviews(
        app_id,
        package,
        days[0],
        days[-1],
        synthetic=synthetic_source,
        live=live_source,
        on_day=_on_day,
        on_notice=notice,
    )
    logger.info("Fetched %d reviews (%s)", len(reviews), "live" if used_live else "simulated")
    cancel.raise_if_cancelled()

    # ── 3. Classify day by day ────────────────────────────────────────
    tracker.update(Phase.ANALYZING, "Analyzing reviews with AI agent...", progress=35)
    by_day = group_by_day(reviews, window)
    table = TopicTable()
    existing: list[str] = []
    new_topics = 0
    skipped: list[str] = []

    for index, (day, batch) in enumerate(by_day.items()):
        cancel.raise_if_cancelled()
        tracker.update(
            Phase.ANALYZING,
            f"Analyzing {len(batch)} reviews for {day}...",
            progress=35 + index * 35 // len(by_day),
            current_day=day,
        )
        try:
            matches = classifier.classify(batch, vocabulary, list(existing))
        except ServiceError as exc:
            logger.warning("[%s] classification skipped (%s): %s", day, exc.reason, exc)
            skipped.append(day)
        else:
            created, flagged = table.fold_matches(day, matches, len(batch))
            existing.extend(created)
            new_topics += flagged
            logger.info(
                "[%s] %d matches, %d new labels (table=%d)",
                day, len(matches), len(created), len(table),
            )
        if pause_seconds:
            time.sleep(pause_seconds)

    if skipped:
        notice(f"Skipped {len(skipped)} of {len(by_day)} days due to classifier errors.")
    cancel.raise_if_cancelled()

    # ── 4. Deduplicate ────────────────────────────────────────────────
    tracker.update(Phase.DEDUPLICATING, "Deduplicating similar topics...", progress=75)
    labels = table.labels()
    if len(labels) > 1:
        before = table.total_attributions()
        try:
            groups = deduplicator.deduplicate(labels)
        except ServiceError as exc:
            notice(f"Topic deduplication unavailable ({exc}); keeping un-merged topics.")
        else:
            removed = table.apply_merges(groups)
            logger.info(
                "Dedupe: %d labels → %d (merged %d variants, attributions %d → %d)",
                len(labels), len(table), removed, before, table.total_attributions(),
            )
    cancel.raise_if_cancelled()

    # ── 5. Assemble + persist ─────────────────────────────────────────
    report = build_report(
        table,
        window,
        app=app_id,
        target_date=target,
        total_reviews=len(reviews),
        new_topics=new_topics,
    )

    if report_store is not None:
        tracker.update(Phase.DEDUPLICATING, "Saving report...", progress=95)
        try:
            report_id = report_store.save(report)
        except (PersistenceFailure, sqlite3.Error) as exc:
            notice(f"Report not saved ({exc}); keeping it in memory only.")
        else:
            report = report.model_copy(update={"id": report_id})

    tracker.complete("Analysis complete!")
    return report


class AnalysisSession:
    """Caller-owned run state: current status, last report and notices.

    Only one run may be active per session at a time.
    """

    def __init__(
        self,
        classifier: Classifier,
        deduplicator: Deduplicator,
        synthetic_source: ReviewSource,
        live_source: ReviewSource | None = None,
        apps: dict[str, AppOption] | None = None,
        custom_topics: CustomTopicStore | None = None,
        report_store: ReportStore | None = None,
        pause_seconds: float = 0.0,
    ) -> None:
        self.tracker = StatusTracker()
        self.report: AnalysisReport | None = None
        self.notices: list[str] = []
        self._classifier = classifier
        self._deduplicator = deduplicator
        self._synthetic = synthetic_source
        self._live = live_source
        self._apps = apps or {}
        self._custom_topics = custom_topics
        self._report_store = report_store
        self._pause = pause_seconds
        self._lock = threading.Lock()
        self._running = False
        self._cancel: CancelToken | None = None

    @property
    def status(self) -> PipelineStatus:
        return self.tracker.status

    def analyze(
        self,
        app_id: str,
        target_date: date | datetime | str | None,
        use_live: bool = False,
    ) -> AnalysisReport | None:
        """Run an analysis; return the report, or None if it failed or was cancelled.

        :class:`FatalInputError` and :class:`RunInProgressError` propagate and
        leave the current status untouched.
        """
        with self._lock:
            if self._running or self.tracker.active:
                raise RunInProgressError("An analysis is already running.")
            self._running = True
            self._cancel = CancelToken()

        try:
            self.report = None
            self.notices = []
            report = run_analysis(
                app_id,
                target_date,
                classifier=self._classifier,
                deduplicator=self._deduplicator,
                synthetic_source=self._synthetic,
                live_source=self._live,
                use_live=use_live,
                apps=self._apps,
                custom_topics=self._custom_topics,
                report_store=self._report_store,
                tracker=self.tracker,
                cancel=self._cancel,
                on_notice=self.notices.append,
                pause_seconds=self._pause,
            )
        except FatalInputError:
            raise
        except AnalysisCancelled:
            return None
        except Exception:
            logger.exception("Analysis failed [app=%s]", app_id)
            return None
        finally:
            with self._lock:
                self._running = False
                self._cancel = None

        self.report = report
        return report

    def cancel(self) -> None:
        with self._lock:
            if self._cancel is not None:
                self._cancel.cancel()

    def reset(self) -> None:
        self.tracker.reset()
        self.report = None
        self.notices = []

    def load_report(self, report: AnalysisReport) -> None:
        """Show a previously stored report."""
        self.tracker.restore("Report loaded from history")
        self.report = report

"""CLI entry-point: ``python -m reviewpulse run`` / ``reports`` / ``topics``."""

from __future__ import annotations

import argparse
import logging
import sys
from datetime import date
from pathlib import Path

from reviewpulse import config
from reviewpulse.catalog import load_apps
from reviewpulse.exceptions import FatalInputError
from reviewpulse.export import write_report
from reviewpulse.llm import TopicClassifier, TopicDeduplicator
from reviewpulse.models import AnalysisReport, Category, PipelineStatus
from reviewpulse.pipeline import AnalysisSession
from reviewpulse.report import CATEGORIES, category_counts, topics_in_category
from reviewpulse.scraper import FirecrawlScraper
from reviewpulse.sources import LiveReviewSource, SyntheticReviewSource
from reviewpulse.store import CustomTopicStore, ReportStore

logger = logging.getLogger(__name__)


def _setup_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )


def _log_status(status: PipelineStatus) -> None:
    logger.info("[%3d%%] %s: %s", status.progress, status.phase.value, status.message)


def _log_report(
    report: AnalysisReport,
    limit: int | None = 10,
    category: Category | None = None,
) -> None:
    counts = category_counts(report)
    logger.info(
        "Report %s — %s @ %s: %d reviews over %d days, %d topics, %d new",
        report.id,
        report.app,
        report.target_date,
        report.total_reviews_analyzed,
        len(report.date_range),
        len(report.topics),
        report.new_topics_discovered,
    )
    logger.info(
        "Topics by category: %d issues, %d requests, %d feedback",
        counts["issue"],
        counts["request"],
        counts["feedback"],
    )
    topics = topics_in_category(report, category)
    if category is not None:
        logger.info("Showing %d %s topics", len(topics), category)
    for topic in topics[:limit]:
        logger.info(
            "  %5d  %-8s %-6s %3d%%  %s",
            topic.total_count,
            topic.category,
            topic.trend,
            topic.trend_percentage,
            topic.topic,
        )


# ── run ────────────────────────────────────────────────────────────────────


def _run(args: argparse.Namespace) -> int:
    apps = load_apps(config.APPS_FILE)
    if apps and args.app not in apps:
        logger.warning("App '%s' is not in the catalog (%s)", args.app, ", ".join(apps))

    if not config.llm_enabled():
        logger.warning("LLM_API_KEY not set — every classifier call will be skipped.")

    db_path = Path(args.db)
    session = AnalysisSession(
        classifier=TopicClassifier(
            config.LLM_API_KEY, config.LLM_MODEL, config.LLM_BASE_URL, config.LLM_TIMEOUT
        ),
        deduplicator=TopicDeduplicator(
            config.LLM_API_KEY, config.LLM_MODEL, config.LLM_BASE_URL, config.LLM_TIMEOUT
        ),
        synthetic_source=SyntheticReviewSource(
            daily_review_count=args.count,
            variance=args.variance,
            pause_seconds=config.GENERATION_PAUSE_SECONDS,
            seed=args.seed,
        ),
        live_source=LiveReviewSource(FirecrawlScraper(config.FIRECRAWL_API_KEY)),
        apps=apps,
        custom_topics=CustomTopicStore(db_path),
        report_store=None if args.no_save else ReportStore(db_path),
        pause_seconds=config.PAUSE_SECONDS,
    )
    session.tracker.subscribe(_log_status)

    try:
        report = session.analyze(args.app, args.date or date.today(), use_live=args.live)
    except FatalInputError as exc:
        logger.error("%s", exc)
        return 2

    for notice in session.notices:
        logger.info("Notice: %s", notice)

    if report is None:
        logger.error("Analysis failed: %s", session.status.message)
        return 1

    _log_report(report, category=args.category)
    write_report(report, Path(args.output_dir))
    return 0


# ── reports ────────────────────────────────────────────────────────────────


def _reports(args: argparse.Namespace) -> int:
    store = ReportStore(Path(args.db))
    if args.reports_command == "list":
        summaries = store.list(limit=args.limit)
        if not summaries:
            logger.info("No saved reports.")
        for s in summaries:
            logger.info(
                "%s  %-10s %s  %5d reviews  %3d new topics",
                s.id, s.app_id, s.target_date, s.total_reviews_analyzed, s.new_topics_discovered,
            )
        return 0

    if args.reports_command == "show":
        report = store.load_full(args.report_id)
        if report is None:
            logger.error("Report not found: %s", args.report_id)
            return 1
        _log_report(report, limit=None, category=args.category)
        if args.export:
            write_report(report, Path(args.output_dir))
        return 0

    if args.reports_command == "delete":
        if not store.delete(args.report_id):
            logger.error("Report not found: %s", args.report_id)
            return 1
        logger.info("Deleted report %s", args.report_id)
        return 0

    return 1


# ── topics ─────────────────────────────────────────────────────────────────


def _topics(args: argparse.Namespace) -> int:
    store = CustomTopicStore(Path(args.db))
    if args.topics_command == "list":
        topics = store.list_all()
        if not topics:
            logger.info("No custom topics.")
        for t in topics:
            logger.info(
                "%s  [%s] %-8s %-10s %s",
                t.id, "on " if t.is_active else "off", t.category, t.app_id or "*", t.label,
            )
        return 0

    if args.topics_command == "add":
        try:
            store.add(args.label, args.category, args.app)
        except ValueError as exc:
            logger.error("%s", exc)
            return 1
        return 0

    if args.topics_command in ("enable", "disable"):
        if not store.set_active(args.topic_id, args.topics_command == "enable"):
            logger.error("Custom topic not found: %s", args.topic_id)
            return 1
        return 0

    if args.topics_command == "delete":
        if not store.delete(args.topic_id):
            logger.error("Custom topic not found: %s", args.topic_id)
            return 1
        return 0

    if args.topics_command == "import":
        store.import_yaml(Path(args.path))
        return 0

    return 1


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="reviewpulse",
        description="Per-topic daily review trends for the 31 days ending at a target date.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging.")
    parser.add_argument(
        "--db",
        default=str(config.DB_PATH),
        help=f"SQLite database for reports and custom topics (default: {config.DB_PATH}).",
    )
    sub = parser.add_subparsers(dest="command")

    # ── run ────────────────────────────────────────────────────────────
    run_parser = sub.add_parser("run", help="Analyse one app for the window ending at --date.")
    run_parser.add_argument("--app", required=True, help="App id from the catalog, e.g. swiggy.")
    run_parser.add_argument(
        "--date",
        type=date.fromisoformat,
        default=None,
        help="Target date YYYY-MM-DD (default: today).",
    )
    run_parser.add_argument(
        "--live",
        action="store_true",
        help="Scrape Play Store reviews first; falls back to simulated data.",
    )
    run_parser.add_argument(
        "--count",
        type=int,
        default=config.DAILY_REVIEW_COUNT,
        help="Simulated reviews per day (default: %(default)s).",
    )
    run_parser.add_argument(
        "--variance",
        type=int,
        default=config.DAILY_VARIANCE,
        help="± day-to-day jitter on --count, floor 20 (default: %(default)s).",
    )
    run_parser.add_argument("--seed", type=int, default=None, help="Seed for simulated data.")
    run_parser.add_argument("--no-save", action="store_true", help="Do not store the report.")
    run_parser.add_argument(
        "--output-dir",
        default=str(config.OUTPUT_DIR),
        help="Where the JSON report is written (default: %(default)s).",
    )
    run_parser.add_argument(
        "--category",
        choices=CATEGORIES,
        default=None,
        help="Only list topics of this category (the JSON report keeps all).",
    )

    # ── reports ────────────────────────────────────────────────────────
    reports_parser = sub.add_parser("reports", help="Browse saved reports.")
    reports_sub = reports_parser.add_subparsers(dest="reports_command", required=True)
    list_parser = reports_sub.add_parser("list", help="List recent reports.")
    list_parser.add_argument("--limit", type=int, default=20)
    show_parser = reports_sub.add_parser("show", help="Show one report.")
    show_parser.add_argument("report_id")
    show_parser.add_argument("--export", action="store_true", help="Also write it as JSON.")
    show_parser.add_argument("--output-dir", default=str(config.OUTPUT_DIR))
    show_parser.add_argument(
        "--category", choices=CATEGORIES, default=None, help="Only list topics of this category."
    )
    delete_parser = reports_sub.add_parser("delete", help="Delete one report.")
    delete_parser.add_argument("report_id")

    # ── topics ─────────────────────────────────────────────────────────
    topics_parser = sub.add_parser("topics", help="Manage custom topics.")
    topics_sub = topics_parser.add_subparsers(dest="topics_command", required=True)
    topics_sub.add_parser("list", help="List custom topics.")
    add_parser = topics_sub.add_parser("add", help="Add a custom topic.")
    add_parser.add_argument("label")
    add_parser.add_argument(
        "--category", choices=CATEGORIES, default="issue"
    )
    add_parser.add_argument("--app", default=None, help="Limit to one app (default: all).")
    for name in ("enable", "disable", "delete"):
        p = topics_sub.add_parser(name, help=f"{name.capitalize()} a custom topic.")
        p.add_argument("topic_id")
    import_parser = topics_sub.add_parser("import", help="Import topics from a YAML file.")
    import_parser.add_argument("path")

    args = parser.parse_args(argv)
    _setup_logging(args.verbose)

    if args.command == "run":
        code = _run(args)
    elif args.command == "reports":
        code = _reports(args)
    elif args.command == "topics":
        code = _topics(args)
    else:
        parser.print_help()
        code = 1
    sys.exit(code)


if __name__ == "__main__":
    main()

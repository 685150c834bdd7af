"""Write finished reports to disk as JSON."""

from __future__ import annotations

import logging
from pathlib import Path

from reviewpulse.models import AnalysisReport

logger = logging.getLogger(__name__)


def write_report(report: AnalysisReport, output_dir: Path) -> Path:
    """Write *report* to ``<output_dir>/<app>/report-<target date>.json`` and return the path.

    Keys use the camelCase names of the report wire format.
    """
    out_dir = output_dir / report.app
    out_dir.mkdir(parents=True, exist_ok=True)
    out_path = out_dir / f"report-{report.target_date}.json"
    out_path.write_text(report.model_dump_json(by_alias=True, indent=2), encoding="utf-8")
    logger.info("Wrote report %s → %s", report.id, out_path)
    return out_path

"""Centralised configuration loaded from environment variables and dotenv."""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

# ── Paths ──────────────────────────────────────────────────────────────────
PROJECT_ROOT = Path(__file__).resolve().parents[2]
APPS_FILE: Path = Path(os.getenv("REVIEWPULSE_APPS_FILE", str(PROJECT_ROOT / "config" / "apps.yml")))
DB_PATH: Path = Path(os.getenv("REVIEWPULSE_DB", str(PROJECT_ROOT / "var" / "reviewpulse.sqlite3")))
OUTPUT_DIR: Path = Path(os.getenv("REVIEWPULSE_OUTPUT_DIR", str(PROJECT_ROOT / "out")))

# ── LLM (classifier + deduplicator) ────────────────────────────────────────
LLM_API_KEY: str = os.getenv("LLM_API_KEY", "")
LLM_MODEL: str = os.getenv("LLM_MODEL", "gpt-4o-mini")
LLM_BASE_URL: str = os.getenv("LLM_BASE_URL", "")  # OpenAI-compatible gateway
LLM_TIMEOUT: float = float(os.getenv("LLM_TIMEOUT", "60"))

# ── Live scraping ──────────────────────────────────────────────────────────
FIRECRAWL_API_KEY: str = os.getenv("FIRECRAWL_API_KEY", "")

# ── Run tuning ─────────────────────────────────────────────────────────────
DAILY_REVIEW_COUNT: int = int(os.getenv("REVIEWPULSE_DAILY_COUNT", "50"))
DAILY_VARIANCE: int = int(os.getenv("REVIEWPULSE_DAILY_VARIANCE", "15"))
PAUSE_SECONDS: float = float(os.getenv("REVIEWPULSE_PAUSE_SECONDS", "0.1"))
GENERATION_PAUSE_SECONDS: float = float(os.getenv("REVIEWPULSE_GENERATION_PAUSE", "0.03"))


def llm_enabled() -> bool:
    return bool(LLM_API_KEY)


def live_enabled() -> bool:
    return bool(FIRECRAWL_API_KEY)

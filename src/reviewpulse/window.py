"""The fixed 31-day analysis window (T-30..T)."""

from __future__ import annotations

from datetime import date, datetime, timedelta

from reviewpulse.exceptions import FatalInputError

WINDOW_DAYS = 31
DAY_FORMAT = "%Y-%m-%d"


def parse_day(value: date | datetime | str) -> date:
    """Coerce *value* to a calendar day; the time component is dropped."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return datetime.strptime(value.strip()[:10], DAY_FORMAT).date()
        except ValueError as exc:
            raise FatalInputError(f"Invalid target date: {value!r}") from exc
    raise FatalInputError(f"Invalid target date: {value!r}")


def date_window(target: date | datetime | str) -> list[date]:
    """Return the 31 days ending at (and including) *target*, oldest first."""
    end = parse_day(target)
    start = end - timedelta(days=WINDOW_DAYS - 1)
    return [start + timedelta(days=offset) for offset in range(WINDOW_DAYS)]


def day_key(day: date) -> str:
    return day.strftime(DAY_FORMAT)


def day_keys(days: list[date]) -> list[str]:
    return [day_key(d) for d in days]


def days_between(start: date, end: date) -> list[date]:
    """Inclusive list of days from *start* to *end*."""
    if end < start:
        return []
    return [start + timedelta(days=offset) for offset in range((end - start).days + 1)]

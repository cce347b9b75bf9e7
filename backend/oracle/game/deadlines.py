"""Deadline resolution for natural-language deadline fragments.

Patterns are tried in priority order and the first successful one wins:

1. Relative spans: "within 30 days", "within 2 weeks", "within 6 months".
2. Period ends: "end of year", "end of month", "end of quarter".
3. Calendar dates: "by March 2026", "2026-03-15", "03/15/2026", "March 15, 2026".

All arithmetic is anchored on the ``now`` argument; the wall clock is never read.
"""

import calendar
import logging
import re
from datetime import datetime, timedelta
from typing import Callable

from oracle.game.exceptions import ParseError

logger = logging.getLogger(__name__)

MONTHS: dict[str, int] = {
    "january": 1, "february": 2, "march": 3, "april": 4, "may": 5, "june": 6,
    "july": 7, "august": 8, "september": 9, "october": 10, "november": 11, "december": 12,
    "jan": 1, "feb": 2, "mar": 3, "apr": 4, "jun": 6, "jul": 7, "aug": 8,
    "sep": 9, "sept": 9, "oct": 10, "nov": 11, "dec": 12,
}

WITHIN_PATTERN = re.compile(r"\bwithin\s+(\d+)\s+(day|week|month|year)s?\b", re.IGNORECASE)
END_OF_PATTERN = re.compile(r"\bend\s+of\s+(?:the\s+)?(year|month|quarter)\b", re.IGNORECASE)
MONTH_YEAR_PATTERN = re.compile(r"\b(?:by\s+)?([a-z]+)\s+(\d{4})\b", re.IGNORECASE)
ISO_DATE_PATTERN = re.compile(r"\b(\d{4})-(\d{1,2})-(\d{1,2})\b")
US_DATE_PATTERN = re.compile(r"\b(\d{1,2})/(\d{1,2})/(\d{4})\b")
MONTH_DAY_YEAR_PATTERN = re.compile(r"\b([a-z]+)\.?\s+(\d{1,2})(?:st|nd|rd|th)?,?\s+(\d{4})\b", re.IGNORECASE)
DAY_MONTH_YEAR_PATTERN = re.compile(r"\b(\d{1,2})(?:st|nd|rd|th)?\s+([a-z]+),?\s+(\d{4})\b", re.IGNORECASE)


# ============================================================================
# Calendar helpers
# ============================================================================


def add_months(moment: datetime, months: int) -> datetime:
    """Calendar-month add, clamping the day to the target month's length."""
    month_index = moment.month - 1 + months
    year = moment.year + month_index // 12
    month = month_index % 12 + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def end_of_day(moment: datetime) -> datetime:
    return moment.replace(hour=23, minute=59, second=59, microsecond=0)


def _last_day(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def _calendar_date(now: datetime, year: int, month: int, day: int) -> datetime:
    return datetime(year, month, day, tzinfo=now.tzinfo)


# ============================================================================
# Pattern resolvers (each returns None when the pattern is absent)
# ============================================================================


def _resolve_within(text: str, now: datetime) -> datetime | None:
    match = WITHIN_PATTERN.search(text)
    if not match:
        return None

    amount = int(match.group(1))
    unit = match.group(2).lower()

    if unit == "day":
        return now + timedelta(days=amount)
    if unit == "week":
        return now + timedelta(days=amount * 7)
    if unit == "month":
        return add_months(now, amount)
    return add_months(now, amount * 12)


def _resolve_end_of(text: str, now: datetime) -> datetime | None:
    match = END_OF_PATTERN.search(text)
    if not match:
        return None

    period = match.group(1).lower()

    if period == "year":
        return end_of_day(now.replace(month=12, day=31))
    if period == "month":
        return end_of_day(now.replace(day=_last_day(now.year, now.month)))

    quarter_end = ((now.month - 1) // 3 + 1) * 3
    return end_of_day(now.replace(month=quarter_end, day=_last_day(now.year, quarter_end)))


def _resolve_calendar(text: str, now: datetime) -> datetime | None:
    for match in MONTH_DAY_YEAR_PATTERN.finditer(text):
        month = MONTHS.get(match.group(1).lower())
        if month is None:
            continue
        try:
            return _calendar_date(now, int(match.group(3)), month, int(match.group(2)))
        except ValueError:
            continue

    for match in DAY_MONTH_YEAR_PATTERN.finditer(text):
        month = MONTHS.get(match.group(2).lower())
        if month is None:
            continue
        try:
            return _calendar_date(now, int(match.group(3)), month, int(match.group(1)))
        except ValueError:
            continue

    for match in MONTH_YEAR_PATTERN.finditer(text):
        month = MONTHS.get(match.group(1).lower())
        if month is not None:
            return _calendar_date(now, int(match.group(2)), month, 1)

    for match in ISO_DATE_PATTERN.finditer(text):
        year, month, day = (int(g) for g in match.groups())
        try:
            return _calendar_date(now, year, month, day)
        except ValueError:
            continue

    for match in US_DATE_PATTERN.finditer(text):
        month, day, year = (int(g) for g in match.groups())
        try:
            return _calendar_date(now, year, month, day)
        except ValueError:
            continue

    return None


RESOLVERS: tuple[Callable[[str, datetime], datetime | None], ...] = (
    _resolve_within,
    _resolve_end_of,
    _resolve_calendar,
)


# ============================================================================
# Public API
# ============================================================================


def resolve(fragment: str, now: datetime) -> datetime:
    """Resolve a deadline fragment against the reference clock ``now``.

    Raises:
        ParseError: If no recognized pattern matches, or the matched date is
            outside the representable range.
    """
    text = (fragment or "").strip()
    if not text:
        raise ParseError("Empty deadline fragment", fragment=fragment)

    for resolver in RESOLVERS:
        try:
            deadline = resolver(text, now)
        except (ValueError, OverflowError) as e:
            # Recognized pattern, but the date falls outside datetime's range
            raise ParseError(f"Deadline out of range: {text}", fragment=fragment) from e
        if deadline is not None:
            logger.debug(f"Resolved deadline '{text}' -> {deadline.isoformat()} ({resolver.__name__})")
            return deadline

    raise ParseError(f"Could not parse deadline: {text}", fragment=fragment)

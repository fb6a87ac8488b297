"""Calendar-date normalization and arithmetic shared by the billing engine."""

from __future__ import annotations

import logging
import re
from calendar import monthrange
from datetime import date, datetime, timedelta
from typing import Any, Optional

LOGGER = logging.getLogger(__name__)

ISO_DATE_PATTERN = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})(?:[T ].*)?$")
BRAZILIAN_DATE_PATTERN = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")


class DateParseError(ValueError):
    """Raised when a textual date matches none of the supported formats."""


def parse_calendar_date(value: Any) -> date:
    """Return a calendar date from ``DD/MM/YYYY``, ``YYYY-MM-DD`` or date objects.

    ISO values may carry a time suffix (``2024-05-10T13:00:00Z``), as returned
    by timestamp columns; only the calendar part is kept.
    """

    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        raise DateParseError(f"Unsupported date value: {value!r}")

    text = value.strip()
    match = ISO_DATE_PATTERN.match(text)
    if match:
        year, month, day = (int(part) for part in match.groups())
    else:
        match = BRAZILIAN_DATE_PATTERN.match(text)
        if not match:
            raise DateParseError(f"Invalid date format, expected DD/MM/YYYY or YYYY-MM-DD: {value!r}")
        day, month, year = (int(part) for part in match.groups())

    try:
        return date(year, month, day)
    except ValueError as exc:
        raise DateParseError(f"Invalid calendar date: {value!r}") from exc


def normalize_date(value: Any, default: Optional[date] = None) -> Optional[date]:
    """Parse ``value`` leniently, returning ``default`` for empty or malformed input."""

    if value is None or (isinstance(value, str) and not value.strip()):
        return default
    try:
        return parse_calendar_date(value)
    except DateParseError:
        LOGGER.warning("Malformed date %r; falling back to %s", value, default)
        return default


def clamp_day(year: int, month: int, day: int) -> date:
    """Build a date, pulling ``day`` back to the last day of short months."""

    _, last_day = monthrange(year, month)
    return date(year, month, min(max(day, 1), last_day))


def add_days(value: date, days: int) -> date:
    return value + timedelta(days=days)


def add_months(value: date, months: int) -> date:
    index = value.year * 12 + (value.month - 1) + months
    year, month_index = divmod(index, 12)
    return clamp_day(year, month_index + 1, value.day)


def first_day_of_month(value: date) -> date:
    return value.replace(day=1)


def first_day_of_next_month(value: date) -> date:
    return add_months(first_day_of_month(value), 1)


def anniversary_in_year(anchor: date, year: int) -> date:
    """Month/day of ``anchor`` in ``year`` (29 February becomes the 28th)."""

    return clamp_day(year, anchor.month, anchor.day)


def months_between(from_year: int, from_month: int, to_year: int, to_month: int) -> int:
    return (to_year - from_year) * 12 + (to_month - from_month)


def format_br_date(value: date) -> str:
    return value.strftime("%d/%m/%Y")


def format_month_label(value: date) -> str:
    return value.strftime("%m/%Y")

"""
Date normalization for task metadata.

Stored dates use two canonical shapes: ``YYYY-MM-DD`` and
``YYYY-MM-DD HH:mm``. Older files carry ISO ``T``-separated times and
two-digit-year day-first dates; those are rewritten into the canonical
shape. Anything else is passed through untouched so display code never
crashes on a hand-edited value.
"""

from __future__ import annotations

import logging
import re
from datetime import date, datetime, timezone
from typing import Any

logger = logging.getLogger(__name__)

_DATE_ONLY = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_DATE_TIME = re.compile(r"^(\d{4}-\d{2}-\d{2})[T ](\d{2}:\d{2})$")
# DD-MM-YY, DD/MM/YY, DD.MM.YY (same separator twice)
_LEGACY_SHORT = re.compile(r"^(\d{2})([-/.])(\d{2})\2(\d{2})$")
_STORED = re.compile(r"^(\d{4})-(\d{2})-(\d{2})(?:[T ](\d{2}):(\d{2}))?$")


def normalize_date(value: Any) -> str:
    """
    Normalize a raw metadata date into its canonical string form.

    Never raises. Unrecognized input is returned as-is (stringified) and
    logged as a warning.

    Args:
        value: Raw scalar from the metadata block (usually a string)

    Returns:
        Canonical date string, or the original value when unrecognized

    Examples:
        >>> normalize_date("05-03-26")
        '2026-03-05'
        >>> normalize_date("2026-02-09T16:50")
        '2026-02-09 16:50'
        >>> normalize_date("next tuesday")
        'next tuesday'
    """
    if value is None:
        return ""
    if isinstance(value, datetime):
        return value.strftime("%Y-%m-%d %H:%M")
    if isinstance(value, date):
        return value.isoformat()

    raw = str(value)
    text = raw.strip()
    if not text:
        return ""

    if _DATE_ONLY.match(text):
        return text

    if match := _DATE_TIME.match(text):
        return f"{match.group(1)} {match.group(2)}"

    if match := _LEGACY_SHORT.match(text):
        day, _, month, year = match.groups()
        try:
            legacy = date(2000 + int(year), int(month), int(day))
        except ValueError:
            logger.warning("Unparseable date %r, keeping original value", raw)
            return raw
        return legacy.isoformat()

    logger.warning("Unparseable date %r, keeping original value", raw)
    return raw


def parse_stored_date(value: str | None) -> datetime | None:
    """
    Parse a canonical stored date into a UTC datetime.

    Returns None for empty strings, unrecognized shapes and impossible
    calendar values (month 13, February 30th).
    """
    if not value:
        return None
    match = _STORED.match(value.strip())
    if not match:
        return None
    year, month, day, hour, minute = match.groups()
    try:
        return datetime(
            int(year),
            int(month),
            int(day),
            int(hour or 0),
            int(minute or 0),
            tzinfo=timezone.utc,
        )
    except ValueError:
        return None


def now_stamp() -> str:
    """Current local time in the canonical ``YYYY-MM-DD HH:mm`` form."""
    return datetime.now().strftime("%Y-%m-%d %H:%M")

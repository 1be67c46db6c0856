"""
Market Valuer — Sold-Date Parsing

Accepted forms (the "Sold" prefix is optional):
    "Sold 3 days ago" / "Sold 5 hours ago"   -> now minus N
    "Sold Aug 15" / "Sold  Aug 15, 2024"     -> month/day, current year unless given;
                                                rolled back one year if in the future
    "Sold 2023-08-15"                         -> explicit date

All returned datetimes are timezone-aware UTC.
"""

from __future__ import annotations

import re
from datetime import datetime, timedelta, timezone

_RELATIVE_RE = re.compile(r"(\d+)\s*(day|hour|minute)s?\s+ago", re.IGNORECASE)
_ISO_RE = re.compile(r"(\d{4})-(\d{1,2})-(\d{1,2})")
_MONTH_DAY_RE = re.compile(r"\b([A-Za-z]{3})[a-z]*\.?\s+(\d{1,2})(?:,\s*(\d{4}))?\b")

_MONTHS = ("jan", "feb", "mar", "apr", "may", "jun", "jul", "aug", "sep", "oct", "nov", "dec")

_RELATIVE_UNITS = {"day": "days", "hour": "hours", "minute": "minutes"}


def _month_index(token: str) -> int | None:
    lowered = token.lower()
    for i, month in enumerate(_MONTHS):
        if lowered.startswith(month):
            return i + 1
    return None


def parse_sold_date(text: str | None, now: datetime | None = None) -> datetime | None:
    """
    Parse a sold-date caption.

    Args:
        text: Caption text, e.g. "Sold 3 days ago".
        now: Reference time (defaults to current UTC time).

    Returns:
        Parsed UTC datetime, or None when the text matches no known form.
    """
    if not text:
        return None

    reference = now or datetime.now(timezone.utc)
    if reference.tzinfo is None:
        reference = reference.replace(tzinfo=timezone.utc)

    match = _RELATIVE_RE.search(text)
    if match:
        amount = int(match.group(1))
        unit = _RELATIVE_UNITS[match.group(2).lower()]
        return reference - timedelta(**{unit: amount})

    match = _ISO_RE.search(text)
    if match:
        try:
            return datetime(
                int(match.group(1)), int(match.group(2)), int(match.group(3)), tzinfo=timezone.utc
            )
        except ValueError:
            return None

    for match in _MONTH_DAY_RE.finditer(text):
        month = _month_index(match.group(1))
        if month is None:
            continue
        day = int(match.group(2))
        explicit_year = match.group(3)
        year = int(explicit_year) if explicit_year else reference.year
        try:
            sold = datetime(year, month, day, tzinfo=timezone.utc)
        except ValueError:
            return None
        if not explicit_year and sold > reference:
            try:
                sold = sold.replace(year=year - 1)
            except ValueError:  # Feb 29
                return None
        return sold

    return None

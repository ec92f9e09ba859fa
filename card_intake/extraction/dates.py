"""
Date of birth normalization.

Card text writes dates every which way ("03/04/1987", "March 4th, 1987",
"4-3-87").  :func:`normalize_date` brings the common shapes to ``YYYY-MM-DD``
and hands back anything it cannot read exactly as it came in, so a caller can
still show the raw value to the user.
"""

from __future__ import annotations

import logging
import re
from datetime import date, datetime
from typing import Optional

from dateutil import parser as dateutil_parser

CANONICAL_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")

NUMERIC_DATE_PATTERN = re.compile(r"\b(\d{1,2})[/\-](\d{1,2})[/\-](\d{4}|\d{2})\b")
MONTH_NAME_DATE_PATTERN = re.compile(
    r"\b([A-Za-z]{3,})\.?\s+(\d{1,2})(?:st|nd|rd|th)?,?\s+(\d{4})\b"
)

MONTH_NAMES = [
    "january",
    "february",
    "march",
    "april",
    "may",
    "june",
    "july",
    "august",
    "september",
    "october",
    "november",
    "december",
]

# Two distinct defaults; a component that is missing from the text takes the
# default's value, so the two parses disagree.
_CHECK_DEFAULTS = (datetime(2000, 1, 1), datetime(1999, 12, 28))


def is_canonical_date(value: str) -> bool:
    return bool(CANONICAL_DATE_PATTERN.match(value))


def expand_two_digit_year(year: str) -> int:
    """``"87"`` -> 1987, ``"05"`` -> 2005 (values above 50 are 1900s)."""
    if len(year) == 2:
        two_digit_year = int(year)
        return 1900 + two_digit_year if two_digit_year > 50 else 2000 + two_digit_year
    return int(year)


def month_from_name(name: str) -> Optional[int]:
    """Return the month number for a full or abbreviated month name."""
    lowered = name.lower().rstrip(".")
    if len(lowered) < 3:
        return None
    for index, month in enumerate(MONTH_NAMES):
        if month.startswith(lowered):
            return index + 1
    return None


def _format(year: int, month: int, day: int) -> Optional[str]:
    try:
        return date(year, month, day).isoformat()
    except ValueError:
        return None


def _parse_numeric(value: str) -> Optional[str]:
    match = NUMERIC_DATE_PATTERN.search(value)
    if not match:
        return None
    month, day, year = match.groups()
    return _format(expand_two_digit_year(year), int(month), int(day))


def _parse_month_name(value: str) -> Optional[str]:
    for match in MONTH_NAME_DATE_PATTERN.finditer(value):
        month = month_from_name(match.group(1))
        if month is None:
            continue
        return _format(int(match.group(3)), month, int(match.group(2)))
    return None


class _BirthDateParserInfo(dateutil_parser.parserinfo):
    """dateutil settings that read two-digit years like the numeric format."""

    def convertyear(self, year, century_specified=False):
        if year < 100 and not century_specified:
            return expand_two_digit_year(f"{year:02d}")
        return super().convertyear(year, century_specified)


_PARSER_INFO = _BirthDateParserInfo()


def _parse_generic(value: str) -> Optional[str]:
    parsed = []
    for default in _CHECK_DEFAULTS:
        try:
            parsed.append(
                dateutil_parser.parse(
                    value, parserinfo=_PARSER_INFO, default=default
                ).date()
            )
        except (ValueError, OverflowError):
            return None
    if parsed[0] != parsed[1]:
        logging.debug("Generic date parse relied on defaults, rejecting")
        return None
    return parsed[0].isoformat()


def normalize_date(raw: str) -> str:
    """Return *raw* as ``YYYY-MM-DD``, or unchanged if no format fits.

    Formats are tried in a fixed order: numeric month/day/year, month name,
    already canonical, then a strict generic parse.
    """
    value = raw.strip()
    if not value:
        return raw

    normalized = _parse_numeric(value)
    if normalized is None:
        normalized = _parse_month_name(value)
    if normalized is None and is_canonical_date(value):
        return value
    if normalized is None:
        normalized = _parse_generic(value)

    if normalized is None:
        logging.debug("Date left unparsed")
        return raw
    return normalized

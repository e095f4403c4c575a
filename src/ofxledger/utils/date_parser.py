"""Date parsing utilities."""

import re
from datetime import date
from dateutil import parser as date_parser

# YYYYMMDD, optionally followed by HHMMSS[.XXX] and a [offset:TZ] suffix
_OFX_DATE_RE = re.compile(r"^(\d{4})(\d{2})(\d{2})(?:\d{2,6}(?:\.\d+)?)?$")
_TZ_SUFFIX_RE = re.compile(r"\[.*?\]\s*$")


def parse_date(date_str: str) -> date:
    """Parse a statement date string into a calendar date.

    Statement dates are day-granularity, so any time of day and timezone
    information is discarded.

    Supports:
    - OFX dates: "20240105", "20240105120000", "20240105120000.000[-3:BRT]"
    - ISO dates: "2024-01-05", "2024-01-05T10:00:00"
    - Other formats understood by dateutil: "01/05/2024", "Jan 5, 2024"

    Args:
        date_str: Date string

    Returns:
        Date object

    Raises:
        ValueError: If date string cannot be parsed
    """
    if date_str is None or not date_str.strip():
        raise ValueError("Empty date string")

    cleaned = _TZ_SUFFIX_RE.sub("", date_str.strip()).strip()

    match = _OFX_DATE_RE.match(cleaned)
    if match:
        year, month, day = (int(part) for part in match.groups())
        try:
            return date(year, month, day)
        except ValueError as e:
            raise ValueError(f"Could not parse date '{date_str}': {e}")

    try:
        dt = date_parser.parse(cleaned)
        return dt.date()
    except (ValueError, TypeError, OverflowError) as e:
        raise ValueError(f"Could not parse date '{date_str}': {e}")

"""Date parsing and week labelling shared by the parsers, stats and reports."""

import logging
import re
from datetime import date, datetime, timedelta
from typing import Optional, Tuple, Union

from dateutil import parser as date_parser

logger = logging.getLogger(__name__)

# OFW exports write timestamps like "01/15/2025 at 03:45 PM"
_OFW_DATE_RE = re.compile(
    r"^(\d{1,2})/(\d{1,2})/(\d{4})\s+(\d{1,2}):(\d{2})\s*([AP]M)$", re.IGNORECASE
)
_ISO_RANGE_RE = re.compile(r"(\d{4}-\d{2}-\d{2})\s*[\u2013-]\s*(\d{4}-\d{2}-\d{2})")
_WEEK_LABEL_RE = re.compile(
    r"^([A-Za-z]{3})\s+(\d{1,2})\s*-\s*([A-Za-z]{3})\s+(\d{1,2}),\s*(\d{4})$"
)
_MONTHS = {
    "jan": 1, "feb": 2, "mar": 3, "apr": 4, "may": 5, "jun": 6,
    "jul": 7, "aug": 8, "sep": 9, "oct": 10, "nov": 11, "dec": 12,
}


def parse_date(value: str) -> Optional[datetime]:
    """Parse an export timestamp into a naive local datetime.

    The OFW "MM/DD/YYYY at hh:mm AM" form is tried first, then a generic
    dateutil parse. Returns None when neither understands the value.
    """
    text = str(value).replace(" at ", " ").strip()
    if not text:
        return None

    match = _OFW_DATE_RE.match(text)
    if match:
        month, day, year, hour, minute = (int(g) for g in match.groups()[:5])
        meridiem = match.group(6).upper()
        if meridiem == "AM" and hour == 12:
            hour = 0
        elif meridiem == "PM" and hour != 12:
            hour += 12
        try:
            return datetime(year, month, day, hour, minute)
        except ValueError:
            logger.debug("Out-of-range OFW timestamp: %r", value)
            return None

    try:
        parsed = date_parser.parse(text)
    except (ValueError, OverflowError) as e:
        logger.debug("Could not parse timestamp %r: %s", value, e)
        return None

    # Keep everything naive local so subtraction never mixes aware/naive
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


def week_start(value: Union[datetime, date]) -> date:
    """Return the Sunday that starts the week containing *value*."""
    day = value.date() if isinstance(value, datetime) else value
    return day - timedelta(days=(day.weekday() + 1) % 7)


def week_label(value: Union[datetime, date]) -> str:
    """Human-readable Sunday-Saturday label, e.g. "Jan 05 - Jan 11, 2025"."""
    start = week_start(value)
    end = start + timedelta(days=6)
    return "{} {:02d} - {} {:02d}, {}".format(
        start.strftime("%b"), start.day, end.strftime("%b"), end.day, end.year
    )


def parse_week_label(label: str) -> Tuple[str, str]:
    """Convert a week label back to (start ISO date, end ISO date).

    Accepts the labels produced by week_label() as well as plain ISO ranges.
    Returns ("", "") for anything else.
    """
    if not label or not isinstance(label, str):
        return "", ""

    iso = _ISO_RANGE_RE.search(label)
    if iso:
        return iso.group(1), iso.group(2)

    match = _WEEK_LABEL_RE.match(label.strip())
    if not match:
        return "", ""
    start_mon = _MONTHS.get(match.group(1).lower())
    end_mon = _MONTHS.get(match.group(3).lower())
    if not start_mon or not end_mon:
        return "", ""
    end_year = int(match.group(5))
    # A week can straddle New Year
    start_year = end_year - 1 if start_mon == 12 and end_mon == 1 else end_year
    try:
        start = date(start_year, start_mon, int(match.group(2)))
        end = date(end_year, end_mon, int(match.group(4)))
    except ValueError:
        return "", ""
    return start.isoformat(), end.isoformat()


def format_date(value) -> str:
    """Render a timestamp for reports; strings such as "Never" pass through."""
    if isinstance(value, datetime):
        return value.strftime("%a %b %d %Y %H:%M:%S")
    if value is None:
        return ""
    return str(value)

from datetime import datetime, timedelta
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dateutil import parser

# fixed default so a missing year/day never leaks the current date in
_DEFAULT = datetime(2000, 1, 1)


def parse_event_date(date_text: str):
    """Parse "2025-06-01" or "January 15, 2025" into a date, or None."""
    if not isinstance(date_text, str) or not date_text.strip():
        return None
    try:
        return parser.parse(date_text.strip(), default=_DEFAULT).date()
    except (ValueError, OverflowError):
        return None


def parse_event_datetime(date_text: str, time_text: str, tz_name: str = "UTC"):
    """
    Combine an event date and a slot label ("2:00 PM") into a naive UTC
    datetime. Returns None when either part cannot be parsed.
    """
    day = parse_event_date(date_text)
    if day is None or not isinstance(time_text, str) or not time_text.strip():
        return None
    try:
        clock = parser.parse(time_text.strip(), default=_DEFAULT)
    except (ValueError, OverflowError):
        return None
    try:
        tz = ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError):
        return None

    local = datetime(day.year, day.month, day.day, clock.hour, clock.minute, tzinfo=tz)
    offset = local.utcoffset() or timedelta(0)
    return (local - offset).replace(tzinfo=None)


def hours_until(event_at: datetime, now: datetime) -> float:
    return (event_at - now).total_seconds() / 3600

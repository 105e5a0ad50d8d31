"""
Calendar Date Helpers
Calendar dates are plain ``datetime.date`` values (no time of day, no timezone).
Timestamps are stored as naive UTC datetimes and only converted to a local
calendar date or clock time at the presentation boundary.
"""

import calendar
import re
from typing import Iterator, Optional, Tuple, Union
from datetime import datetime, date, timedelta, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from exceptions import DataFormatError


DATE_FORMAT = "%Y-%m-%d"
_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")

DateLike = Union[date, str]


def parse_calendar_date(value: DateLike) -> date:
    """
    Parse a ``YYYY-MM-DD`` string (or pass through a date)

    Raises:
        DataFormatError: if the value is not a valid calendar date
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        if _DATE_PATTERN.match(text):
            try:
                return date.fromisoformat(text)
            except ValueError:
                pass
    raise DataFormatError(f"Invalid calendar date: {value!r}")


def format_calendar_date(value: date) -> str:
    return value.strftime(DATE_FORMAT)


def iter_days(start: date, end: date) -> Iterator[date]:
    """Yield every date from start to end inclusive (nothing if start > end)"""
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def month_bounds(year: int, month: int) -> Tuple[date, date]:
    """First and last day of a calendar month"""
    try:
        last_day = calendar.monthrange(year, month)[1]
        return date(year, month, 1), date(year, month, last_day)
    except ValueError as e:
        raise DataFormatError(f"Invalid month: {year}-{month}") from e


def clamp_window(
    start: date,
    end: date,
    today: date
) -> Optional[Tuple[date, date]]:
    """
    Clamp a window so it never reaches past today.
    Returns None when the whole window lies in the future.
    """
    if start > today:
        return None
    return start, min(end, today)


def _zone(tz_name: str) -> ZoneInfo:
    try:
        return ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise DataFormatError(f"Unknown timezone: {tz_name}") from e


def utcnow() -> datetime:
    """Current time as a naive UTC datetime (the storage convention)"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _as_utc(ts: datetime) -> datetime:
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts


def today_in(tz_name: str = "UTC") -> date:
    return datetime.now(_zone(tz_name)).date()


def to_local_date(ts: datetime, tz_name: str = "UTC") -> date:
    """Calendar date a stored timestamp falls on in the given timezone"""
    return _as_utc(ts).astimezone(_zone(tz_name)).date()


def format_time_of_day(ts: datetime, tz_name: str = "UTC") -> str:
    """Clock time for display, e.g. ``9:05 AM``"""
    local = _as_utc(ts).astimezone(_zone(tz_name))
    return local.strftime("%I:%M %p").lstrip("0")

"""
Date helpers for all-day calendar events.

Google Calendar stores all-day events with an exclusive end date: a one-day
event on 2025-12-25 has start.date='2025-12-25' and end.date='2025-12-26'.
Vacation requests use inclusive end dates, so the same event is stored as
startDate='2025-12-25', endDate='2025-12-25'. Every value read from the
calendar goes through normalize_all_day_event(); every value written goes
through to_exclusive_range().
"""
import re
from datetime import date, datetime, timedelta
from typing import Dict, Mapping, Optional, Tuple, Union

DATE_FORMAT = '%Y-%m-%d'
_DATE_PATTERN = re.compile(r'^\d{4}-\d{2}-\d{2}$')


def _parse(value: str) -> Optional[date]:
    if not isinstance(value, str) or not _DATE_PATTERN.match(value):
        return None
    try:
        return datetime.strptime(value, DATE_FORMAT).date()
    except ValueError:
        return None


def is_valid_date(value: Optional[str]) -> bool:
    """Return True if value is a real calendar date in YYYY-MM-DD form."""
    return _parse(value) is not None


def _shift(value: str, days: int) -> str:
    parsed = _parse(value)
    if parsed is None:
        return value
    return (parsed + timedelta(days=days)).strftime(DATE_FORMAT)


def convert_exclusive_to_inclusive(end_date_exclusive: str) -> str:
    """
    Convert an exclusive end date to the inclusive end date one day earlier.

    Malformed input is returned unchanged.

    Args:
        end_date_exclusive: End date in YYYY-MM-DD format (exclusive)

    Returns:
        End date in YYYY-MM-DD format (inclusive)
    """
    return _shift(end_date_exclusive, -1)


def convert_inclusive_to_exclusive(end_date_inclusive: str) -> str:
    """
    Convert an inclusive end date to the exclusive end date one day later.

    Malformed input is returned unchanged.

    Args:
        end_date_inclusive: End date in YYYY-MM-DD format (inclusive)

    Returns:
        End date in YYYY-MM-DD format (exclusive)
    """
    return _shift(end_date_inclusive, 1)


def to_exclusive_range(start_date: str, end_date_inclusive: str) -> Tuple[str, str]:
    """Return the (start, exclusive end) pair written to the calendar."""
    return start_date, convert_inclusive_to_exclusive(end_date_inclusive)


def normalize_all_day_event(start_date: str, end_date_exclusive: Optional[str]) -> Dict[str, str]:
    """
    Normalize an all-day event read from the calendar to inclusive dates.

    Args:
        start_date: Start date in YYYY-MM-DD format
        end_date_exclusive: End date in YYYY-MM-DD format (exclusive)

    Returns:
        Dict with inclusive 'startDate' and 'endDate'
    """
    # Missing end or end == start is a single-day event
    if not end_date_exclusive or end_date_exclusive == start_date:
        return {'startDate': start_date, 'endDate': start_date}

    return {
        'startDate': start_date,
        'endDate': convert_exclusive_to_inclusive(end_date_exclusive)
    }


def is_day_in_all_day_event_range(
    day: Union[date, datetime],
    start_date: str,
    end_date: str
) -> bool:
    """
    Check whether a calendar day falls within an inclusive event range.

    Compares local calendar-day strings rather than timestamps so DST
    transitions cannot shift the result.

    Args:
        day: Day to check (local date or datetime)
        start_date: Start date in YYYY-MM-DD format (inclusive)
        end_date: End date in YYYY-MM-DD format (inclusive)

    Returns:
        True if the day is within the range
    """
    day_str = day.strftime(DATE_FORMAT)
    return start_date <= day_str <= end_date


def is_all_day_event(event_start: Optional[Mapping[str, str]]) -> bool:
    """Return True if the event start carries a bare date and no time."""
    if not event_start:
        return False
    return bool(event_start.get('date')) and not event_start.get('dateTime')

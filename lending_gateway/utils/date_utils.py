"""Civil-calendar date utilities (no timezone arithmetic anywhere)"""

import calendar
import re
from datetime import date, datetime
from typing import Optional, Union

from dateutil.relativedelta import relativedelta

from lending_gateway.domain.exceptions import InvalidDateFormat

DateLike = Union[date, datetime, str]

_DATE_KEY_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})(?:[ T].*)?$")


def to_date_key(value) -> Optional[str]:
    """
    Normalise a date-like value to a ``YYYY-MM-DD`` key.

    Datetimes keep their own civil components; an aware datetime is never
    shifted to UTC. Accepted strings are ``YYYY-MM-DD``, MySQL style
    ``YYYY-MM-DD HH:MM:SS`` and ISO ``YYYY-MM-DDTHH:MM:SS[...]``.

    Returns None for anything that cannot be read as a calendar date.
    """
    if value is None:
        return None

    if isinstance(value, datetime):
        return value.date().isoformat()

    if isinstance(value, date):
        return value.isoformat()

    if isinstance(value, str):
        match = _DATE_KEY_RE.match(value.strip())
        if not match:
            return None
        year, month, day = (int(part) for part in match.groups())
        try:
            return date(year, month, day).isoformat()
        except ValueError:
            return None

    return None


def parse_date_key(value: DateLike) -> date:
    """Convert a date-like value to a civil date, raising InvalidDateFormat"""
    key = to_date_key(value)
    if key is None:
        raise InvalidDateFormat(f"Unparseable date: {value!r}")
    return date.fromisoformat(key)


def today_key() -> str:
    """Today's local calendar date. Boundary use only, never inside calculations."""
    return date.today().isoformat()


def days_between_inclusive(start: DateLike, end: DateLike) -> int:
    """
    Count calendar days from start to end with both ends included.

    The same day counts as 1. The count is symmetric: swapping the
    arguments gives the same magnitude.
    """
    start_date = parse_date_key(start)
    end_date = parse_date_key(end)
    return abs((end_date - start_date).days) + 1


def _clamped(year: int, month: int, target_day: int) -> date:
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(target_day, last_day))


def _validate_day(target_day: int) -> None:
    if not 1 <= int(target_day) <= 31:
        raise ValueError(f"Day of month must be 1-31, got {target_day}")


def salary_date_for_month(from_date: DateLike, target_day: int, month_offset: int = 0) -> date:
    """
    Date on ``target_day`` of the month ``month_offset`` months after
    ``from_date``'s month, clamped to that month's last day.

    Example: (2025-01-31, 31, 1) -> 2025-02-28
    """
    _validate_day(target_day)
    first_of_month = parse_date_key(from_date).replace(day=1) + relativedelta(months=month_offset)
    return _clamped(first_of_month.year, first_of_month.month, int(target_day))


def next_day_of_month(from_date: DateLike, target_day: int, month_offset: int = 0) -> date:
    """
    Next occurrence of ``target_day`` strictly after ``from_date``.

    With a non-zero ``month_offset`` the result is the (clamped) target day
    in the month that many months after ``from_date``'s month instead.
    Short months clamp to their last day, so a Feb request for day 31
    yields Feb 28/29.
    """
    if month_offset:
        return salary_date_for_month(from_date, target_day, month_offset)

    start = parse_date_key(from_date)
    candidate = salary_date_for_month(start, target_day)
    if candidate <= start:
        candidate = salary_date_for_month(start, target_day, 1)
    return candidate

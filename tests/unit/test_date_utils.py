"""Unit tests for civil-calendar date helpers"""

import pytest
from datetime import date, datetime, timedelta, timezone
from lending_gateway.domain.exceptions import InvalidDateFormat
from lending_gateway.utils.date_utils import (
    days_between_inclusive,
    next_day_of_month,
    parse_date_key,
    salary_date_for_month,
    to_date_key,
)


@pytest.mark.parametrize(
    "value",
    [
        date(2024, 3, 5),
        datetime(2024, 3, 5, 23, 59, 59),
        "2024-03-05",
        "2024-03-05 23:59:59",
        "2024-03-05T23:30:00+05:30",
        "2024-03-05T00:00:00.000Z",
    ],
)
def test_to_date_key_accepted_inputs(value):
    assert to_date_key(value) == "2024-03-05"


def test_to_date_key_keeps_aware_datetime_calendar_day():
    """Late evening west of UTC must not roll over to the next day"""
    value = datetime(2024, 3, 5, 23, 30, tzinfo=timezone(timedelta(hours=-5)))
    assert to_date_key(value) == "2024-03-05"


@pytest.mark.parametrize("value", [None, "", "05/03/2024", "2024-02-30", "not a date", 20240305])
def test_to_date_key_rejects_garbage(value):
    assert to_date_key(value) is None


def test_parse_date_key_raises_on_garbage():
    with pytest.raises(InvalidDateFormat):
        parse_date_key("garbage")


def test_days_between_inclusive():
    assert days_between_inclusive("2024-01-01", "2024-01-01") == 1
    assert days_between_inclusive("2024-01-01", "2024-01-15") == 15
    assert days_between_inclusive("2024-02-01", "2024-03-01") == 30  # leap year


def test_days_between_inclusive_is_symmetric():
    assert days_between_inclusive("2024-01-15", "2024-01-01") == days_between_inclusive("2024-01-01", "2024-01-15")


def test_salary_date_for_month_clamps_short_months():
    assert salary_date_for_month(date(2025, 1, 31), 31, 1) == date(2025, 2, 28)
    assert salary_date_for_month(date(2024, 1, 31), 31, 1) == date(2024, 2, 29)
    assert salary_date_for_month(date(2024, 11, 15), 5, 2) == date(2025, 1, 5)


def test_next_day_of_month_is_strictly_after():
    assert next_day_of_month(date(2024, 1, 10), 15) == date(2024, 1, 15)
    assert next_day_of_month(date(2024, 1, 10), 5) == date(2024, 2, 5)
    assert next_day_of_month(date(2024, 1, 15), 15) == date(2024, 2, 15)


def test_next_day_of_month_short_month():
    assert next_day_of_month(date(2024, 2, 1), 31) == date(2024, 2, 29)


def test_next_day_of_month_with_offset():
    assert next_day_of_month(date(2024, 1, 10), 20, month_offset=1) == date(2024, 2, 20)


def test_invalid_day_of_month():
    with pytest.raises(ValueError):
        salary_date_for_month(date(2024, 1, 1), 32)

from datetime import date, datetime

import pandas as pd

from academy.dates import add_days, day_of_week, diff_in_days, format_date_ymd, parse_date


def test_parse_date_accepts_loose_string_formats():
    assert parse_date("2024-03-05") == date(2024, 3, 5)
    assert parse_date("2024.3.5") == date(2024, 3, 5)
    assert parse_date("2024/03/05") == date(2024, 3, 5)
    assert parse_date(" 2024-03-05 ") == date(2024, 3, 5)


def test_parse_date_strips_time_of_day():
    assert parse_date(datetime(2024, 3, 5, 23, 59)) == date(2024, 3, 5)
    assert parse_date(pd.Timestamp("2024-03-05 08:30")) == date(2024, 3, 5)
    assert parse_date("2024-03-05T10:15:00") == date(2024, 3, 5)


def test_parse_date_returns_none_for_garbage():
    assert parse_date(None) is None
    assert parse_date("") is None
    assert parse_date("nan") is None
    assert parse_date("not a date") is None
    assert parse_date("2024-02-30") is None
    assert parse_date(True) is None
    assert parse_date(pd.NaT) is None


def test_day_of_week_uses_sunday_zero():
    assert day_of_week(date(2024, 1, 7)) == 0  # Sunday
    assert day_of_week(date(2024, 1, 1)) == 1  # Monday
    assert day_of_week(date(2024, 1, 6)) == 6  # Saturday


def test_diff_and_add_days():
    assert diff_in_days("2024-01-01", "2024-01-08") == 7
    assert diff_in_days("2024-01-01", "bogus") is None
    assert add_days("2024-01-31", 1) == date(2024, 2, 1)
    assert add_days("bogus", 1) is None


def test_format_date_ymd():
    assert format_date_ymd("2024/1/2") == "2024-01-02"
    assert format_date_ymd("bogus") == ""

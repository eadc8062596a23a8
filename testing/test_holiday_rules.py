# testing/test_holiday_rules.py
"""
Tests for the holiday rules that fill the holidays table.
"""

from datetime import date

import pytest

from src.api.holiday_rules import easter_sunday, nth_weekday, observed_holidays


def by_name(holidays):
    return {name: (day, observed) for day, name, observed in holidays}


@pytest.mark.parametrize("year,month,weekday,n,expected", [
    (2025, 1, 0, 3, date(2025, 1, 20)),    # MLK day
    (2025, 5, 0, -1, date(2025, 5, 26)),   # Memorial Day
    (2025, 9, 0, 1, date(2025, 9, 1)),     # Labor Day, month starts on a Monday
    (2025, 11, 3, 4, date(2025, 11, 27)),  # Thanksgiving
])
def test_nth_weekday(year, month, weekday, n, expected):
    assert nth_weekday(year, month, weekday, n) == expected


def test_easter_sunday():
    assert easter_sunday(2024) == date(2024, 3, 31)
    assert easter_sunday(2025) == date(2025, 4, 20)


def test_us_holidays_2025():
    holidays = by_name(observed_holidays(2025, "US"))

    assert holidays["Thanksgiving"] == (date(2025, 11, 27), True)
    assert holidays["Christmas Day"] == (date(2025, 12, 25), True)
    assert holidays["Independence Day"] == (date(2025, 7, 4), True)
    assert holidays["Martin Luther King, Jr. Day"] == (date(2025, 1, 20), True)
    assert all(observed for _, _, observed in observed_holidays(2025, "us"))


def test_us_weekend_holidays_move_to_nearest_weekday():
    holidays = by_name(observed_holidays(2021, "US"))
    # Christmas 2021 is a Saturday, Independence Day a Sunday
    assert holidays["Christmas Day"] == (date(2021, 12, 25), False)
    assert holidays["Christmas Day (observed)"] == (date(2021, 12, 24), True)
    assert holidays["Independence Day (observed)"] == (date(2021, 7, 5), True)

    # New Year's Day 2022 is a Saturday, observed in the previous year
    assert by_name(observed_holidays(2022, "US"))["New Year's Day (observed)"] == (date(2021, 12, 31), True)


def test_ca_weekend_holidays_move_forward_past_each_other():
    holidays = by_name(observed_holidays(2021, "CA"))

    assert holidays["Christmas Day (observed)"] == (date(2021, 12, 27), True)
    assert holidays["Boxing Day (observed)"] == (date(2021, 12, 28), True)


def test_ca_holidays_2025():
    holidays = by_name(observed_holidays(2025, "ca"))

    assert holidays["Good Friday"] == (date(2025, 4, 18), True)
    assert holidays["Victoria Day"] == (date(2025, 5, 19), True)
    assert holidays["Thanksgiving"] == (date(2025, 10, 13), True)


def test_unknown_country_has_no_holidays():
    assert observed_holidays(2025, "zz") == []

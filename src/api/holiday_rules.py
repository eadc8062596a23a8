# holiday_rules.py
#
#   Public holidays computed from their calendar rules, for the countries
#   regions are set up in (US and CA).
#   A holiday falling on a weekend keeps its own (not observed) entry and gets an
#   "<name> (observed)" entry on the weekday it moves to.

import calendar
from datetime import date, timedelta

MONDAY, THURSDAY, SATURDAY = 0, 3, 5


def nth_weekday(year: int, month: int, weekday: int, n: int) -> date:
    """n-th weekday of the month (n=-1 for the last one)."""
    if n > 0:
        first = date(year, month, 1)
        return first + timedelta(days=(weekday - first.weekday()) % 7 + 7 * (n - 1))
    last = date(year, month, calendar.monthrange(year, month)[1])
    return last - timedelta(days=(last.weekday() - weekday) % 7)


def easter_sunday(year: int) -> date:
    # anonymous Gregorian computus
    a = year % 19
    b, c = divmod(year, 100)
    d, e = divmod(b, 4)
    f = (b + 8) // 25
    g = (b - f + 1) // 3
    h = (19 * a + b - d - g + 15) % 30
    i, k = divmod(c, 4)
    l = (32 + 2 * e + 2 * i - h - k) % 7
    m = (a + 11 * h + 22 * l) // 451
    month, day = divmod(h + l - 7 * m + 114, 31)
    return date(year, month, day + 1)


def us_holidays(year: int) -> list:
    holidays = [
        (date(year, 1, 1), "New Year's Day"),
        (nth_weekday(year, 1, MONDAY, 3), "Martin Luther King, Jr. Day"),
        (nth_weekday(year, 2, MONDAY, 3), "Presidents' Day"),
        (nth_weekday(year, 5, MONDAY, -1), "Memorial Day"),
        (date(year, 7, 4), "Independence Day"),
        (nth_weekday(year, 9, MONDAY, 1), "Labor Day"),
        (nth_weekday(year, 10, MONDAY, 2), "Columbus Day"),
        (date(year, 11, 11), "Veterans Day"),
        (nth_weekday(year, 11, THURSDAY, 4), "Thanksgiving"),
        (date(year, 12, 25), "Christmas Day"),
    ]
    if year >= 2021:
        holidays.append((date(year, 6, 19), "Juneteenth National Independence Day"))
    return sorted(holidays)


def ca_holidays(year: int) -> list:
    may_24 = date(year, 5, 24)
    return [
        (date(year, 1, 1), "New Year's Day"),
        (easter_sunday(year) - timedelta(days=2), "Good Friday"),
        (may_24 - timedelta(days=may_24.weekday()), "Victoria Day"),
        (date(year, 7, 1), "Canada Day"),
        (nth_weekday(year, 9, MONDAY, 1), "Labour Day"),
        (nth_weekday(year, 10, MONDAY, 2), "Thanksgiving"),
        (date(year, 12, 25), "Christmas Day"),
        (date(year, 12, 26), "Boxing Day"),
    ]


def _us_observed(day: date, taken: set) -> date:
    # Saturday -> Friday before, Sunday -> Monday after
    return day - timedelta(days=1) if day.weekday() == SATURDAY else day + timedelta(days=1)


def _ca_observed(day: date, taken: set) -> date:
    # next weekday that isn't already a holiday (Christmas/Boxing Day pairs)
    while day.weekday() >= SATURDAY or day in taken:
        day += timedelta(days=1)
    return day


COUNTRY_RULES = {
    "us": (us_holidays, _us_observed),
    "ca": (ca_holidays, _ca_observed),
}


def observed_holidays(year: int, country: str) -> list:
    """
    Returns: [(date, name, observed)] for the country's holidays of that year,
    [] for countries without rules
    """
    rules = COUNTRY_RULES.get(country.lower())
    if rules is None:
        return []
    holidays_for, move_off_weekend = rules

    holidays = holidays_for(year)
    taken = {day for day, _ in holidays if day.weekday() < SATURDAY}
    result = []
    for day, name in holidays:
        if day.weekday() < SATURDAY:
            result.append((day, name, True))
            continue
        moved = move_off_weekend(day, taken)
        taken.add(moved)
        result.append((day, name, False))
        result.append((moved, f"{name} (observed)", True))
    return result

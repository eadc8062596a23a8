# holiday_calendar.py
#
#   Blackout dates for rescheduling:
#   - any observed holiday for the country
#   - the day after Thanksgiving, Christmas Day and New Year's Day

import logging
from datetime import date, timedelta

from src import db
from src.api import holiday_rules

logger = logging.getLogger(__name__)

# holidays whose following day is also blacked out (Black Friday, Boxing Day, Jan 2nd)
DAY_AFTER_WATCH_LIST = ["Thanksgiving", "Christmas Day", "New Year's Day"]


def load_observed_holidays(country: str, year: int) -> int:
    """
    Fill the holidays table with a country's holidays for one year, once.
    Rows added by hand are kept.
    Returns: number of holidays written (0 if the year was already loaded)
    """
    country = country.lower()
    if db.is_holiday_year_loaded(country, year):
        return 0

    holidays = holiday_rules.observed_holidays(year, country)
    for holiday_date, name, observed in holidays:
        db.add_holiday(holiday_date, country, name, observed=observed)
    db.mark_holiday_year_loaded(country, year)

    if holidays:
        logger.info(f"Loaded {len(holidays)} holidays for {country.upper()} {year}")
    else:
        logger.warning(f"No holiday rules for country '{country}', only manually added holidays apply")
    return len(holidays)


class SqliteHolidaySource:
    """
    Observed holidays stored in the holidays table.
    With auto_load the year asked about (and the next one, for observed dates
    moved back into December) is filled from the holiday rules first.
    """

    def __init__(self, auto_load: bool = True):
        self.auto_load = auto_load
        self._loaded = set()

    def holidays_on(self, on_date: date, country: str, observed: bool = True) -> list:
        if self.auto_load:
            for year in (on_date.year, on_date.year + 1):
                if (country.lower(), year) not in self._loaded:
                    load_observed_holidays(country, year)
                    self._loaded.add((country.lower(), year))
        return db.get_holidays(on_date, country, observed=observed)


class HolidayCalendar:
    def __init__(self, source=None):
        self.source = source or SqliteHolidaySource()

    def holiday_names(self, on_date: date, country: str) -> list:
        holidays = self.source.holidays_on(on_date, country.lower(), observed=True) or []
        return [holiday.get("name") or "" for holiday in holidays]

    def is_blackout_date(self, on_date: date, country: str) -> bool:
        """
        True if on_date is an observed holiday, or the day after a watch-list holiday.
        Watch-list names match loosely (case-insensitive substring of the reported name)
        so naming variants like "Thanksgiving Day" still count.
        """
        if self.holiday_names(on_date, country):
            return True

        day_before = self.holiday_names(on_date - timedelta(days=1), country)
        return any(
            watched.lower() in name.lower()
            for name in day_before
            for watched in DAY_AFTER_WATCH_LIST
        )

# rescheduler.py
#
# Picks the new start time for an unfilled booking that gets rescheduled by us.
# Strategies are tried in order, the first one that applies decides:
# 1. Smart scheduler recommendation (also brings recommended providers)
# 2. Region weekday policy, eg bookings on Wednesday move to a Friday
# 3. Plain calendar scan: next Mon-Thu that is not a blackout date

import calendar
import logging
from datetime import date

from src import timezone_utils
from src.models import ArrivalType, RescheduleCandidate

logger = logging.getLogger(__name__)

MAX_OFFSET_DAYS = 8 * 7  # up to 8 weeks away
GOOD_WEEKDAYS = range(0, 4)  # monday = 0 ... thursday = 3

WEEKDAY_NAMES = [name.lower() for name in calendar.day_name]

# returned by a strategy that doesn't apply to the booking
NOT_APPLICABLE = object()


def weekday_name(d) -> str:
    return WEEKDAY_NAMES[d.weekday()]


def is_bad_weekday(d) -> bool:
    """Fridays and weekends are never picked by the calendar scan."""
    return d.weekday() not in GOOD_WEEKDAYS


def date_of_next(day_name: str, today: date) -> date:
    """
    Next occurrence of day_name on or after today.
    """
    target = WEEKDAY_NAMES.index(day_name.lower())
    return date.fromordinal(today.toordinal() + (target - today.weekday()) % 7)


class RecommendationStrategy:
    name = "recommendation"

    def __init__(self, recommender):
        self.recommender = recommender

    def propose(self, booking, country):
        if self.recommender is None:
            return NOT_APPLICABLE

        recommendation = self.recommender.recommend(booking, ArrivalType.AUTO_RESCHEDULE)
        if not recommendation or recommendation.start_time is None:
            return NOT_APPLICABLE

        if recommendation.start_time <= booking.date_start:
            logger.warning(
                f"Ignoring recommendation for booking {booking.id}: "
                f"{recommendation.start_time.isoformat()} is not after {booking.date_start.isoformat()}"
            )
            return NOT_APPLICABLE

        return RescheduleCandidate(
            start_time=recommendation.start_time,
            providers=list(recommendation.providers or []),
            strategy=self.name,
        )


class WeekdayPolicyStrategy:
    name = "weekday_policy"

    def __init__(self, config, holiday_calendar, clock=timezone_utils.now):
        self.config = config
        self.holiday_calendar = holiday_calendar
        self.clock = clock

    def propose(self, booking, country):
        reschedule_days = {
            day.lower(): target.lower()
            for day, target in (self.config.reschedule_days(booking.region_id) or {}).items()
        }
        best_day = reschedule_days.get(weekday_name(booking.date_start))
        if not best_day:
            return NOT_APPLICABLE

        # offset to the first best_day (which may be before the booking date_start)
        today = self.clock().date()
        min_offset = (date_of_next(best_day, today) - booking.date_start.date()).days

        for offset in range(min_offset, MAX_OFFSET_DAYS, 7):
            candidate = timezone_utils.add_days(booking.date_start, offset)
            if candidate <= booking.date_start:
                continue
            if self.holiday_calendar.is_blackout_date(candidate.date(), country):
                continue
            return RescheduleCandidate(start_time=candidate, strategy=self.name)

        return None


class CalendarScanStrategy:
    name = "calendar_scan"

    def __init__(self, holiday_calendar):
        self.holiday_calendar = holiday_calendar

    def propose(self, booking, country):
        target = next_reschedulable_date(booking, country, self.holiday_calendar)
        if target is None:
            return None
        return RescheduleCandidate(start_time=target, strategy=self.name)


def next_reschedulable_date(booking, country: str, holiday_calendar):
    """
    Returns the next reschedulable date that meets the following criteria:
      1) In weekdays (Monday thru Thursday)
      2) The same start time as the booking
      3) Not a blackout date for the booking's country
    Offsets 1..55 days from the booking start. None if nothing qualifies.
    """
    for offset in range(1, MAX_OFFSET_DAYS):
        target_date = timezone_utils.add_days(booking.date_start, offset)

        if is_bad_weekday(target_date):
            continue
        if holiday_calendar.is_blackout_date(target_date.date(), country):
            continue

        return target_date

    return None


class RescheduleDateSelector:
    def __init__(self, config, holiday_calendar, recommender=None, clock=timezone_utils.now):
        self.config = config
        self.holiday_calendar = holiday_calendar
        self.strategies = [
            RecommendationStrategy(recommender),
            WeekdayPolicyStrategy(config, holiday_calendar, clock=clock),
            CalendarScanStrategy(holiday_calendar),
        ]

    def select_candidate(self, booking):
        """
        Returns: RescheduleCandidate, or None when the deciding strategy found no slot
        """
        country = self.config.region(booking.region_id).country

        for strategy in self.strategies:
            result = strategy.propose(booking, country)
            if result is NOT_APPLICABLE:
                continue

            if result is None:
                logger.info(f"No reschedule date for booking {booking.id} ({strategy.name})")
            else:
                logger.info(
                    f"Booking {booking.id}: {strategy.name} picked {result.start_time.isoformat()}"
                )
            return result

        return None

    def select_new_date(self, booking):
        candidate = self.select_candidate(booking)
        return candidate.start_time if candidate else None

# testing/engine_test_helpers.py
"""
In-memory collaborators for testing the auto RBU/CBU engine without a database.
Each fake records the calls it receives so tests can assert on them.
"""

from types import SimpleNamespace

from src.api.auto_resolution import AutoResolutionService
from src.api.cancellation import CancellationExecutor
from src.api.eligibility import EligibilityEvaluator
from src.api.holiday_calendar import HolidayCalendar
from src.api.rescheduler import RescheduleDateSelector
from src.models import RescheduleResult, TriggerResult


def fixed_clock(moment):
    return lambda: moment


class FakeConfig:
    def __init__(self, regions=None, windows=None):
        self.regions = {region.id: region for region in (regions or [])}
        self.windows = dict(windows or {})  # (region_id, service_id) -> minutes

    def region(self, region_id):
        return self.regions.get(region_id)

    def is_auto_rbu_enabled(self, region_id):
        region = self.region(region_id)
        return bool(region and region.auto_rbu_enabled)

    def auto_enabled_regions(self):
        return [region.id for region in self.regions.values() if region.auto_rbu_enabled]

    def auto_rbu_minutes(self, region_id, service_id):
        return self.windows.get((region_id, service_id))

    def max_window_minutes(self):
        return max(self.windows.values(), default=0)

    def reschedule_days(self, region_id):
        region = self.region(region_id)
        return region.reschedule_days if region else {}


class FakeHolidaySource:
    def __init__(self, holidays=None):
        # {(date, country): ["Holiday name", ...]}
        self.holidays = dict(holidays or {})
        self.calls = []

    def holidays_on(self, on_date, country, observed=True):
        self.calls.append((on_date, country, observed))
        return [{"name": name} for name in self.holidays.get((on_date, country.lower()), [])]


class FakeBookingStore:
    def __init__(self, bookings=None, result=None):
        self.bookings = list(bookings or [])
        self.result = result
        self.queries = []
        self.rescheduled = []

    def unfilled_in_window(self, region_ids, start_at, end_at):
        self.queries.append((list(region_ids), start_at, end_at))
        return [
            booking for booking in self.bookings
            if booking.region_id in region_ids and start_at <= booking.date_start < end_at and booking.unfilled
        ]

    def reschedule(self, booking, new_start, reason, recommended_providers=None):
        self.rescheduled.append((booking.id, new_start, reason, recommended_providers))
        result = self.result or RescheduleResult(applied=True)
        if result.applied:
            booking.date_start = new_start
        return result

    def record_auto_rbu_attempt(self, booking):
        booking.auto_rbu_count += 1
        return booking.auto_rbu_count


class FakeGuard:
    def __init__(self, hit=False):
        self.hit = hit
        self.calls = []

    def try_double_assign(self, booking):
        self.calls.append(booking.id)
        return self.hit


class FakeRecommender:
    def __init__(self, recommendation=None):
        self.recommendation = recommendation
        self.calls = []

    def recommend(self, booking, arrival_type):
        self.calls.append((booking.id, arrival_type))
        return self.recommendation


class FakeGateway:
    def __init__(self, success=True, errors=None):
        self.success = success
        self.errors = errors or []
        self.triggered = []

    def calculate_refund(self, booking, reason):
        return booking.price

    def trigger(self, booking, reason, refund, cancellation_type):
        self.triggered.append((booking.id, reason, refund, cancellation_type))
        return TriggerResult(success=self.success, errors=list(self.errors))


class FakeNotifier:
    def __init__(self):
        self.sent = []

    def send(self, user_id, event, booking):
        self.sent.append((user_id, event, booking.id))
        return True


class RecordingOutcomeLogger:
    def __init__(self):
        self.entries = []  # (level, OutcomeLogEntry)

    def info(self, entry):
        self.entries.append(("info", entry))

    def error(self, entry):
        self.entries.append(("error", entry))


def make_service(regions, bookings=None, windows=None, now=None, holidays=None, recommendation=None,
                 reschedule_result=None, guard_hit=False, cancel_success=True, cancel_errors=None,
                 default_window_minutes=120, default_attempts=1):
    """
    Build an AutoResolutionService wired with fakes.
    Returns: SimpleNamespace(service, config, store, guard, recommender, gateway, notifier, log, holidays)
    """
    clock = fixed_clock(now)
    config = FakeConfig(regions, windows)
    store = FakeBookingStore(bookings, result=reschedule_result)
    holiday_source = FakeHolidaySource(holidays)
    recommender = FakeRecommender(recommendation)
    gateway = FakeGateway(success=cancel_success, errors=cancel_errors)
    notifier = FakeNotifier()
    log = RecordingOutcomeLogger()
    guard = FakeGuard(hit=guard_hit)

    eligibility = EligibilityEvaluator(config, store, clock=clock, default_window_minutes=default_window_minutes)
    selector = RescheduleDateSelector(config, HolidayCalendar(holiday_source), recommender=recommender,
                                      clock=clock)
    service = AutoResolutionService(
        config=config,
        bookings=store,
        guard=guard,
        eligibility=eligibility,
        selector=selector,
        canceller=CancellationExecutor(gateway, notifier, log),
        outcome_logger=log,
        clock=clock,
        default_attempts=default_attempts,
    )
    return SimpleNamespace(service=service, config=config, store=store, guard=guard, recommender=recommender,
                           gateway=gateway, notifier=notifier, log=log, holidays=holiday_source)

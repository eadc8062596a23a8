# auto_resolution.py
#
# Automatically RBU (Reschedule By Us) or CBU (Cancel By Us) unfilled bookings.
#
# Per booking:
#   race guard -> region check -> eligibility re-check -> attempt limit
#   -> reschedule attempt -> (on failure) cancellation
#
# Race guard and disabled regions end the pass silently. Everything else
# writes exactly one outcome entry and returns an Outcome value.

import logging

from config import settings
from src import timezone_utils
from src.api.cancellation import CancellationExecutor, SqliteCancellationGateway
from src.api.eligibility import EligibilityEvaluator
from src.api.holiday_calendar import HolidayCalendar
from src.api.notifier import WebhookNotifier
from src.api.outcome_log import FAILED_PREFIX, OutcomeLogger
from src.api.rescheduler import RescheduleDateSelector
from src.api.smart_scheduler import SmartSchedulerClient
from src.api.stores import SqliteBookingStore, SqliteConfigProvider, SqliteDoubleAssignmentGuard
from src.models import (
    Aborted,
    AnomalyLogged,
    OutcomeLogEntry,
    OutcomeType,
    PICK_ANOTHER_BOOKING,
    REASON_AUTOMATED_RBU,
    Rescheduled,
    ResolutionFailure,
)

logger = logging.getLogger(__name__)


class AutoResolutionService:
    def __init__(self, config, bookings, guard, eligibility, selector, canceller, outcome_logger,
                 clock=timezone_utils.now, default_attempts: int = None):
        self.config = config
        self.bookings = bookings
        self.guard = guard
        self.eligibility = eligibility
        self.selector = selector
        self.canceller = canceller
        self.outcome_logger = outcome_logger
        self.clock = clock
        self.default_attempts = settings.DEFAULT_AUTO_RBU_ATTEMPTS if default_attempts is None else default_attempts

    def max_attempts(self, booking) -> int:
        if booking.auto_rbu_attempts is not None:
            return booking.auto_rbu_attempts
        region = self.config.region(booking.region_id)
        if region is not None and region.auto_rbu_attempts is not None:
            return region.auto_rbu_attempts
        return self.default_attempts

    def reschedule_or_cancel(self, booking):
        """
        Attempts to reschedule the booking to a suitable date. If that's not
        possible (limit reached, no slot, recurring conflict), cancels it.

        Returns: Rescheduled | Cancelled | AnomalyLogged | Aborted
        """
        if self.guard.try_double_assign(booking):
            return Aborted(booking_id=booking.id, cause="race")
        if not self.config.is_auto_rbu_enabled(booking.region_id):
            return Aborted(booking_id=booking.id, cause="region_disabled")

        current_time = self.clock()
        if not self.eligibility.is_candidate(booking, current_time):
            return self._log_ineligible(booking, current_time)

        if booking.auto_rbu_count >= self.max_attempts(booking):
            return self._cancel(booking, ResolutionFailure.ATTEMPT_LIMIT_EXCEEDED)

        return self._reschedule(booking)

    def run_batch(self, reference_time=None) -> list:
        """
        One batch pass. A booking whose collaborators blow up is logged and
        skipped; it gets another chance on the next pass.
        """
        outcomes = []
        for booking in self.eligibility.select_batch(reference_time):
            try:
                outcomes.append(self.reschedule_or_cancel(booking))
            except Exception:
                logger.exception(f"Auto RBU/CBU failed unexpectedly for booking {booking.id}")
        return outcomes

    def _reschedule(self, booking):
        original_date_start = booking.date_start

        candidate = self.selector.select_candidate(booking)
        if candidate is None:
            return self._cancel(booking, ResolutionFailure.NO_SLOT_AVAILABLE)

        result = self.bookings.reschedule(booking, candidate.start_time, REASON_AUTOMATED_RBU,
                                          recommended_providers=candidate.providers)

        if result.conflict == PICK_ANOTHER_BOOKING:
            return self._cancel(booking, ResolutionFailure.RECURRING_CONFLICT)

        if not result.applied:
            message = FAILED_PREFIX + f"Reschedule was not applied. Errors: {','.join(result.errors)}"
            self.outcome_logger.error(OutcomeLogEntry(
                booking_id=booking.id,
                original_date_start=original_date_start.isoformat(),
                new_date_start=candidate.start_time.isoformat(),
                reason_id=REASON_AUTOMATED_RBU.id,
                type=OutcomeType.RBU,
                success=False,
                message=message,
            ))
            return AnomalyLogged(booking_id=booking.id, message=message)

        booking.date_start = candidate.start_time

        # the move is applied at this point and is logged even if the counter update fails
        self.outcome_logger.info(OutcomeLogEntry(
            booking_id=booking.id,
            original_date_start=original_date_start.isoformat(),
            new_date_start=booking.date_start.isoformat(),
            reason_id=REASON_AUTOMATED_RBU.id,
            type=OutcomeType.RBU,
            success=True,
            message="Success",
        ))
        try:
            self.bookings.record_auto_rbu_attempt(booking)
        except Exception:
            logger.exception(f"Booking {booking.id} was rescheduled but its attempt counter was not updated")

        return Rescheduled(
            booking_id=booking.id,
            original_date_start=original_date_start,
            new_date_start=booking.date_start,
            strategy=candidate.strategy,
        )

    def _cancel(self, booking, failure: ResolutionFailure):
        logger.info(f"Cancelling booking {booking.id}: {failure.message}")
        return self.canceller.cancel(booking, failure.reason, failure.message)

    def _log_ineligible(self, booking, current_time):
        data = {
            "booking_confirmed": booking.confirmed,
            "provider_present": booking.provider_present,
            "date_start": booking.date_start.isoformat(),
            "current_time": current_time.isoformat(),
        }
        message = FAILED_PREFIX + f"Failed auto_rbu_or_cbu check. Data = {data}."
        self.outcome_logger.error(OutcomeLogEntry(
            booking_id=booking.id,
            original_date_start=booking.date_start.isoformat(),
            new_date_start=None,
            reason_id=None,
            type=OutcomeType.RBU,
            success=False,
            message=message,
        ))
        return AnomalyLogged(booking_id=booking.id, message=message)


def build_service(clock=timezone_utils.now, recommender=None, notifier=None, holiday_source=None):
    """
    Wire the service with the SQLite/HTTP collaborators.
    """
    config = SqliteConfigProvider()
    bookings = SqliteBookingStore()
    outcome_logger = OutcomeLogger()
    holiday_calendar = HolidayCalendar(holiday_source)

    return AutoResolutionService(
        config=config,
        bookings=bookings,
        guard=SqliteDoubleAssignmentGuard(),
        eligibility=EligibilityEvaluator(config, bookings, clock=clock),
        selector=RescheduleDateSelector(config, holiday_calendar,
                                        recommender=recommender or SmartSchedulerClient(), clock=clock),
        canceller=CancellationExecutor(SqliteCancellationGateway(), notifier or WebhookNotifier(),
                                       outcome_logger),
        outcome_logger=outcome_logger,
        clock=clock,
    )

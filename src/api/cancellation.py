# cancellation.py
#
#   CBU ("Canceled By Us"): refund, trigger the cancellation, notify the user, log the outcome.
#   A failed trigger is logged and left alone, the next batch pass picks the booking up again.

import logging

from src import db
from src.api.outcome_log import FAILED_PREFIX
from src.models import Cancelled, OutcomeLogEntry, OutcomeType, TriggerResult

logger = logging.getLogger(__name__)

CANCELLATION_TYPE = "reschedule_or_cancel_unfilled_service"
AUTO_CANCELED_EVENT = "auto_canceled"


class SqliteCancellationGateway:
    """Full refund of the booking price. Every trigger, failed or not, is recorded in the db."""

    def calculate_refund(self, booking, reason) -> float:
        return float(booking.price or 0.0)

    def trigger(self, booking, reason, refund: float, cancellation_type: str) -> TriggerResult:
        updated = db.cancel_booking(booking.id, reason.id, refund, cancellation_type)
        if not updated:
            errors = [f"Booking {booking.id} is not an active booking"]
            db.add_failed_cancellation(booking.id, reason.id, refund, cancellation_type, errors)
            return TriggerResult(success=False, errors=errors)
        return TriggerResult(success=True)


class CancellationExecutor:
    def __init__(self, gateway, notifier, outcome_logger):
        self.gateway = gateway
        self.notifier = notifier
        self.outcome_logger = outcome_logger

    def cancel(self, booking, reason, message: str) -> Cancelled:
        refund = self.gateway.calculate_refund(booking, reason)
        result = self.gateway.trigger(booking, reason, refund, cancellation_type=CANCELLATION_TYPE)

        if result.success:
            booking.status = "cancelled"
            self.outcome_logger.info(OutcomeLogEntry(
                booking_id=booking.id,
                original_date_start=booking.date_start.isoformat(),
                new_date_start=None,
                reason_id=reason.id,
                type=OutcomeType.CBU,
                success=True,
                message=message,
            ))
            self.notifier.send(booking.user_id, AUTO_CANCELED_EVENT, booking)
            return Cancelled(booking_id=booking.id, reason=reason, message=message, success=True, refund=refund)

        errors = list(result.errors or [])
        logger.warning(f"Cancellation of booking {booking.id} failed: {errors}")
        self.outcome_logger.error(OutcomeLogEntry(
            booking_id=booking.id,
            original_date_start=booking.date_start.isoformat(),
            new_date_start=None,
            reason_id=reason.id if reason else None,
            type=OutcomeType.CBU,
            success=False,
            message=FAILED_PREFIX + message + f", Errors: {','.join(errors)}",
        ))
        return Cancelled(booking_id=booking.id, reason=reason, message=message, success=False,
                         refund=refund, errors=errors)

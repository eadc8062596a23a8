# eligibility.py
#
#   Decides which unfilled bookings qualify for automatic RBU/CBU:
#   - single booking check against its (region, service) window
#   - batch selection across all auto-enabled regions

import logging
from datetime import datetime, timedelta

from config import settings
from src import timezone_utils

logger = logging.getLogger(__name__)


class EligibilityEvaluator:
    def __init__(self, config, bookings, clock=timezone_utils.now,
                 default_window_minutes: int = None):
        self.config = config
        self.bookings = bookings
        self.clock = clock
        self.default_window_minutes = (settings.AUTO_RBU_WINDOW_MINUTES if default_window_minutes is None
                                       else default_window_minutes)

    def auto_rbu_minutes(self, region_id: int, service_id: int) -> int:
        minutes = self.config.auto_rbu_minutes(region_id, service_id)
        return minutes if minutes is not None else self.default_window_minutes

    def is_candidate(self, booking, reference_time: datetime = None) -> bool:
        """
        Returns True if the booking is confirmed, has no provider, and
        reference_time is within [start - window, start).
        The start instant itself is not eligible.
        """
        if not booking.confirmed:
            return False
        if booking.provider_present:
            return False

        if reference_time is None:
            reference_time = self.clock()

        window = timedelta(minutes=self.auto_rbu_minutes(booking.region_id, booking.service_id))
        return booking.date_start - window <= reference_time < booking.date_start

    def lookahead_minutes(self) -> int:
        return max(self.config.max_window_minutes() or 0, self.default_window_minutes)

    def select_batch(self, reference_time: datetime = None) -> list:
        """
        Bookings in need of auto RBU/CBU right now.
        Coarse range query first, then the exact per-booking window check in memory.
        """
        if reference_time is None:
            reference_time = self.clock()

        region_ids = self.config.auto_enabled_regions()
        if not region_ids:
            logger.debug("No regions have auto RBU enabled")
            return []

        end_at = reference_time + timedelta(minutes=self.lookahead_minutes())
        unfilled = self.bookings.unfilled_in_window(region_ids, reference_time, end_at)
        batch = [booking for booking in unfilled if self.is_candidate(booking, reference_time)]

        logger.info(f"Selected {len(batch)} of {len(unfilled)} unfilled bookings for auto RBU/CBU")
        return batch

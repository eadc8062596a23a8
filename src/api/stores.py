# stores.py
#
#   SQLite-backed collaborators for the auto RBU/CBU engine:
#   - regional config (windows, auto RBU toggle, reschedule day policy)
#   - booking queries and the reschedule operation
#   - the double-assignment race guard

import logging
from datetime import datetime

from src import db
from src.models import Booking, PICK_ANOTHER_BOOKING, Region, RescheduleResult
from src.timezone_utils import parse_iso_with_tz

logger = logging.getLogger(__name__)


def booking_from_row(row: dict) -> Booking:
    return Booking(
        id=row["id"],
        user_id=row["user_id"],
        date_start=parse_iso_with_tz(row["date_start"]),
        region_id=row["region_id"],
        service_id=row["service_id"],
        confirmed=row["confirmed"],
        provider_id=row["provider_id"],
        auto_rbu_count=row["auto_rbu_count"],
        auto_rbu_attempts=row["auto_rbu_attempts"],
        recurrence_id=row["recurrence_id"],
        price=row["price"],
        status=row["status"],
    )


def region_from_row(row: dict) -> Region:
    return Region(
        id=row["id"],
        name=row["name"],
        country=row["country"],
        auto_rbu_enabled=row["auto_rbu_enabled"],
        auto_rbu_attempts=row["auto_rbu_attempts"],
        reschedule_days=row["reschedule_days"],
    )


class SqliteConfigProvider:
    def region(self, region_id: int):
        row = db.get_region(region_id)
        return region_from_row(row) if row else None

    def is_auto_rbu_enabled(self, region_id: int) -> bool:
        region = self.region(region_id)
        return bool(region and region.auto_rbu_enabled)

    def auto_enabled_regions(self) -> list:
        return [row["id"] for row in db.get_regions(auto_rbu_only=True)]

    def auto_rbu_minutes(self, region_id: int, service_id: int):
        return db.get_auto_rbu_window(region_id, service_id)

    def max_window_minutes(self) -> int:
        return db.get_max_auto_rbu_window()

    def reschedule_days(self, region_id: int) -> dict:
        region = self.region(region_id)
        return region.reschedule_days if region else {}


class SqliteBookingStore:
    def get(self, booking_id: int):
        row = db.get_booking(booking_id)
        return booking_from_row(row) if row else None

    def unfilled_in_window(self, region_ids: list, start_at: datetime, end_at: datetime) -> list:
        return [booking_from_row(row) for row in db.get_unfilled_bookings(region_ids, start_at, end_at)]

    def reschedule(self, booking, new_start: datetime, reason, recommended_providers=None) -> RescheduleResult:
        """
        Move the booking to new_start.
        A booking in a recurring series can't move onto or past the next booking of that series.
        """
        if booking.recurrence_id is not None:
            next_in_series = db.get_next_series_booking(booking.recurrence_id, booking.date_start,
                                                        exclude_id=booking.id)
            if next_in_series and new_start >= parse_iso_with_tz(next_in_series["date_start"]):
                return RescheduleResult(
                    applied=False,
                    conflict=PICK_ANOTHER_BOOKING,
                    errors=[f"Booking {next_in_series['id']} in the same series starts earlier"],
                )

        updated = db.update_booking_start(booking.id, new_start, reason_id=reason.id,
                                          recommended_providers=recommended_providers)
        if not updated:
            return RescheduleResult(applied=False, errors=[f"Booking {booking.id} not found"])

        booking.date_start = new_start
        return RescheduleResult(applied=True)

    def record_auto_rbu_attempt(self, booking) -> int:
        booking.auto_rbu_count = db.increment_auto_rbu_count(booking.id)
        return booking.auto_rbu_count


class SqliteDoubleAssignmentGuard:
    """
    Reports a booking as already handled when, since it was selected, it got a
    provider or stopped being an active confirmed booking.
    """

    def try_double_assign(self, booking) -> bool:
        row = db.get_booking(booking.id)
        if row is None:
            return True
        if row["provider_id"] is not None:
            logger.info(f"Booking {booking.id} got provider {row['provider_id']} concurrently")
            return True
        return row["status"] != "confirmed"

# src/models.py
#
# Plain data types shared by the auto RBU/CBU engine:
# bookings, regions, reasons, candidates and the outcome variants

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional, Union


@dataclass
class Booking:
    id: int
    user_id: int
    date_start: datetime
    region_id: int
    service_id: int
    confirmed: bool = True
    provider_id: Optional[int] = None
    auto_rbu_count: int = 0
    auto_rbu_attempts: Optional[int] = None  # per-booking override of the region max
    recurrence_id: Optional[int] = None
    price: float = 0.0
    status: str = "confirmed"

    @property
    def provider_present(self) -> bool:
        return self.provider_id is not None

    @property
    def unfilled(self) -> bool:
        return self.confirmed and not self.provider_present


@dataclass
class Region:
    id: int
    name: str
    country: str
    auto_rbu_enabled: bool = False
    auto_rbu_attempts: Optional[int] = None
    # weekday name -> best weekday to move to, eg {"wednesday": "friday"}
    reschedule_days: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class Reason:
    id: int
    code: str
    description: str


# Reason taxonomy (referenced, never created by the engine)
REASON_AUTOMATED_RBU = Reason(101, "automated_reschedule_by_us", "Automated reschedule by us")
REASON_RBU_LIMIT = Reason(201, "reschedule_limit_exceeded", "Automatic reschedule limit exceeded")
REASON_NO_SLOT = Reason(202, "no_slot_available", "No slot available in the search horizon")
REASON_RECURRING_CONFLICT = Reason(203, "recurring_booking_conflict",
                                   "Would be scheduled later than an existing recurring booking")


class ResolutionFailure(Enum):
    """
    The three ways a reschedule attempt is abandoned. All of them end in a
    cancellation, each with its own reason and message.
    """
    ATTEMPT_LIMIT_EXCEEDED = (REASON_RBU_LIMIT, "Automatic reschedule limit exceeded")
    NO_SLOT_AVAILABLE = (REASON_NO_SLOT, "No time slot is available in the coming 8 weeks")
    RECURRING_CONFLICT = (REASON_RECURRING_CONFLICT,
                          "Cannot reschedule the booking later than an existing recurring booking")

    @property
    def reason(self) -> Reason:
        return self.value[0]

    @property
    def message(self) -> str:
        return self.value[1]


class ArrivalType(Enum):
    AUTO_RESCHEDULE = "auto_reschedule"


class OutcomeType(str, Enum):
    RBU = "rbu"
    CBU = "cbu"


# reschedule operation conflicts
PICK_ANOTHER_BOOKING = "pick_another_booking"


@dataclass
class Recommendation:
    start_time: datetime
    providers: List[int] = field(default_factory=list)


@dataclass
class RescheduleCandidate:
    start_time: datetime
    providers: List[int] = field(default_factory=list)
    strategy: str = ""


@dataclass
class RescheduleResult:
    applied: bool
    conflict: Optional[str] = None
    errors: List[str] = field(default_factory=list)


@dataclass
class TriggerResult:
    success: bool
    errors: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class OutcomeLogEntry:
    booking_id: int
    original_date_start: str
    new_date_start: Optional[str]
    reason_id: Optional[int]
    type: OutcomeType
    success: bool
    message: str
    logged_at: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "booking_id": self.booking_id,
            "original_date_start": self.original_date_start,
            "new_date_start": self.new_date_start,
            "reason_id": self.reason_id,
            "type": self.type.value,
            "success": self.success,
            "message": self.message,
            "logged_at": self.logged_at,
        }


# Outcome variants returned by the orchestrator, one per booking per pass

@dataclass
class Rescheduled:
    booking_id: int
    original_date_start: datetime
    new_date_start: datetime
    strategy: str
    kind: str = "rescheduled"


@dataclass
class Cancelled:
    booking_id: int
    reason: Reason
    message: str
    success: bool
    refund: float = 0.0
    errors: List[str] = field(default_factory=list)
    kind: str = "cancelled"


@dataclass
class AnomalyLogged:
    booking_id: int
    message: str
    kind: str = "anomaly_logged"


@dataclass
class Aborted:
    booking_id: int
    cause: str  # "race" or "region_disabled"
    kind: str = "aborted"


Outcome = Union[Rescheduled, Cancelled, AnomalyLogged, Aborted]

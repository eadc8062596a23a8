# smart_scheduler.py
#
#   Client for the smart scheduling service that recommends a new start time
#   (and providers who can take it) for an unfilled booking.

import logging

import httpx

from config import settings
from src.api.retry import retry_sync
from src.models import ArrivalType, Recommendation
from src.timezone_utils import parse_iso_with_tz

logger = logging.getLogger(__name__)


class SmartSchedulerClient:
    """
    POST {base_url}/recommendations
        {"booking_id", "region_id", "service_id", "date_start", "arrival_type"}
    -> {"start_time": ISO 8601, "providers": [provider ids]}  or  {} / 204 when nothing fits
    """

    def __init__(self, base_url: str = None, api_key: str = None, timeout: float = None,
                 client: httpx.Client = None):
        self.base_url = (settings.SMART_SCHEDULER_URL if base_url is None else base_url).rstrip("/")
        self.api_key = settings.SMART_SCHEDULER_API_KEY if api_key is None else api_key
        self.timeout = timeout or settings.HTTP_TIMEOUT_SECONDS
        self.client = client

    @property
    def enabled(self) -> bool:
        return bool(self.base_url)

    def _headers(self) -> dict:
        headers = {"Accept": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    @retry_sync(max_retries=2)
    def _post(self, payload: dict) -> httpx.Response:
        url = f"{self.base_url}/recommendations"
        if self.client is not None:
            return self.client.post(url, json=payload, headers=self._headers(), timeout=self.timeout)
        with httpx.Client(timeout=self.timeout) as client:
            return client.post(url, json=payload, headers=self._headers())

    def recommend(self, booking, arrival_type: ArrivalType = ArrivalType.AUTO_RESCHEDULE):
        """
        Returns: Recommendation, or None when the scheduler has nothing
        (or is unreachable, in which case the calendar search takes over)
        """
        if not self.enabled:
            return None

        payload = {
            "booking_id": booking.id,
            "region_id": booking.region_id,
            "service_id": booking.service_id,
            "date_start": booking.date_start.isoformat(),
            "arrival_type": arrival_type.value,
        }

        try:
            response = self._post(payload)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning(f"Smart scheduler unavailable for booking {booking.id}: {e}")
            return None

        if response.status_code == 204 or not response.content:
            return None

        try:
            data = response.json()
        except ValueError as e:
            logger.warning(f"Smart scheduler sent an unreadable body for booking {booking.id}: {e}")
            return None

        if not data:
            return None
        if not isinstance(data, dict):
            logger.warning(f"Smart scheduler sent {type(data).__name__} instead of an object for booking {booking.id}")
            return None

        start_time = data.get("start_time")
        if not start_time:
            return None
        try:
            start_time = parse_iso_with_tz(start_time)
        except (TypeError, AttributeError, ValueError) as e:
            logger.warning(f"Smart scheduler sent a bad start_time {start_time!r} for booking {booking.id}: {e}")
            return None

        providers = data.get("providers") or []
        return Recommendation(
            start_time=start_time,
            providers=list(providers) if isinstance(providers, list) else [],
        )

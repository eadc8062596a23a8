# notifier.py
#
#   Fire-and-forget user notifications (eg auto_canceled) posted to a webhook.
#   Delivery problems are logged, never raised back into the CBU flow.

import logging

import httpx

from config import settings
from src.api.retry import retry_sync

logger = logging.getLogger(__name__)


class WebhookNotifier:
    def __init__(self, webhook_url: str = None, timeout: float = None, client: httpx.Client = None):
        self.webhook_url = settings.NOTIFICATION_WEBHOOK_URL if webhook_url is None else webhook_url
        self.timeout = timeout or settings.HTTP_TIMEOUT_SECONDS
        self.client = client

    @retry_sync(max_retries=2)
    def _post(self, payload: dict) -> httpx.Response:
        if self.client is not None:
            return self.client.post(self.webhook_url, json=payload, timeout=self.timeout)
        with httpx.Client(timeout=self.timeout) as client:
            return client.post(self.webhook_url, json=payload)

    def send(self, user_id: int, event: str, booking) -> bool:
        """
        Notify a user about a booking event.
        Returns: True if delivered (or logged when no webhook is configured)
        """
        payload = {
            "user_id": user_id,
            "event": event,
            "booking_id": booking.id,
            "date_start": booking.date_start.isoformat(),
        }

        if not self.webhook_url:
            logger.info(f"Notification (no webhook configured): {payload}")
            return True

        try:
            self._post(payload).raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"Failed to notify user {user_id} of {event} for booking {booking.id}: {e}")
            return False

        logger.info(f"Notified user {user_id} of {event} for booking {booking.id}")
        return True

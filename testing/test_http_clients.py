# testing/test_http_clients.py
"""
Tests for the smart scheduler client, the notification webhook and the retry decorator,
using httpx.MockTransport instead of real network calls.
"""

import json

import httpx
import pytest

from src.api.holiday_calendar import HolidayCalendar
from src.api.notifier import WebhookNotifier
from src.api.rescheduler import RescheduleDateSelector
from src.api.retry import retry_sync
from src.api.smart_scheduler import SmartSchedulerClient
from src.models import ArrivalType
from testing.engine_test_helpers import FakeConfig, FakeHolidaySource, fixed_clock
from testing.mock_data import generate_mock_booking, generate_mock_region, local


@pytest.fixture(autouse=True)
def no_sleep(monkeypatch):
    monkeypatch.setattr("src.api.retry.time.sleep", lambda seconds: None)


def mock_client(handler):
    return httpx.Client(transport=httpx.MockTransport(handler))


# -------------------
# smart scheduler
# -------------------

def test_recommendation_is_parsed():
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        seen["auth"] = request.headers.get("Authorization")
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"start_time": "2025-01-29T13:00:00-05:00", "providers": [4, 5]})

    client = SmartSchedulerClient(base_url="http://scheduler.test/", api_key="k3y", client=mock_client(handler))
    booking = generate_mock_booking(date_start=local(2025, 1, 22))

    recommendation = client.recommend(booking, ArrivalType.AUTO_RESCHEDULE)

    assert recommendation.start_time == local(2025, 1, 29, 13)
    assert recommendation.providers == [4, 5]
    assert seen["url"] == "http://scheduler.test/recommendations"
    assert seen["auth"] == "Bearer k3y"
    assert seen["body"]["booking_id"] == booking.id
    assert seen["body"]["arrival_type"] == "auto_reschedule"


@pytest.mark.parametrize("response", [
    httpx.Response(204),
    httpx.Response(200, json={}),
    httpx.Response(200, json={"providers": [1]}),
])
def test_empty_recommendation_is_none(response):
    client = SmartSchedulerClient(base_url="http://scheduler.test", client=mock_client(lambda request: response))
    assert client.recommend(generate_mock_booking()) is None


@pytest.mark.parametrize("response", [
    httpx.Response(200, text="<html>gateway</html>"),
    httpx.Response(200, json=["2025-01-29T10:00:00"]),
    httpx.Response(200, json={"start_time": "tomorrow"}),
    httpx.Response(200, json={"start_time": 1738162800}),
])
def test_malformed_recommendation_is_none(response):
    client = SmartSchedulerClient(base_url="http://scheduler.test", client=mock_client(lambda request: response))
    assert client.recommend(generate_mock_booking()) is None


def test_malformed_recommendation_falls_back_to_weekday_policy():
    client = SmartSchedulerClient(
        base_url="http://scheduler.test",
        client=mock_client(lambda request: httpx.Response(200, text="<html>gateway</html>")),
    )
    selector = RescheduleDateSelector(FakeConfig([generate_mock_region()]), HolidayCalendar(FakeHolidaySource()),
                                      recommender=client, clock=fixed_clock(local(2025, 1, 22, 9)))

    candidate = selector.select_candidate(generate_mock_booking(date_start=local(2025, 1, 22)))

    assert candidate.strategy == "weekday_policy"
    assert candidate.start_time == local(2025, 1, 24)


def test_scheduler_error_falls_back_to_none():
    client = SmartSchedulerClient(base_url="http://scheduler.test",
                                  client=mock_client(lambda request: httpx.Response(503)))
    assert client.recommend(generate_mock_booking()) is None


def test_unreachable_scheduler_is_retried_then_none():
    calls = []

    def handler(request):
        calls.append(request)
        raise httpx.ConnectError("connection refused", request=request)

    client = SmartSchedulerClient(base_url="http://scheduler.test", client=mock_client(handler))

    assert client.recommend(generate_mock_booking()) is None
    assert len(calls) == 3


def test_disabled_scheduler_makes_no_calls():
    calls = []
    client = SmartSchedulerClient(base_url="", client=mock_client(lambda request: calls.append(request)))
    assert not client.enabled
    assert client.recommend(generate_mock_booking()) is None
    assert calls == []


# -------------------
# notifications
# -------------------

def test_notification_is_posted():
    posted = []

    def handler(request):
        posted.append(json.loads(request.content))
        return httpx.Response(202)

    notifier = WebhookNotifier(webhook_url="http://notify.test/events", client=mock_client(handler))
    booking = generate_mock_booking(date_start=local(2025, 1, 22))

    assert notifier.send(booking.user_id, "auto_canceled", booking) is True
    assert posted == [{
        "user_id": booking.user_id,
        "event": "auto_canceled",
        "booking_id": booking.id,
        "date_start": local(2025, 1, 22).isoformat(),
    }]


def test_notification_failure_is_not_raised():
    notifier = WebhookNotifier(webhook_url="http://notify.test/events",
                               client=mock_client(lambda request: httpx.Response(500)))
    booking = generate_mock_booking()
    assert notifier.send(booking.user_id, "auto_canceled", booking) is False


def test_notification_without_webhook_only_logs():
    calls = []
    notifier = WebhookNotifier(webhook_url="", client=mock_client(lambda request: calls.append(request)))
    booking = generate_mock_booking()
    assert notifier.send(booking.user_id, "auto_canceled", booking) is True
    assert calls == []


# -------------------
# retry
# -------------------

def test_retry_recovers_after_transient_error():
    attempts = []

    @retry_sync(max_retries=2, sleep=lambda seconds: None)
    def flaky():
        attempts.append(1)
        if len(attempts) < 2:
            raise httpx.ReadTimeout("slow")
        return "ok"

    assert flaky() == "ok"
    assert len(attempts) == 2


def test_retry_does_not_catch_other_errors():
    attempts = []

    @retry_sync(max_retries=3, sleep=lambda seconds: None)
    def broken():
        attempts.append(1)
        raise ValueError("bad payload")

    with pytest.raises(ValueError):
        broken()
    assert len(attempts) == 1


def test_retry_backoff_delays_grow_and_cap():
    delays = []

    @retry_sync(max_retries=3, initial_delay=1.0, max_delay=3.0, sleep=delays.append)
    def always_down():
        raise httpx.ConnectError("down")

    with pytest.raises(httpx.ConnectError):
        always_down()
    assert delays == [1.0, 2.0, 3.0]

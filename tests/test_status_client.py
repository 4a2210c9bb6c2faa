import httpx
import pytest

from emirafrik.client import (
    PaymentStatusClient,
    PaymentStatusError,
    PollingPolicy,
    wait_for_terminal_status,
)
from emirafrik.models import PaymentStatus


class FakeClock:
    def __init__(self):
        self.now = 0.0
        self.sleeps = []

    def __call__(self):
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


def _status_client(statuses):
    answers = iter(statuses)
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"payment_ref": "R1", "status": next(answers)})

    http = httpx.Client(base_url="http://test", transport=httpx.MockTransport(handler))
    return PaymentStatusClient("http://test", token="token-u1", client=http), seen


def test_polls_until_terminal():
    client, seen = _status_client(["pending", "pending", "paid"])
    clock = FakeClock()

    result = wait_for_terminal_status(
        client, "R1", "u1", PollingPolicy(interval=3, max_duration=300), sleep=clock.sleep, clock=clock
    )

    assert result.status is PaymentStatus.PAID
    assert result.attempts == 3
    assert result.timed_out is False
    assert clock.sleeps == [3, 3]
    assert seen[0].url.params["payment_ref"] == "R1"
    assert seen[0].url.params["user_id"] == "u1"
    assert seen[0].headers["Authorization"] == "Bearer token-u1"


def test_gives_up_while_still_pending():
    client, _ = _status_client(["pending"] * 10)
    clock = FakeClock()

    result = wait_for_terminal_status(
        client, "R1", "u1", PollingPolicy(interval=3, max_duration=10), sleep=clock.sleep, clock=clock
    )

    assert result.timed_out is True
    assert result.still_pending
    assert result.attempts == 5
    assert sum(clock.sleeps) == 10


def test_error_envelope_raises():
    def handler(request):
        return httpx.Response(
            404, json={"error": {"code": "PAYMENT_NOT_FOUND", "message": "Payment not found."}}
        )

    http = httpx.Client(base_url="http://test", transport=httpx.MockTransport(handler))
    with PaymentStatusClient("http://test", client=http) as client:
        with pytest.raises(PaymentStatusError) as exc_info:
            client.get_status("missing", "u1")

    assert exc_info.value.status_code == 404
    assert exc_info.value.code == "PAYMENT_NOT_FOUND"

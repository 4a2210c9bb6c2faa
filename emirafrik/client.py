"""Client-side polling of the payment status endpoint.

The server never pushes status changes; callers poll ``GET
/mobile-money/status`` until the payment is terminal or their patience runs
out, in which case the payment is reported as still pending.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable

import httpx

from emirafrik.models.payment import PaymentStatus

logger = logging.getLogger(__name__)


class PaymentStatusError(Exception):
    """The status endpoint answered with an error envelope."""

    def __init__(self, status_code: int, code: str, message: str) -> None:
        super().__init__(f"{status_code} {code}: {message}")
        self.status_code = status_code
        self.code = code
        self.message = message


@dataclass(frozen=True)
class PollingPolicy:
    interval: float = 3.0
    max_duration: float = 300.0


@dataclass(frozen=True)
class PollResult:
    status: PaymentStatus
    payload: dict[str, Any]
    attempts: int
    timed_out: bool

    @property
    def still_pending(self) -> bool:
        return self.status is PaymentStatus.PENDING


class PaymentStatusClient:
    """Thin ``httpx`` wrapper around the status endpoint."""

    def __init__(
        self,
        base_url: str,
        *,
        token: str | None = None,
        timeout: float = 5.0,
        client: httpx.Client | None = None,
    ) -> None:
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        self._client = client or httpx.Client(base_url=base_url, timeout=timeout)
        self._headers = headers

    def get_status(self, payment_ref: str, user_id: str) -> dict[str, Any]:
        response = self._client.get(
            "/mobile-money/status",
            params={"payment_ref": payment_ref, "user_id": user_id},
            headers=self._headers,
        )
        if response.status_code != 200:
            try:
                error = response.json().get("error", {})
            except ValueError:
                error = {}
            raise PaymentStatusError(
                response.status_code,
                error.get("code", "HTTP_ERROR"),
                error.get("message", response.text),
            )
        return response.json()

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "PaymentStatusClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


def wait_for_terminal_status(
    client: PaymentStatusClient,
    payment_ref: str,
    user_id: str,
    policy: PollingPolicy = PollingPolicy(),
    *,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> PollResult:
    """Poll until the payment is terminal or ``policy.max_duration`` elapses."""

    deadline = clock() + policy.max_duration
    attempts = 0
    while True:
        payload = client.get_status(payment_ref, user_id)
        attempts += 1
        current = PaymentStatus(payload["status"])
        if current.is_terminal:
            return PollResult(current, payload, attempts, timed_out=False)

        remaining = deadline - clock()
        if remaining <= 0:
            logger.info(
                "Stopped polling; payment still pending",
                extra={"payment_ref": payment_ref, "attempts": attempts},
            )
            return PollResult(current, payload, attempts, timed_out=True)
        sleep(min(policy.interval, remaining))


__all__ = [
    "PaymentStatusClient",
    "PaymentStatusError",
    "PollResult",
    "PollingPolicy",
    "wait_for_terminal_status",
]

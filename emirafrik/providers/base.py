"""Provider adapter contract shared by every mobile-money network."""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

import httpx

from emirafrik.config import Settings

logger = logging.getLogger(__name__)


class ProviderError(Exception):
    """A checkout initiation that did not succeed (including timeouts)."""

    def __init__(self, provider: str, reason: str) -> None:
        super().__init__(reason)
        self.provider = provider
        self.reason = reason

    def __str__(self) -> str:
        return f"{self.provider}: {self.reason}"


@dataclass(frozen=True)
class CheckoutResult:
    """Outcome of a successful checkout initiation."""

    checkout_uri: str
    external_ref: str
    raw: dict[str, Any] = field(default_factory=dict)


class ProviderAdapter(ABC):
    """Initiates a checkout with one mobile-money network.

    Implementations make exactly one attempt per call and raise
    :class:`ProviderError` on any failure.
    """

    name: str

    @abstractmethod
    def initiate_checkout(
        self,
        *,
        payment_ref: str,
        amount: Decimal,
        phone: str,
        currency: str,
        description: str,
    ) -> CheckoutResult:
        """Start a checkout and return the URI the payer must open."""


def format_amount(amount: Decimal) -> str:
    return str(Decimal(str(amount)).quantize(Decimal("0.01")))


def msisdn(phone: str) -> str:
    """Strip everything but digits (``+237 6 11 12 22 22`` -> ``237611122222``)."""

    return "".join(ch for ch in phone if ch.isdigit())


def deep_link(provider: str, payment_ref: str) -> str:
    return f"{provider}://pay?ref={payment_ref}"


class HttpProviderAdapter(ProviderAdapter):
    """Base class for adapters talking to a provider's HTTP API."""

    def __init__(self, settings: Settings, *, client: httpx.Client | None = None) -> None:
        self.settings = settings
        self._client = client

    def _require(self, value: str | None, setting_name: str) -> str:
        if not value:
            raise ProviderError(self.name, f"{setting_name} is not configured.")
        return value

    def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """Send one request, turning every transport or HTTP failure into ProviderError."""

        timeout = self.settings.MOMO_PROVIDER_TIMEOUT_SECONDS
        try:
            if self._client is not None:
                response = self._client.request(method, url, timeout=timeout, **kwargs)
            else:
                with httpx.Client(timeout=timeout) as client:
                    response = client.request(method, url, **kwargs)
            response.raise_for_status()
        except httpx.TimeoutException as exc:
            logger.warning("Provider call timed out", extra={"provider": self.name, "url": url})
            raise ProviderError(self.name, "Provider did not respond in time.") from exc
        except httpx.HTTPStatusError as exc:
            logger.warning(
                "Provider rejected checkout",
                extra={"provider": self.name, "status_code": exc.response.status_code},
            )
            raise ProviderError(
                self.name, f"Provider rejected the request (HTTP {exc.response.status_code})."
            ) from exc
        except httpx.HTTPError as exc:
            logger.warning("Provider call failed", extra={"provider": self.name, "error": str(exc)})
            raise ProviderError(self.name, "Provider is unreachable.") from exc
        return response

    def _json(self, response: httpx.Response) -> dict[str, Any]:
        try:
            body = response.json()
        except ValueError as exc:
            raise ProviderError(self.name, "Provider returned a malformed response.") from exc
        if not isinstance(body, dict):
            raise ProviderError(self.name, "Provider returned a malformed response.")
        return body


__all__ = [
    "ProviderError",
    "CheckoutResult",
    "ProviderAdapter",
    "HttpProviderAdapter",
    "format_amount",
    "msisdn",
    "deep_link",
]

"""Sandbox adapter standing in for a provider when no credentials exist."""
from __future__ import annotations

import logging
import random
from decimal import Decimal
from typing import Callable
from uuid import uuid4

from emirafrik.utils.time import epoch_millis

from .base import CheckoutResult, ProviderAdapter, ProviderError, deep_link

logger = logging.getLogger(__name__)

# Observed sandbox acceptance rates per network.
SIMULATED_SUCCESS_RATES = {
    "mtn": 0.90,
    "orange": 0.85,
    "airtel": 0.88,
}

_PROVIDER_LABELS = {
    "mtn": "MTN",
    "orange": "ORANGE",
    "airtel": "AIRTEL",
}


class SimulatedProviderAdapter(ProviderAdapter):
    """Accepts or declines checkouts at the network's sandbox success rate.

    ``force_outcome`` pins the result (``True`` accept, ``False`` decline) so
    sandbox demos and tests are deterministic.
    """

    def __init__(
        self,
        provider: str,
        *,
        success_rate: float | None = None,
        rng: Callable[[], float] = random.random,
        force_outcome: bool | None = None,
    ) -> None:
        self.name = provider
        self.success_rate = SIMULATED_SUCCESS_RATES[provider] if success_rate is None else success_rate
        self._rng = rng
        self._force_outcome = force_outcome

    def _succeeds(self) -> bool:
        if self._force_outcome is not None:
            return self._force_outcome
        return self._rng() < self.success_rate

    def initiate_checkout(
        self,
        *,
        payment_ref: str,
        amount: Decimal,
        phone: str,
        currency: str,
        description: str,
    ) -> CheckoutResult:
        label = _PROVIDER_LABELS[self.name]
        if not self._succeeds():
            logger.info("Simulated checkout declined", extra={"provider": self.name, "payment_ref": payment_ref})
            raise ProviderError(self.name, "Payment failed - insufficient balance or network error")

        external_ref = f"{label}_{epoch_millis()}_{uuid4().hex[:9]}"
        return CheckoutResult(
            checkout_uri=deep_link(self.name, payment_ref),
            external_ref=external_ref,
            raw={
                "simulated": True,
                "transaction_id": external_ref,
                "message": f"Payment initiated successfully via {label} Mobile Money",
            },
        )

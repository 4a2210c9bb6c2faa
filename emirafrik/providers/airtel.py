"""Airtel Money merchant payments adapter."""
from __future__ import annotations

from decimal import Decimal

from .base import CheckoutResult, HttpProviderAdapter, ProviderError, deep_link, format_amount, msisdn


class AirtelMoneyAdapter(HttpProviderAdapter):
    """Sends an Airtel Money USSD push for the payer to approve."""

    name = "airtel"

    def initiate_checkout(
        self,
        *,
        payment_ref: str,
        amount: Decimal,
        phone: str,
        currency: str,
        description: str,
    ) -> CheckoutResult:
        settings = self.settings
        token = self._require(settings.AIRTEL_MONEY_ACCESS_TOKEN, "AIRTEL_MONEY_ACCESS_TOKEN")
        country = settings.AIRTEL_MONEY_COUNTRY
        body = {
            "reference": description,
            "subscriber": {"country": country, "currency": currency, "msisdn": msisdn(phone)},
            "transaction": {
                "amount": format_amount(amount),
                "country": country,
                "currency": currency,
                "id": payment_ref,
            },
        }
        response = self._request(
            "POST",
            f"{settings.AIRTEL_MONEY_BASE_URL}/merchant/v1/payments/",
            json=body,
            headers={
                "Authorization": f"Bearer {token}",
                "X-Country": country,
                "X-Currency": currency,
            },
        )
        data = self._json(response)
        outcome = data.get("status") or {}
        transaction = (data.get("data") or {}).get("transaction") or {}
        if not outcome.get("success") or not transaction.get("id"):
            raise ProviderError(self.name, outcome.get("message") or "Airtel Money declined the payment.")
        return CheckoutResult(
            checkout_uri=deep_link(self.name, payment_ref),
            external_ref=str(transaction["id"]),
            raw=data,
        )

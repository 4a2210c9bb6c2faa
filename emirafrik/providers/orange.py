"""Orange Money WebPay adapter."""
from __future__ import annotations

from decimal import Decimal

from .base import CheckoutResult, HttpProviderAdapter, ProviderError, format_amount


class OrangeMoneyAdapter(HttpProviderAdapter):
    """Creates an Orange Money web payment and returns its hosted page."""

    name = "orange"

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
        token = self._require(settings.ORANGE_MONEY_ACCESS_TOKEN, "ORANGE_MONEY_ACCESS_TOKEN")
        body = {
            "merchant_key": self._require(
                settings.ORANGE_MONEY_MERCHANT_KEY, "ORANGE_MONEY_MERCHANT_KEY"
            ),
            "currency": currency,
            "order_id": payment_ref,
            "amount": format_amount(amount),
            "return_url": settings.MOMO_RETURN_URL,
            "cancel_url": settings.MOMO_RETURN_URL,
            "notif_url": settings.MOMO_CALLBACK_URL or settings.MOMO_RETURN_URL,
            "lang": "fr",
            "reference": description,
        }
        response = self._request(
            "POST",
            f"{settings.ORANGE_MONEY_BASE_URL}/orange-money-webpay/"
            f"{settings.ORANGE_MONEY_COUNTRY}/v1/webpayment",
            json=body,
            headers={"Authorization": f"Bearer {token}", "Accept": "application/json"},
        )
        data = self._json(response)
        payment_url = data.get("payment_url")
        pay_token = data.get("pay_token")
        if not payment_url or not pay_token:
            raise ProviderError(self.name, data.get("message") or "Orange Money did not return a payment page.")
        return CheckoutResult(checkout_uri=payment_url, external_ref=pay_token, raw=data)

"""MTN MoMo Collection API adapter (request-to-pay)."""
from __future__ import annotations

import logging
from decimal import Decimal
from uuid import uuid4

from .base import CheckoutResult, HttpProviderAdapter, ProviderError, deep_link, format_amount, msisdn

logger = logging.getLogger(__name__)


class MtnMomoAdapter(HttpProviderAdapter):
    """Pushes a request-to-pay prompt to the payer's MTN handset.

    MTN has no hosted checkout page, so the checkout URI is the app deep link;
    the payer approves the USSD prompt and MTN calls our webhook.
    """

    name = "mtn"

    def _access_token(self) -> str:
        settings = self.settings
        response = self._request(
            "POST",
            f"{settings.MTN_MOMO_BASE_URL}/collection/token/",
            auth=(
                self._require(settings.MTN_MOMO_API_USER, "MTN_MOMO_API_USER"),
                self._require(settings.MTN_MOMO_API_KEY, "MTN_MOMO_API_KEY"),
            ),
            headers={"Ocp-Apim-Subscription-Key": self._subscription_key()},
        )
        token = self._json(response).get("access_token")
        if not token:
            raise ProviderError(self.name, "MTN did not return an access token.")
        return token

    def _subscription_key(self) -> str:
        return self._require(self.settings.MTN_MOMO_SUBSCRIPTION_KEY, "MTN_MOMO_SUBSCRIPTION_KEY")

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
        reference_id = str(uuid4())  # MTN requires a UUID v4 here
        headers = {
            "Authorization": f"Bearer {self._access_token()}",
            "X-Reference-Id": reference_id,
            "X-Target-Environment": settings.MTN_MOMO_TARGET_ENVIRONMENT,
            "Ocp-Apim-Subscription-Key": self._subscription_key(),
        }
        if settings.MOMO_CALLBACK_URL:
            headers["X-Callback-Url"] = settings.MOMO_CALLBACK_URL

        body = {
            "amount": format_amount(amount),
            "currency": currency,
            "externalId": payment_ref,
            "payer": {"partyIdType": "MSISDN", "partyId": msisdn(phone)},
            "payerMessage": description,
            "payeeNote": payment_ref,
        }
        response = self._request(
            "POST",
            f"{settings.MTN_MOMO_BASE_URL}/collection/v1_0/requesttopay",
            json=body,
            headers=headers,
        )
        logger.info(
            "MTN request-to-pay accepted",
            extra={"payment_ref": payment_ref, "reference_id": reference_id},
        )
        return CheckoutResult(
            checkout_uri=deep_link(self.name, payment_ref),
            external_ref=reference_id,
            raw={"status_code": response.status_code, "reference_id": reference_id},
        )

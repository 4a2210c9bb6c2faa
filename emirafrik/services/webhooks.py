"""Services handling mobile-money provider webhook callbacks."""
from __future__ import annotations

import hashlib
import hmac
import logging
import time
from typing import Any, Mapping

from fastapi import status
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from emirafrik.config import get_settings
from emirafrik.models import Payment, PaymentStatus
from emirafrik.schemas.payment import MomoWebhookPayload, WebhookAck
from emirafrik.services import notifications
from emirafrik.services.payments import mark_terminal
from emirafrik.utils.audit import log_audit
from emirafrik.utils.errors import (
    INTERNAL_ERROR,
    INVALID_PAYLOAD,
    payment_not_found,
    raise_api_error,
)
from emirafrik.utils.time import parse_webhook_timestamp

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "X-Momo-Signature"
TIMESTAMP_HEADER = "X-Momo-Timestamp"


def _current_settings():
    return get_settings()


def _get_header(headers: Mapping[str, str], key: str) -> str | None:
    for h_key, value in headers.items():
        if h_key.lower() == key.lower():
            return value
    return None


def compute_webhook_signature(secret: str, body: bytes, timestamp: str) -> str:
    """HMAC-SHA256 over ``"{timestamp}.{body}"``."""

    msg = timestamp.encode("utf-8") + b"." + body
    return hmac.new(secret.encode("utf-8"), msg, hashlib.sha256).hexdigest()


def verify_webhook_signature(raw_body: bytes, headers: Mapping[str, str]) -> None:
    """Check the provider signature when a webhook secret is configured.

    Without ``MOMO_WEBHOOK_SECRET`` only the payload shape is validated.
    """

    settings = _current_settings()
    secret = settings.momo_webhook_secret
    if not secret:
        return

    provided_sig = _get_header(headers, SIGNATURE_HEADER)
    ts = _get_header(headers, TIMESTAMP_HEADER)
    if not provided_sig or not ts:
        logger.warning("Webhook signature or timestamp missing")
        raise_api_error(
            status.HTTP_401_UNAUTHORIZED,
            "WEBHOOK_SIGNATURE_MISSING",
            "Signature or timestamp header missing.",
        )

    try:
        ts_seconds = parse_webhook_timestamp(ts)
    except ValueError:
        raise_api_error(
            status.HTTP_401_UNAUTHORIZED,
            "WEBHOOK_TIMESTAMP_INVALID",
            "Invalid timestamp format.",
        )

    age = abs(int(time.time()) - ts_seconds)
    max_drift = settings.momo_webhook_max_drift_seconds
    if age > max_drift:
        logger.warning("Webhook timestamp outside allowed window", extra={"age": age})
        raise_api_error(
            status.HTTP_401_UNAUTHORIZED,
            "WEBHOOK_TIMESTAMP_DRIFT",
            "Webhook timestamp is outside allowed window.",
            {"age_seconds": age, "max_drift_seconds": max_drift},
        )

    expected = compute_webhook_signature(secret, raw_body, ts)
    if not hmac.compare_digest(expected, provided_sig):
        logger.warning("Webhook signature mismatch")
        raise_api_error(
            status.HTTP_401_UNAUTHORIZED,
            "WEBHOOK_SIGNATURE_INVALID",
            "Invalid webhook signature.",
        )


def _parse_payload(payload: Any) -> MomoWebhookPayload:
    if not isinstance(payload, Mapping):
        raise_api_error(
            status.HTTP_400_BAD_REQUEST,
            INVALID_PAYLOAD,
            "Webhook body must be a JSON object.",
        )
    try:
        return MomoWebhookPayload.model_validate(payload)
    except ValidationError as exc:
        fields = sorted({str(err["loc"][0]) for err in exc.errors() if err.get("loc")})
        raise_api_error(
            status.HTTP_400_BAD_REQUEST,
            INVALID_PAYLOAD,
            "payment_ref and a terminal status (paid, failed, cancelled) are required.",
            {"fields": fields},
        )


def _check_reported_amount(payment: Payment, event: MomoWebhookPayload) -> dict[str, str]:
    """Return discrepancies between the notification and the stored payment."""

    mismatches: dict[str, str] = {}
    if event.amount is not None and event.amount != payment.amount:
        mismatches["reported_amount"] = str(event.amount)
    if event.currency and event.currency.upper() != payment.currency:
        mismatches["reported_currency"] = event.currency
    if mismatches:
        logger.warning(
            "Webhook amount differs from recorded payment",
            extra={"payment_ref": payment.id, **mismatches},
        )
    return mismatches


def _notify_owner(db: Session, payment: Payment) -> None:
    """Create the success notification; failures never undo the payment update."""

    try:
        notifications.notify_payment_success(db, payment)
        db.commit()
    except Exception:  # noqa: BLE001
        db.rollback()
        logger.exception("Payment notification failed", extra={"payment_ref": payment.id})


def reconcile_webhook(db: Session, payload: Any) -> WebhookAck:
    """Apply a provider's terminal status to the referenced payment exactly once.

    Duplicate or late deliveries for an already-terminal payment are accepted
    without touching the record.
    """

    event = _parse_payload(payload)
    payment = db.get(Payment, event.payment_ref, populate_existing=True)
    if payment is None:
        logger.info("Webhook for unknown payment", extra={"payment_ref": event.payment_ref})
        payment_not_found()

    if payment.status.is_terminal:
        logger.info(
            "Payment already in terminal state; webhook ignored",
            extra={
                "payment_ref": payment.id,
                "stored_status": payment.status.value,
                "reported_status": event.status.value,
            },
        )
        return WebhookAck(message=f"Payment already {payment.status.value}.")

    mismatches = _check_reported_amount(payment, event)
    try:
        applied = mark_terminal(
            db,
            payment.id,
            event.status,
            transaction_id=event.transaction_id,
        )
        if applied:
            log_audit(
                db,
                actor=f"provider:{payment.provider.value}",
                action=f"PAYMENT_{event.status.value.upper()}",
                entity="Payment",
                entity_id=payment.id,
                data={"transaction_id": event.transaction_id, **mismatches},
            )
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to reconcile payment", extra={"payment_ref": payment.id})
        raise_api_error(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            INTERNAL_ERROR,
            "The payment status could not be updated.",
        )

    if not applied:
        logger.info(
            "Concurrent webhook already settled payment",
            extra={"payment_ref": payment.id, "reported_status": event.status.value},
        )
        return WebhookAck(message="Payment already settled.")

    logger.info(
        "Payment reconciled",
        extra={
            "payment_ref": payment.id,
            "status": event.status.value,
            "transaction_id": event.transaction_id,
        },
    )
    if event.status is PaymentStatus.PAID:
        db.refresh(payment)
        _notify_owner(db, payment)
    return WebhookAck(message=f"Payment marked as {event.status.value}.")


__all__ = [
    "SIGNATURE_HEADER",
    "TIMESTAMP_HEADER",
    "compute_webhook_signature",
    "verify_webhook_signature",
    "reconcile_webhook",
]

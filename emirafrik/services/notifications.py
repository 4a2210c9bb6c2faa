"""Notifications shown to patients about their payments."""
from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from emirafrik.models import Notification, Payment

logger = logging.getLogger(__name__)

PAYMENT_SUCCESS = "payment_success"


def notify_payment_success(db: Session, payment: Payment) -> Notification:
    """Stage the "payment received" notification for the payment's owner."""

    notification = Notification(
        user_id=payment.user_id,
        type=PAYMENT_SUCCESS,
        title="Payment received",
        message=(
            f"Your payment of {payment.amount} {payment.currency} via "
            f"{payment.provider.value.upper()} Mobile Money was successful. "
            f"Reference: {payment.id}."
        ),
        payment_id=payment.id,
    )
    db.add(notification)
    db.flush()
    logger.info(
        "Payment notification created",
        extra={"payment_ref": payment.id, "notification_id": notification.id},
    )
    return notification


__all__ = ["PAYMENT_SUCCESS", "notify_payment_success"]

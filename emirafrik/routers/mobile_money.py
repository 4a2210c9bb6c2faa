"""Mobile-money payment routes: initiation, provider webhook and status polls."""
from __future__ import annotations

import json
import logging

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from emirafrik.db import get_db
from emirafrik.schemas.payment import (
    PaymentInitiateRequest,
    PaymentInitiateResponse,
    PaymentStatusRead,
    WebhookAck,
)
from emirafrik.security import require_user_id, status_caller_id
from emirafrik.services import payments as payments_service
from emirafrik.services import webhooks
from emirafrik.utils.errors import FORBIDDEN, INVALID_PAYLOAD, raise_api_error

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/mobile-money", tags=["mobile-money"])


@router.post("/pay", response_model=PaymentInitiateResponse, status_code=status.HTTP_200_OK)
def initiate_payment(
    payload: PaymentInitiateRequest,
    caller_user_id: str = Depends(require_user_id),
    db: Session = Depends(get_db),
) -> PaymentInitiateResponse:
    """Start a mobile-money checkout for the authenticated user."""

    return payments_service.initiate_payment(db, caller_user_id=caller_user_id, request=payload)


@router.post("/webhook", response_model=WebhookAck, status_code=status.HTTP_200_OK)
async def momo_webhook(request: Request, db: Session = Depends(get_db)) -> WebhookAck:
    raw_body = await request.body()
    webhooks.verify_webhook_signature(raw_body, dict(request.headers.items()))

    try:
        payload = json.loads(raw_body or b"null")
    except ValueError:
        raise_api_error(status.HTTP_400_BAD_REQUEST, INVALID_PAYLOAD, "Webhook body is not valid JSON.")

    return webhooks.reconcile_webhook(db, payload)


@router.get("/status", response_model=PaymentStatusRead)
def payment_status(
    payment_ref: str = Query(min_length=1),
    user_id: str = Query(min_length=1),
    caller_user_id: str | None = Depends(status_caller_id),
    db: Session = Depends(get_db),
) -> PaymentStatusRead:
    """Point-in-time status for client polling."""

    if caller_user_id is not None and caller_user_id != user_id:
        raise_api_error(
            status.HTTP_403_FORBIDDEN,
            FORBIDDEN,
            "You can only check the status of your own payments.",
        )
    return payments_service.get_payment_status(db, payment_ref=payment_ref, user_id=user_id)


__all__ = ["router"]

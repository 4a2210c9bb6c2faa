"""Mobile-money payment initiation, status lookup and state transitions."""
import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional
from uuid import uuid4

from fastapi import status
from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from emirafrik.config import get_settings
from emirafrik.models import MomoProvider, Payment, PaymentStatus
from emirafrik.providers import ProviderAdapter, ProviderError, get_provider_adapter
from emirafrik.schemas.payment import (
    PaymentInitiateRequest,
    PaymentInitiateResponse,
    PaymentStatusRead,
)
from emirafrik.utils.audit import log_audit, mask_phone
from emirafrik.utils.errors import (
    FORBIDDEN,
    INTERNAL_ERROR,
    PROVIDER_ERROR,
    invalid_input,
    payment_not_found,
    raise_api_error,
)
from emirafrik.utils.time import epoch_millis, utcnow

logger = logging.getLogger(__name__)

_CENT = Decimal("0.01")
# Numeric(18, 2) holds at most 16 integer digits
_MAX_AMOUNT = Decimal("1e16")


def generate_payment_ref(provider: MomoProvider | str, *, prefix: str | None = None) -> str:
    """Build ``{APP}_{PROVIDER}_{millis}_{random}``.

    The 48-bit random suffix keeps references unique even when many are
    minted within the same millisecond.
    """

    prefix = prefix or get_settings().APP_NAME_PREFIX
    label = MomoProvider(provider).value.upper()
    return f"{prefix}_{label}_{epoch_millis()}_{uuid4().hex[:12]}"


def _validated_amount(amount: Decimal) -> Decimal:
    if not amount.is_finite() or amount <= 0:
        invalid_input("amount", "amount must be a positive number.")
    if amount >= _MAX_AMOUNT:
        invalid_input("amount", "amount is too large.")
    quantized = amount.quantize(_CENT, rounding=ROUND_HALF_UP)
    if quantized <= 0:
        invalid_input("amount", "amount must be at least 0.01.")
    if quantized >= _MAX_AMOUNT:
        invalid_input("amount", "amount is too large.")
    return quantized


def _validated_provider(provider: str) -> MomoProvider:
    try:
        return MomoProvider(provider.strip().lower())
    except ValueError:
        supported = ", ".join(p.value for p in MomoProvider)
        invalid_input("provider", f"provider must be one of: {supported}.")


def _validated_currency(currency: Optional[str]) -> str:
    if currency is None or not currency.strip():
        return get_settings().DEFAULT_CURRENCY
    code = currency.strip().upper()
    if len(code) != 3 or not code.isalpha():
        invalid_input("currency", "currency must be a 3-letter ISO code.")
    return code


def initiate_payment(
    db: Session,
    *,
    caller_user_id: str,
    request: PaymentInitiateRequest,
    adapter: ProviderAdapter | None = None,
) -> PaymentInitiateResponse:
    """Start a checkout with the provider and record it as ``pending``.

    Nothing is written unless the provider accepted the checkout, and the
    checkout URI is only returned once the payment row is committed.
    """

    if request.user_id != caller_user_id:
        logger.warning(
            "Payment initiation for another user rejected",
            extra={"caller_user_id": caller_user_id, "user_id": request.user_id},
        )
        raise_api_error(
            status.HTTP_403_FORBIDDEN,
            FORBIDDEN,
            "You can only initiate payments for your own account.",
        )

    amount = _validated_amount(request.amount)
    provider = _validated_provider(request.provider)
    if not request.phone:
        invalid_input("phone", "phone must not be empty.")
    currency = _validated_currency(request.currency)
    description = request.description or get_settings().DEFAULT_DESCRIPTION

    payment_ref = generate_payment_ref(provider)
    adapter = adapter or get_provider_adapter(provider)
    try:
        result = adapter.initiate_checkout(
            payment_ref=payment_ref,
            amount=amount,
            phone=request.phone,
            currency=currency,
            description=description,
        )
    except ProviderError as exc:
        logger.warning(
            "Provider checkout failed",
            extra={"payment_ref": payment_ref, "provider": provider.value, "reason": exc.reason},
        )
        raise_api_error(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            PROVIDER_ERROR,
            exc.reason,
            {"provider": provider.value},
        )

    payment = Payment(
        id=payment_ref,
        user_id=caller_user_id,
        amount=amount,
        currency=currency,
        provider=provider,
        phone=request.phone,
        description=description,
        status=PaymentStatus.PENDING,
        checkout_uri=result.checkout_uri,
        external_ref=result.external_ref,
        provider_metadata=result.raw,
    )
    try:
        db.add(payment)
        log_audit(
            db,
            actor=f"user:{caller_user_id}",
            action="PAYMENT_INITIATED",
            entity="Payment",
            entity_id=payment_ref,
            data={
                "provider": provider.value,
                "amount": str(amount),
                "currency": currency,
                "phone": request.phone,
                "external_ref": result.external_ref,
            },
        )
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception(
            "Failed to record initiated payment",
            extra={"payment_ref": payment_ref, "provider": provider.value},
        )
        raise_api_error(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            INTERNAL_ERROR,
            "The payment could not be recorded. Please start a new payment.",
        )

    logger.info(
        "Payment initiated",
        extra={
            "payment_ref": payment_ref,
            "provider": provider.value,
            "amount": str(amount),
            "currency": currency,
            "phone": mask_phone(request.phone),
        },
    )
    message = result.raw.get("message") or (
        f"Payment initiated successfully via {provider.value.upper()} Mobile Money"
    )
    return PaymentInitiateResponse(
        payment_ref=payment_ref,
        checkout_uri=result.checkout_uri,
        message=message,
        status=PaymentStatus.PENDING,
    )


def get_payment_status(db: Session, *, payment_ref: str, user_id: str) -> PaymentStatusRead:
    """Return the payment owned by ``user_id``; foreign references look absent."""

    stmt = select(Payment).where(Payment.id == payment_ref, Payment.user_id == user_id)
    payment = db.scalars(stmt).first()
    if payment is None:
        payment_not_found()

    return PaymentStatusRead(
        payment_ref=payment.id,
        status=payment.status,
        amount=payment.amount,
        currency=payment.currency,
        provider=payment.provider,
        created_at=payment.created_at,
        paid_at=payment.paid_at,
        transaction_id=payment.transaction_id,
    )


def mark_terminal(
    db: Session,
    payment_ref: str,
    new_status: PaymentStatus,
    *,
    transaction_id: str | None = None,
) -> bool:
    """Move a ``pending`` payment to ``new_status`` with one conditional UPDATE.

    Returns ``False`` when the payment was no longer pending, which is how a
    concurrent delivery that lost the race finds out. The caller commits.
    """

    if not new_status.is_terminal:
        raise ValueError(f"{new_status.value} is not a terminal status")

    now = utcnow()
    values: dict[str, object] = {"status": new_status, "updated_at": now}
    if transaction_id:
        values["transaction_id"] = transaction_id
    if new_status is PaymentStatus.PAID:
        values["paid_at"] = now

    stmt = (
        update(Payment)
        .where(Payment.id == payment_ref, Payment.status == PaymentStatus.PENDING)
        .values(**values)
    )
    result = db.execute(stmt)
    return result.rowcount == 1


__all__ = [
    "generate_payment_ref",
    "initiate_payment",
    "get_payment_status",
    "mark_terminal",
]

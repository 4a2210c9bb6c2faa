"""Schemas for mobile-money payment endpoints."""
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from emirafrik.models.payment import MomoProvider, PaymentStatus


class PaymentInitiateRequest(BaseModel):
    """Body of ``POST /mobile-money/pay``.

    Types and column lengths are enforced here; business rules (positive
    amount, known provider, non-empty phone) are checked by the payment
    service so the error names the offending field.
    """

    user_id: str = Field(alias="userId", max_length=64)
    amount: Decimal
    provider: str
    phone: str = Field(max_length=32)
    currency: str | None = None
    description: str | None = Field(default=None, max_length=255)

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)


class PaymentInitiateResponse(BaseModel):
    success: bool = True
    payment_ref: str
    checkout_uri: str
    message: str
    status: PaymentStatus = PaymentStatus.PENDING


class MomoWebhookPayload(BaseModel):
    """Provider notification; unknown keys (including ``user_id``) are ignored."""

    payment_ref: str = Field(min_length=1)
    status: PaymentStatus
    transaction_id: str | None = None
    amount: Decimal | None = None
    currency: str | None = None

    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    @field_validator("status", mode="before")
    @classmethod
    def _normalise_status(cls, value):
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @field_validator("status")
    @classmethod
    def _terminal_only(cls, value: PaymentStatus) -> PaymentStatus:
        if not value.is_terminal:
            raise ValueError("status must be one of paid, failed, cancelled")
        return value


class WebhookAck(BaseModel):
    success: bool = True
    message: str


class PaymentStatusRead(BaseModel):
    payment_ref: str
    status: PaymentStatus
    amount: Decimal
    currency: str
    provider: MomoProvider
    created_at: datetime
    paid_at: datetime | None
    transaction_id: str | None

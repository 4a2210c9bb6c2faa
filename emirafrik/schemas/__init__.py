"""Schema package exports."""
from .payment import (
    MomoWebhookPayload,
    PaymentInitiateRequest,
    PaymentInitiateResponse,
    PaymentStatusRead,
    WebhookAck,
)

__all__ = [
    "MomoWebhookPayload",
    "PaymentInitiateRequest",
    "PaymentInitiateResponse",
    "PaymentStatusRead",
    "WebhookAck",
]

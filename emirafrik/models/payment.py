"""Mobile-money payment model definitions."""
import enum
from datetime import datetime
from decimal import Decimal

from sqlalchemy import CheckConstraint, DateTime, Enum as SqlEnum, Index, JSON, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


def _enum_values(enum_cls: type[enum.Enum]) -> list[str]:
    return [member.value for member in enum_cls]


class PaymentStatus(str, enum.Enum):
    """Possible statuses for a mobile-money payment."""

    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self is not PaymentStatus.PENDING


class MomoProvider(str, enum.Enum):
    """Supported mobile-money networks."""

    MTN = "mtn"
    ORANGE = "orange"
    AIRTEL = "airtel"


class Payment(Base):
    """A mobile-money checkout initiated by a patient.

    The primary key is the payment reference handed to the provider, which
    doubles as the idempotency key for webhook reconciliation.
    """

    __tablename__ = "momo_payments"
    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_momo_payment_positive_amount"),
        Index("ix_momo_payments_user_created", "user_id", "created_at"),
        Index("ix_momo_payments_status", "status"),
    )

    id: Mapped[str] = mapped_column(String(128), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="USD")
    provider: Mapped[MomoProvider] = mapped_column(
        SqlEnum(
            MomoProvider,
            name="momo_provider",
            native_enum=False,
            length=16,
            values_callable=_enum_values,
        ),
        nullable=False,
    )
    phone: Mapped[str] = mapped_column(String(32), nullable=False)
    description: Mapped[str | None] = mapped_column(String(255), nullable=True)
    status: Mapped[PaymentStatus] = mapped_column(
        SqlEnum(
            PaymentStatus,
            name="momo_payment_status",
            native_enum=False,
            length=16,
            values_callable=_enum_values,
        ),
        nullable=False,
        default=PaymentStatus.PENDING,
    )
    checkout_uri: Mapped[str] = mapped_column(String(512), nullable=False)
    external_ref: Mapped[str | None] = mapped_column(String(128), nullable=True)
    transaction_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    paid_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    provider_metadata: Mapped[dict] = mapped_column("metadata", JSON, nullable=False, default=dict)

"""ORM models package."""
from .audit import AuditLog
from .base import Base
from .notification import Notification
from .payment import MomoProvider, Payment, PaymentStatus
from .scheduler_lock import SchedulerLock

__all__ = [
    "AuditLog",
    "Base",
    "MomoProvider",
    "Notification",
    "Payment",
    "PaymentStatus",
    "SchedulerLock",
]

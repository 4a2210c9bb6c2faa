"""Background job expiring checkouts that were never completed."""
from __future__ import annotations

import logging
from datetime import datetime, timedelta

from sqlalchemy import select
from sqlalchemy.orm import Session

from emirafrik import db
from emirafrik.config import get_settings
from emirafrik.core.runtime_state import record_expiry_sweep
from emirafrik.models import Payment, PaymentStatus
from emirafrik.services.payments import mark_terminal
from emirafrik.utils.audit import log_audit
from emirafrik.utils.time import utcnow

logger = logging.getLogger(__name__)


def expire_stale_payments(db_session: Session, *, older_than: timedelta, now: datetime | None = None) -> int:
    """Cancel payments still pending after ``older_than``; returns how many moved.

    Uses the same conditional update as the webhook, so a webhook that lands
    first always wins.
    """

    now = now or utcnow()
    cutoff = now - older_than
    refs = db_session.scalars(
        select(Payment.id).where(
            Payment.status == PaymentStatus.PENDING,
            Payment.created_at <= cutoff,
        )
    ).all()

    expired = 0
    for ref in refs:
        if mark_terminal(db_session, ref, PaymentStatus.CANCELLED):
            log_audit(
                db_session,
                actor="system:expiry",
                action="PAYMENT_CANCELLED",
                entity="Payment",
                entity_id=ref,
                data={"reason": "pending_timeout", "cutoff": cutoff.isoformat()},
            )
            expired += 1
    db_session.commit()
    if expired:
        logger.info("Expired stale pending payments", extra={"count": expired})
    return expired


def expire_stale_payments_once() -> None:
    """Scheduler entry point; no-op unless PENDING_PAYMENT_EXPIRY_HOURS is set."""

    hours = get_settings().PENDING_PAYMENT_EXPIRY_HOURS
    if not hours:
        return

    session = db.get_sessionmaker()()
    try:
        expired = expire_stale_payments(session, older_than=timedelta(hours=hours))
    finally:
        session.close()
    record_expiry_sweep(utcnow(), expired)

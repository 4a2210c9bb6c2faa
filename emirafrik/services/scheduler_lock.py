"""DB-backed lease so only one runner executes the payment expiry job."""
from __future__ import annotations

import os
import socket
from contextlib import contextmanager
from datetime import timedelta
from typing import Iterator

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from emirafrik import db
from emirafrik.models.scheduler_lock import SchedulerLock
from emirafrik.utils.time import ensure_aware, utcnow

LOCK_NAME = "payment-expiry"
LOCK_TTL_SECONDS = 300


@contextmanager
def _session_scope(db_session: Session | None) -> Iterator[Session]:
    if db_session is not None:
        yield db_session
        return
    session = db.get_sessionmaker()()
    try:
        yield session
    finally:
        session.close()


def _owner_id() -> str:
    return f"{socket.gethostname()}-{os.getpid()}"


def try_acquire_scheduler_lock(
    name: str = LOCK_NAME,
    *,
    ttl_seconds: int = LOCK_TTL_SECONDS,
    db_session: Session | None = None,
) -> bool:
    """Take the lease if it is free, expired, or already ours."""

    owner = _owner_id()
    now = utcnow()
    expires = now + timedelta(seconds=ttl_seconds)

    with _session_scope(db_session) as session:
        lock = session.scalars(select(SchedulerLock).where(SchedulerLock.name == name)).first()
        if lock is None:
            session.add(SchedulerLock(name=name, owner=owner, acquired_at=now, expires_at=expires))
            try:
                session.commit()
            except IntegrityError:
                # another runner inserted the row first
                session.rollback()
                return False
            return True

        # conditional takeover so two runners cannot both steal an expired lease
        stmt = (
            update(SchedulerLock)
            .where(SchedulerLock.id == lock.id, SchedulerLock.owner == lock.owner)
            .values(owner=owner, acquired_at=now, expires_at=expires)
        )
        if lock.owner != owner and ensure_aware(lock.expires_at) > now:
            return False
        taken = session.execute(stmt).rowcount == 1
        session.commit()
        return taken


def refresh_scheduler_lock(
    name: str = LOCK_NAME, *, ttl_seconds: int = LOCK_TTL_SECONDS, db_session: Session | None = None
) -> None:
    """Extend the lease when this runner owns it."""

    with _session_scope(db_session) as session:
        session.execute(
            update(SchedulerLock)
            .where(SchedulerLock.name == name, SchedulerLock.owner == _owner_id())
            .values(expires_at=utcnow() + timedelta(seconds=ttl_seconds))
        )
        session.commit()


def release_scheduler_lock(name: str = LOCK_NAME, *, db_session: Session | None = None) -> None:
    """Drop the lease if this runner holds it."""

    with _session_scope(db_session) as session:
        session.execute(
            delete(SchedulerLock).where(
                SchedulerLock.name == name, SchedulerLock.owner == _owner_id()
            )
        )
        session.commit()


def describe_scheduler_lock(name: str = LOCK_NAME, *, db_session: Session | None = None) -> dict[str, object]:
    """Return a lightweight description of the current lease for the health check."""

    with _session_scope(db_session) as session:
        lock = session.scalars(select(SchedulerLock).where(SchedulerLock.name == name)).first()
        if lock is None:
            return {"status": "none", "owner": None, "present": False}

        expires_in = (ensure_aware(lock.expires_at) - utcnow()).total_seconds()
        return {
            "status": "owned_by_self" if lock.owner == _owner_id() else "owned_by_other",
            "owner": lock.owner,
            "present": True,
            "expires_in_seconds": expires_in,
            "stale": expires_in < -60,
        }

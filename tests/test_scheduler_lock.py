from datetime import timedelta

from sqlalchemy import select

from emirafrik.models.scheduler_lock import SchedulerLock
from emirafrik.services.scheduler_lock import (
    LOCK_NAME,
    describe_scheduler_lock,
    refresh_scheduler_lock,
    release_scheduler_lock,
    try_acquire_scheduler_lock,
)
from emirafrik.utils.time import ensure_aware, utcnow

OWNER = "emirafrik.services.scheduler_lock._owner_id"


def _lock(db_session) -> SchedulerLock:
    return db_session.scalars(select(SchedulerLock).where(SchedulerLock.name == LOCK_NAME)).one()


def test_owner_can_reacquire(db_session):
    release_scheduler_lock(db_session=db_session)

    assert try_acquire_scheduler_lock(db_session=db_session) is True
    assert try_acquire_scheduler_lock(db_session=db_session) is True

    release_scheduler_lock(db_session=db_session)


def test_live_lease_blocks_other_runner(monkeypatch, db_session):
    monkeypatch.setattr(OWNER, lambda: "node-A")
    assert try_acquire_scheduler_lock(db_session=db_session, ttl_seconds=300)

    monkeypatch.setattr(OWNER, lambda: "node-B")
    assert try_acquire_scheduler_lock(db_session=db_session, ttl_seconds=300) is False
    assert _lock(db_session).owner == "node-A"


def test_expired_lease_can_be_taken_over(monkeypatch, db_session):
    monkeypatch.setattr(OWNER, lambda: "node-A")
    assert try_acquire_scheduler_lock(db_session=db_session, ttl_seconds=60)

    lock = _lock(db_session)
    lock.expires_at = utcnow() - timedelta(seconds=1)
    db_session.commit()

    monkeypatch.setattr(OWNER, lambda: "node-B")
    assert try_acquire_scheduler_lock(db_session=db_session, ttl_seconds=300)
    db_session.refresh(lock)
    assert lock.owner == "node-B"


def test_refresh_extends_own_lease_only(monkeypatch, db_session):
    monkeypatch.setattr(OWNER, lambda: "node-A")
    assert try_acquire_scheduler_lock(db_session=db_session, ttl_seconds=10)
    before = ensure_aware(_lock(db_session).expires_at)

    refresh_scheduler_lock(db_session=db_session, ttl_seconds=600)
    lock = _lock(db_session)
    db_session.refresh(lock)
    assert ensure_aware(lock.expires_at) > before

    monkeypatch.setattr(OWNER, lambda: "node-B")
    release_scheduler_lock(db_session=db_session)
    assert _lock(db_session).owner == "node-A"


def test_describe_scheduler_lock(monkeypatch, db_session):
    assert describe_scheduler_lock(db_session=db_session)["present"] is False

    monkeypatch.setattr(OWNER, lambda: "node-A")
    assert try_acquire_scheduler_lock(db_session=db_session, ttl_seconds=60)

    info = describe_scheduler_lock(db_session=db_session)
    assert info["present"] is True
    assert info["status"] == "owned_by_self"
    assert 0 < info["expires_in_seconds"] <= 60
    assert info["stale"] is False

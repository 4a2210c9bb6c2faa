"""Process-wide runtime flags shared across modules."""
from __future__ import annotations

from datetime import datetime

_scheduler_active = False
_last_expiry_sweep: dict[str, object] = {"at": None, "expired": 0}


def set_scheduler_active(active: bool) -> None:
    global _scheduler_active
    _scheduler_active = active


def is_scheduler_active() -> bool:
    return _scheduler_active


def record_expiry_sweep(at: datetime, expired: int) -> None:
    _last_expiry_sweep["at"] = at
    _last_expiry_sweep["expired"] = expired


def last_expiry_sweep() -> dict[str, object]:
    at = _last_expiry_sweep["at"]
    return {
        "at": at.isoformat() if isinstance(at, datetime) else None,
        "expired": _last_expiry_sweep["expired"],
    }

"""Audit logging helper utilities."""
from __future__ import annotations

from typing import Any, Mapping

from sqlalchemy.orm import Session

from emirafrik.models.audit import AuditLog
from emirafrik.utils.time import utcnow


SENSITIVE_KEYS = {
    "phone",
    "msisdn",
    "email",
    "checkout_uri",
    "access_token",
    "pay_token",
    "notif_token",
}


def mask_phone(value: Any) -> str:
    """Keep the last three digits of a mobile-money account number."""

    digits = "".join(ch for ch in str(value) if ch.isdigit())
    if len(digits) <= 3:
        return "***"
    return f"***{digits[-3:]}"


def _mask_value(key: str, value: Any) -> Any:
    if value is None:
        return None

    if key in {"phone", "msisdn"}:
        return mask_phone(value)

    if key == "email":
        text = str(value)
        if "@" in text:
            _, domain = text.split("@", 1)
            return f"***@{domain}"
        return "***"

    if key == "checkout_uri":
        # keep the scheme/host so audits still show which provider was used
        return str(value).split("?", 1)[0] + "?***"

    return "***"


def sanitize_payload_for_audit(data: Any) -> Any:
    """Return a copy of ``data`` with obvious PII fields masked."""

    if isinstance(data, Mapping):
        sanitized: dict[str, Any] = {}
        for key, value in data.items():
            if key in SENSITIVE_KEYS:
                sanitized[key] = _mask_value(key, value)
            else:
                sanitized[key] = sanitize_payload_for_audit(value)
        return sanitized

    if isinstance(data, list):
        return [sanitize_payload_for_audit(item) for item in data]

    return data


def log_audit(
    db: Session,
    *,
    actor: str,
    action: str,
    entity: str,
    entity_id: str,
    data: dict | None = None,
) -> None:
    """Stage an audit entry in the shared AuditLog table (caller commits)."""

    db.add(
        AuditLog(
            actor=actor,
            action=action,
            entity=entity,
            entity_id=entity_id,
            data_json=sanitize_payload_for_audit(data or {}),
            at=utcnow(),
        )
    )

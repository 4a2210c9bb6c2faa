"""Time utilities."""
import time
from datetime import UTC, datetime, timezone


def utcnow() -> datetime:
    """Return current UTC time with timezone awareness."""

    return datetime.now(tz=UTC)


def epoch_millis() -> int:
    """Milliseconds since the Unix epoch, used in payment references."""

    return time.time_ns() // 1_000_000


def parse_webhook_timestamp(value: str) -> int:
    """Parse a webhook timestamp given either as epoch seconds or ISO 8601.

    Raises ``ValueError`` when neither format matches.
    """

    try:
        return int(float(value))
    except (TypeError, ValueError):
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return int(dt.timestamp())


def ensure_aware(value: datetime | None) -> datetime | None:
    """SQLite drops tzinfo on round-trip; treat naive values as UTC."""

    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


__all__ = ["utcnow", "epoch_millis", "parse_webhook_timestamp", "ensure_aware"]

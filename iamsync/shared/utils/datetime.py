"""Timezone-aware UTC timestamps for ledger entries, audit records and events."""

from datetime import UTC, datetime


def utc_now() -> datetime:
    return datetime.now(UTC)


def ensure_utc(dt: datetime | None) -> datetime | None:
    """Normalize dt to aware UTC; naive values are taken to be UTC already."""
    if dt is None:
        return None
    return dt.replace(tzinfo=UTC) if dt.tzinfo is None else dt.astimezone(UTC)


def parse_iso_utc(value: str) -> datetime:
    """Parse an ISO-8601 timestamp such as EventBridge's "2024-05-01T12:00:00Z".

    Raises:
        ValueError: If value is not ISO-8601.
    """
    parsed = datetime.fromisoformat(value)
    return parsed.replace(tzinfo=UTC) if parsed.tzinfo is None else parsed.astimezone(UTC)

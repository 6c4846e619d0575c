"""Creation events, audit records and correlation failures."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from iamsync.domain.enums import CorrelationState
from iamsync.shared.utils.datetime import parse_iso_utc, utc_now


@dataclass(frozen=True)
class CreationEvent:
    """One delivery of a "principal created" notification.

    event_id is unique per delivery attempt, not per logical creation:
    redeliveries of the same creation carry distinct ids.
    """

    event_id: str
    principal_name: str
    occurred_at: datetime = field(default_factory=utc_now)

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON publish."""
        return {
            "event_id": self.event_id,
            "principal_name": self.principal_name,
            "occurred_at": self.occurred_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CreationEvent:
        """Deserialize from a channel message."""
        occurred_at = data.get("occurred_at")
        return cls(
            event_id=str(data["event_id"]),
            principal_name=str(data["principal_name"]),
            occurred_at=parse_iso_utc(occurred_at)
            if occurred_at
            else utc_now(),
        )


@dataclass(frozen=True)
class AuditRecord:
    """Result of correlating a creation with registry and vault state. Immutable."""

    principal_name: str
    contact_email: str
    secret_value_at_creation: str = field(repr=False)
    emitted_at: datetime
    event_id: str
    secret_version: str


@dataclass(frozen=True)
class CorrelationFailure:
    """Report sent to the error channel when a correlation cannot complete."""

    principal_name: str
    event_id: str
    error_code: str
    message: str
    attempts: int
    reported_at: datetime = field(default_factory=utc_now)


@dataclass
class LedgerEntry:
    """Dedupe ledger entry, keyed by principal name (not event id)."""

    principal_name: str
    state: CorrelationState
    event_id: str
    attempts: int = 0
    record: AuditRecord | None = None
    # Set only when the sink refused record; a kept record without it is mid-emit.
    sink_rejected: bool = False
    error: str | None = None
    updated_at: datetime = field(default_factory=utc_now)

"""Service interfaces (ports): audit sink, error channel, event publisher."""

from __future__ import annotations

from typing import Protocol

from iamsync.domain.entities import AuditRecord, CorrelationFailure, CreationEvent


class IAuditSink(Protocol):
    """Receives finished audit records. Raising rejects the record."""

    async def emit(self, record: AuditRecord) -> None:
        """Accept one audit record."""


class IErrorChannel(Protocol):
    """Receives correlations that could not complete."""

    async def report(self, failure: CorrelationFailure) -> None:
        """Record one failure."""


class ICreationEventPublisher(Protocol):
    """Raises "principal created" notifications onto an event channel."""

    async def publish(self, event: CreationEvent) -> bool:
        """Publish; return False if the channel is unavailable."""

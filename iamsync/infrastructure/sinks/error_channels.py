"""Error channels: where correlations that cannot complete are reported."""

from __future__ import annotations

import logging

from iamsync.domain.entities import CorrelationFailure

logger = logging.getLogger(__name__)


class LoggingErrorChannel:
    """Reports failures at ERROR level."""

    async def report(self, failure: CorrelationFailure) -> None:
        logger.error(
            "Correlation failed for %s (event %s, %s after %d attempt(s)): %s",
            failure.principal_name,
            failure.event_id,
            failure.error_code,
            failure.attempts,
            failure.message,
        )


class InMemoryErrorChannel(LoggingErrorChannel):
    """Logs failures and keeps them for the failures API."""

    def __init__(self) -> None:
        self.failures: list[CorrelationFailure] = []

    async def report(self, failure: CorrelationFailure) -> None:
        await super().report(failure)
        self.failures.append(failure)

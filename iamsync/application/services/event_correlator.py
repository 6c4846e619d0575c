"""Event correlator: exactly-once audit records over an at-least-once channel.

Per principal name the ledger moves PENDING -> CORRELATED -> EMITTED.
The first delivery for a name claims the entry under that name's lock;
every later delivery finds CORRELATED (in flight, or waiting for a manual
replay after a sink rejection) or EMITTED and is dropped without touching
the sink. Joins that miss registry or vault state are retried with
exponential backoff inside a bounded time budget, because provisioning
writes may not be visible yet; when the budget runs out the failure goes
to the error channel and the entry is marked FAILED so a redelivery can
try again. Unexpected errors from the registry or vault (a dropped database
connection, say) are reported as CORRELATION_ERROR and also leave FAILED.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

from iamsync.application.interfaces import (
    IAuditSink,
    IErrorChannel,
    IPrincipalRegistry,
    ISecretVault,
)
from iamsync.application.services.correlation_ledger import CorrelationLedger
from iamsync.core.constants import metadata_path
from iamsync.domain.entities import (
    AuditRecord,
    CorrelationFailure,
    CreationEvent,
    LedgerEntry,
)
from iamsync.domain.enums import CorrelationState
from iamsync.domain.exceptions import (
    CorrelationTimeoutException,
    IamSyncException,
    NotFoundException,
    SinkRejectedException,
)
from iamsync.shared.telemetry.tracing import add_span_event, traced
from iamsync.shared.utils.datetime import utc_now
from iamsync.shared.utils.locks import KeyedLock

logger = logging.getLogger(__name__)

_DROPPED_STATES = (CorrelationState.CORRELATED, CorrelationState.EMITTED)


class EventCorrelator:
    """Joins creation events with registry metadata and the creation-time secret."""

    def __init__(
        self,
        registry: IPrincipalRegistry,
        vault: ISecretVault,
        sink: IAuditSink,
        error_channel: IErrorChannel,
        *,
        secret_id: str,
        max_attempts: int = 5,
        backoff_seconds: float = 0.5,
        backoff_max_seconds: float = 5.0,
        timeout_seconds: float = 30.0,
        lock_timeout_seconds: float = 60.0,
        ledger: CorrelationLedger | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._registry = registry
        self._vault = vault
        self._sink = sink
        self._error_channel = error_channel
        self._secret_id = secret_id
        self._max_attempts = max_attempts
        self._backoff = backoff_seconds
        self._backoff_max = backoff_max_seconds
        self._timeout = timeout_seconds
        self._locks = KeyedLock(lock_timeout_seconds)
        self.ledger = ledger or CorrelationLedger()
        self._sleep = sleep

    @traced("correlator.handle")
    async def handle(self, event: CreationEvent) -> CorrelationState:
        """Process one delivery.

        Returns:
            The ledger state for the principal after this delivery.

        Raises:
            CorrelationTimeoutException: Join retries or time budget exhausted
                (also reported on the error channel).
            SinkRejectedException: The audit sink refused the record; the
                entry stays CORRELATED for a manual replay.
        """
        async with self._locks.hold(event.principal_name):
            entry = self.ledger.get(event.principal_name)
            if entry is not None and entry.state in _DROPPED_STATES:
                logger.info(
                    "Dropping delivery %s for %s: already %s",
                    event.event_id,
                    event.principal_name,
                    entry.state.value,
                )
                add_span_event("duplicate_dropped", {"state": entry.state.value})
                return entry.state
            entry = LedgerEntry(
                principal_name=event.principal_name,
                state=CorrelationState.CORRELATED,
                event_id=event.event_id,
            )
            self.ledger.put(entry)
        return await self._correlate(entry, event)

    async def replay(self, principal_name: str) -> CorrelationState:
        """Finish a correlation by hand.

        Re-emits the kept record of a CORRELATED entry whose sink call was
        rejected, re-runs correlation for a FAILED entry, and leaves EMITTED
        or in-flight entries alone (including one whose first emit has not
        returned yet).

        Raises:
            NotFoundException: If no delivery was ever seen for principal_name.
        """
        async with self._locks.hold(principal_name):
            entry = self.ledger.get(principal_name)
            if entry is None:
                raise NotFoundException("correlation", principal_name)
            if entry.state == CorrelationState.EMITTED:
                return entry.state
            if entry.state == CorrelationState.CORRELATED:
                if entry.record is None or not entry.sink_rejected:
                    logger.info("Correlation for %s is still in flight", principal_name)
                    return entry.state
                logger.info("Replaying kept audit record for %s", principal_name)
                await self._emit(entry)
                return entry.state
            entry = LedgerEntry(
                principal_name=principal_name,
                state=CorrelationState.CORRELATED,
                event_id=entry.event_id,
            )
            self.ledger.put(entry)
        logger.info("Re-running failed correlation for %s", principal_name)
        return await self._correlate(
            entry, CreationEvent(event_id=entry.event_id, principal_name=principal_name)
        )

    def ledger_entry(self, principal_name: str) -> LedgerEntry | None:
        return self.ledger.get(principal_name)

    async def _correlate(self, entry: LedgerEntry, event: CreationEvent) -> CorrelationState:
        try:
            try:
                async with asyncio.timeout(self._timeout):
                    record = await self._join_with_retry(entry, event)
            except TimeoutError:
                record = None
                entry.error = f"time budget of {self._timeout}s exhausted ({entry.error})"
            except IamSyncException as e:
                await self._mark_failed(entry, event, e.error_code, e.message)
                raise
            except Exception as e:
                logger.exception("Join for %s failed unexpectedly", entry.principal_name)
                await self._mark_failed(
                    entry, event, "CORRELATION_ERROR", str(e) or type(e).__name__
                )
                raise
            if record is None:
                error = CorrelationTimeoutException(
                    entry.principal_name, event.event_id, entry.attempts, entry.error
                )
                await self._mark_failed(
                    entry, event, error.error_code, f"{error.message}: {entry.error}"
                )
                raise error
            entry.record = record
            await self._emit(entry)
            return entry.state
        except asyncio.CancelledError:
            self.ledger.remove(entry)
            logger.warning(
                "Correlation for %s cancelled; ledger reset to pending", entry.principal_name
            )
            await self._report(
                entry,
                event,
                "CORRELATION_CANCELLED",
                "Correlation cancelled before an audit record was emitted",
            )
            raise

    async def _join_with_retry(
        self, entry: LedgerEntry, event: CreationEvent
    ) -> AuditRecord | None:
        for attempt in range(1, self._max_attempts + 1):
            entry.attempts = attempt
            try:
                return await self._join(event)
            except NotFoundException as e:
                entry.error = e.message
                if attempt == self._max_attempts:
                    break
                delay = min(self._backoff * 2 ** (attempt - 1), self._backoff_max)
                logger.info(
                    "Join for %s missed (%s); retry %d/%d in %.2fs",
                    event.principal_name,
                    e.message,
                    attempt,
                    self._max_attempts,
                    delay,
                )
                await self._sleep(delay)
        return None

    async def _join(self, event: CreationEvent) -> AuditRecord:
        principal = await self._registry.get(event.principal_name)
        if principal.contact_email is None:
            raise NotFoundException("parameter", metadata_path(event.principal_name))
        version = None
        if principal.login is not None and principal.login.secret_id == self._secret_id:
            version = principal.login.secret_version
        secret = await self._vault.describe(self._secret_id, version)
        return AuditRecord(
            principal_name=principal.name,
            contact_email=principal.contact_email,
            secret_value_at_creation=secret.value,
            emitted_at=utc_now(),
            event_id=event.event_id,
            secret_version=secret.current_version,
        )

    async def _mark_failed(
        self, entry: LedgerEntry, event: CreationEvent, error_code: str, message: str
    ) -> None:
        entry.state = CorrelationState.FAILED
        entry.error = message
        entry.updated_at = utc_now()
        await self._report(entry, event, error_code, message)

    async def _report(
        self, entry: LedgerEntry, event: CreationEvent, error_code: str, message: str
    ) -> None:
        await self._error_channel.report(
            CorrelationFailure(
                principal_name=entry.principal_name,
                event_id=event.event_id,
                error_code=error_code,
                message=message,
                attempts=entry.attempts,
            )
        )

    async def _emit(self, entry: LedgerEntry) -> None:
        if entry.record is None:
            raise RuntimeError(f"No audit record to emit for {entry.principal_name}")
        entry.sink_rejected = False
        try:
            await self._sink.emit(entry.record)
        except SinkRejectedException as e:
            entry.sink_rejected = True
            entry.error = e.message
            entry.updated_at = utc_now()
            logger.error("Audit sink rejected record for %s: %s", entry.principal_name, e.message)
            raise
        except Exception as e:
            entry.sink_rejected = True
            entry.error = str(e)
            entry.updated_at = utc_now()
            logger.error("Audit sink failed for %s: %s", entry.principal_name, e)
            raise SinkRejectedException(entry.principal_name, str(e)) from e
        entry.state = CorrelationState.EMITTED
        entry.error = None
        entry.updated_at = utc_now()
        logger.info(
            "Emitted audit record for %s (event %s)", entry.principal_name, entry.record.event_id
        )

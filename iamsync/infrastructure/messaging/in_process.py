"""In-process creation event channel.

Each published event is handed to the handler in its own task, so
deliveries (including duplicates) run concurrently like they would from
an at-least-once bus.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from iamsync.domain.entities import CreationEvent
from iamsync.domain.exceptions import IamSyncException

logger = logging.getLogger(__name__)

EventHandler = Callable[[CreationEvent], Awaitable[Any]]


def log_delivery_outcome(task: asyncio.Task[Any]) -> None:
    """Done callback: log a failed delivery (errors already reached the error channel)."""
    if task.cancelled():
        return
    exc = task.exception()
    if isinstance(exc, IamSyncException):
        logger.warning("Delivery %s failed: %s", task.get_name(), exc.message)
    elif exc is not None:
        logger.error("Delivery %s crashed", task.get_name(), exc_info=exc)


class InProcessEventChannel:
    """Publishes creation events straight to a handler (normally EventCorrelator.handle)."""

    def __init__(self, handler: EventHandler) -> None:
        self._handler = handler
        self._tasks: set[asyncio.Task[Any]] = set()
        self._closed = False

    async def publish(self, event: CreationEvent) -> bool:
        """Schedule delivery of event. Returns False once the channel is closed."""
        if self._closed:
            logger.warning("Event channel closed, dropping delivery %s", event.event_id)
            return False
        task = asyncio.create_task(
            self._handler(event), name=f"deliver:{event.principal_name}:{event.event_id}"
        )
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        logger.debug("Delivering %s for %s", event.event_id, event.principal_name)
        return True

    def _on_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        log_delivery_outcome(task)

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    async def drain(self, timeout_seconds: float | None = None) -> None:
        """Wait for in-flight deliveries to finish (errors are logged, not raised)."""
        if not self._tasks:
            return
        async with asyncio.timeout(timeout_seconds):
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def close(self) -> None:
        """Stop accepting events and cancel in-flight deliveries."""
        self._closed = True
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        logger.info("In-process event channel closed (%d delivery(ies) cancelled)", len(tasks))

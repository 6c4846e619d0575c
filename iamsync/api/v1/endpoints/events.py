"""Creation event API: direct deliveries and EventBridge envelopes.

Both routes run the correlator inline, so the response reflects the
ledger state after this delivery. Redelivering is safe.
"""

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Body, Depends

from iamsync.api.v1.dependencies import get_correlator
from iamsync.application.services import EventCorrelator
from iamsync.domain.enums import CorrelationState
from iamsync.infrastructure.messaging import parse_eventbridge_event
from iamsync.schemas.event import (
    CreationEventRequest,
    EventBridgeResponse,
    EventHandledResponse,
)
from iamsync.shared.utils.datetime import utc_now

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("", response_model=EventHandledResponse)
async def handle_creation_event(
    body: CreationEventRequest,
    correlator: Annotated[EventCorrelator, Depends(get_correlator)],
) -> EventHandledResponse:
    """Correlate one creation event (503 on correlation timeout, 502 on sink rejection)."""
    event = body.to_event()
    state = await correlator.handle(event)
    return EventHandledResponse(
        event_id=event.event_id,
        principal_name=event.principal_name,
        state=state.value,
        handled_at=utc_now(),
    )


@router.post("/eventbridge", response_model=EventBridgeResponse)
async def handle_eventbridge_envelope(
    envelope: Annotated[dict[str, Any], Body()],
    correlator: Annotated[EventCorrelator, Depends(get_correlator)],
) -> EventBridgeResponse:
    """Accept a CloudTrail CreateUser envelope; other envelopes are ignored."""
    event = parse_eventbridge_event(envelope)
    if event is None:
        logger.info("Ignoring EventBridge envelope %s", envelope.get("id"))
        return EventBridgeResponse(statusCode=200, body="Event ignored.")
    state = await correlator.handle(event)
    if state == CorrelationState.EMITTED:
        body = f"User {event.principal_name} processed successfully."
    else:
        body = f"User {event.principal_name} is {state.value}."
    return EventBridgeResponse(statusCode=200, body=body)

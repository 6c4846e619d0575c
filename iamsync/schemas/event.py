"""Creation event API schemas."""

from datetime import datetime
from pydantic import AwareDatetime, BaseModel, Field

from iamsync.domain.entities import CreationEvent
from iamsync.shared.utils.datetime import utc_now
from iamsync.shared.utils.generators import generate_event_id


class CreationEventRequest(BaseModel):
    """A "principal created" notification. event_id is generated when omitted."""

    principal_name: str = Field(..., min_length=1, examples=["ec2User"])
    event_id: str | None = Field(default=None, min_length=1)
    occurred_at: AwareDatetime | None = None

    def to_event(self) -> CreationEvent:
        return CreationEvent(
            event_id=self.event_id or generate_event_id(),
            principal_name=self.principal_name,
            occurred_at=self.occurred_at or utc_now(),
        )


class EventHandledResponse(BaseModel):
    """Ledger state for the principal after handling one delivery."""

    event_id: str
    principal_name: str
    state: str
    handled_at: datetime


class EventBridgeResponse(BaseModel):
    """Lambda-style response for an EventBridge envelope."""

    statusCode: int
    body: str


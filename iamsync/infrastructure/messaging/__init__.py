"""Creation event channels: in-process, Redis pub/sub, EventBridge parsing."""

from iamsync.infrastructure.messaging.eventbridge import (
    matches_create_user_rule,
    parse_eventbridge_event,
)
from iamsync.infrastructure.messaging.in_process import InProcessEventChannel

__all__ = [
    "InProcessEventChannel",
    "matches_create_user_rule",
    "parse_eventbridge_event",
]

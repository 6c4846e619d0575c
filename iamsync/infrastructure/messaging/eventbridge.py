"""EventBridge envelope parsing for CloudTrail CreateUser notifications.

The rule matches source 'aws.iam', detail-type 'AWS API Call via CloudTrail',
detail.eventSource 'iam.amazonaws.com' and detail.eventName 'CreateUser'.
The created user's name is at detail.requestParameters.userName.
"""

from __future__ import annotations

from typing import Any

from iamsync.core.constants import (
    CLOUDTRAIL_EVENT_NAME,
    CLOUDTRAIL_EVENT_SOURCE,
    EVENTBRIDGE_DETAIL_TYPE,
    EVENTBRIDGE_SOURCE,
)
from iamsync.domain.entities import CreationEvent
from iamsync.domain.exceptions import ValidationException
from iamsync.shared.utils.datetime import parse_iso_utc, utc_now
from iamsync.shared.utils.generators import generate_event_id


def matches_create_user_rule(envelope: dict[str, Any]) -> bool:
    """Return True if envelope matches the CreateUser event pattern."""
    detail = envelope.get("detail") or {}
    return (
        envelope.get("source") == EVENTBRIDGE_SOURCE
        and envelope.get("detail-type") == EVENTBRIDGE_DETAIL_TYPE
        and detail.get("eventSource") == CLOUDTRAIL_EVENT_SOURCE
        and detail.get("eventName") == CLOUDTRAIL_EVENT_NAME
    )


def parse_eventbridge_event(envelope: dict[str, Any]) -> CreationEvent | None:
    """Build a CreationEvent from an EventBridge envelope.

    Returns:
        The event, or None when the envelope does not match the rule.

    Raises:
        ValidationException: If a matching envelope lacks the user name or
            carries an invalid timestamp.
    """
    if not matches_create_user_rule(envelope):
        return None
    params = envelope["detail"].get("requestParameters") or {}
    user_name = params.get("userName")
    if not user_name:
        raise ValidationException(
            "CreateUser event is missing detail.requestParameters.userName",
            field="detail.requestParameters.userName",
        )
    raw_time = envelope.get("time")
    try:
        occurred_at = parse_iso_utc(raw_time) if raw_time else utc_now()
    except ValueError as e:
        raise ValidationException(f"Invalid event time: {raw_time!r}", field="time") from e
    return CreationEvent(
        event_id=str(envelope.get("id") or generate_event_id()),
        principal_name=str(user_name),
        occurred_at=occurred_at,
    )

"""Parsing CloudTrail CreateUser envelopes delivered by EventBridge."""

from datetime import UTC, datetime

import pytest

from iamsync.domain.exceptions import ValidationException
from iamsync.infrastructure.messaging import matches_create_user_rule, parse_eventbridge_event


def _envelope(**overrides) -> dict:
    envelope = {
        "version": "0",
        "id": "6a7e8feb-b491-4cf7-a9f1-bf3703467718",
        "detail-type": "AWS API Call via CloudTrail",
        "source": "aws.iam",
        "time": "2024-05-01T12:30:00Z",
        "region": "us-east-1",
        "detail": {
            "eventSource": "iam.amazonaws.com",
            "eventName": "CreateUser",
            "requestParameters": {"userName": "ec2User"},
        },
    }
    envelope.update(overrides)
    return envelope


def test_create_user_envelope_is_parsed() -> None:
    event = parse_eventbridge_event(_envelope())
    assert event is not None
    assert event.principal_name == "ec2User"
    assert event.event_id == "6a7e8feb-b491-4cf7-a9f1-bf3703467718"
    assert event.occurred_at == datetime(2024, 5, 1, 12, 30, tzinfo=UTC)


def test_other_api_calls_are_ignored() -> None:
    envelope = _envelope()
    envelope["detail"] = {**envelope["detail"], "eventName": "DeleteUser"}
    assert not matches_create_user_rule(envelope)
    assert parse_eventbridge_event(envelope) is None
    assert parse_eventbridge_event(_envelope(source="aws.s3")) is None
    assert parse_eventbridge_event({}) is None


def test_missing_user_name_is_validation_error() -> None:
    envelope = _envelope()
    envelope["detail"] = {**envelope["detail"], "requestParameters": {}}
    with pytest.raises(ValidationException) as exc_info:
        parse_eventbridge_event(envelope)
    assert exc_info.value.details["field"] == "detail.requestParameters.userName"


def test_bad_time_is_validation_error() -> None:
    with pytest.raises(ValidationException):
        parse_eventbridge_event(_envelope(time="yesterday"))


def test_missing_id_gets_generated_one() -> None:
    envelope = _envelope()
    del envelope["id"]
    first = parse_eventbridge_event(envelope)
    second = parse_eventbridge_event(envelope)
    assert first.event_id and second.event_id
    assert first.event_id != second.event_id

"""Creation event delivery and audit read API."""

from unittest.mock import AsyncMock

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from iamsync.domain.enums import CorrelationState
from iamsync.domain.exceptions import SinkRejectedException
from iamsync.infrastructure.sinks import InMemoryErrorChannel, LoggingErrorChannel


async def _provision_default(client: AsyncClient, app: FastAPI) -> None:
    response = await client.post("/api/v1/provisioning/apply-default")
    assert response.status_code == 200
    await app.state.container.event_channel.drain(timeout_seconds=5)


async def test_provisioning_emits_audit_records(client: AsyncClient, app: FastAPI) -> None:
    await _provision_default(client, app)

    response = await client.get("/api/v1/audit/records")
    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 2
    names = sorted(item["principal_name"] for item in data["items"])
    assert names == ["ec2User", "s3User"]
    assert all(item["secret_value_at_creation"] == "********" for item in data["items"])


async def test_redelivered_event_is_deduplicated(client: AsyncClient, app: FastAPI) -> None:
    await _provision_default(client, app)

    response = await client.post(
        "/api/v1/events", json={"principal_name": "ec2User", "event_id": "redelivery-1"}
    )
    assert response.status_code == 200
    assert response.json()["state"] == "emitted"
    assert (await client.get("/api/v1/audit/records")).json()["total"] == 2

    entry = (await client.get("/api/v1/audit/correlations/ec2User")).json()
    assert entry["state"] == "emitted"
    assert entry["has_record"] is True


async def test_unknown_principal_event_times_out(client: AsyncClient) -> None:
    response = await client.post("/api/v1/events", json={"principal_name": "ghost"})
    assert response.status_code == 503
    assert response.json()["error"] == "CORRELATION_TIMEOUT"
    assert response.headers["retry-after"] == "1"

    failures = (await client.get("/api/v1/audit/failures")).json()
    assert failures["total"] == 1
    assert failures["items"][0]["principal_name"] == "ghost"
    assert failures["items"][0]["error_code"] == "CORRELATION_TIMEOUT"

    entry = (await client.get("/api/v1/audit/correlations/ghost")).json()
    assert entry["state"] == "failed"


async def test_eventbridge_envelope(client: AsyncClient, app: FastAPI) -> None:
    await _provision_default(client, app)
    envelope = {
        "id": "cloudtrail-1",
        "source": "aws.iam",
        "detail-type": "AWS API Call via CloudTrail",
        "time": "2024-05-01T12:30:00Z",
        "detail": {
            "eventSource": "iam.amazonaws.com",
            "eventName": "CreateUser",
            "requestParameters": {"userName": "s3User"},
        },
    }
    response = await client.post("/api/v1/events/eventbridge", json=envelope)
    assert response.status_code == 200
    assert response.json() == {
        "statusCode": 200,
        "body": "User s3User processed successfully.",
    }


async def test_eventbridge_ignores_other_events(client: AsyncClient) -> None:
    response = await client.post(
        "/api/v1/events/eventbridge", json={"source": "aws.s3", "detail": {}}
    )
    assert response.status_code == 200
    assert response.json()["body"] == "Event ignored."


async def test_eventbridge_missing_user_name_is_400(client: AsyncClient) -> None:
    envelope = {
        "source": "aws.iam",
        "detail-type": "AWS API Call via CloudTrail",
        "detail": {"eventSource": "iam.amazonaws.com", "eventName": "CreateUser"},
    }
    response = await client.post("/api/v1/events/eventbridge", json=envelope)
    assert response.status_code == 400


async def test_sink_rejection_then_replay(client: AsyncClient, app: FastAPI) -> None:
    """A rejected record stays correlated; redelivery is dropped; replay re-emits."""
    sink = app.state.container.audit_sink
    original_emit = sink.emit
    sink.emit = AsyncMock(side_effect=SinkRejectedException("ec2User", "quota"))
    await _provision_default(client, app)

    entry = (await client.get("/api/v1/audit/correlations/ec2User")).json()
    assert entry["state"] == "correlated"
    assert entry["has_record"] is True
    assert entry["sink_rejected"] is True
    redelivered = await client.post("/api/v1/events", json={"principal_name": "ec2User"})
    assert redelivered.json()["state"] == "correlated"
    assert sink.emit.await_count == 2

    sink.emit = original_emit
    replayed = await client.post("/api/v1/audit/correlations/ec2User/replay")
    assert replayed.status_code == 200
    assert replayed.json()["state"] == "emitted"
    assert [r.principal_name for r in sink.records] == ["ec2User"]


async def test_sink_rejection_on_direct_delivery_is_502(client: AsyncClient, app: FastAPI) -> None:
    """With no background delivery, the rejection surfaces on the request."""
    container = app.state.container
    await container.event_channel.close()
    container.audit_sink.emit = AsyncMock(side_effect=SinkRejectedException("s3User", "quota"))
    await client.post("/api/v1/provisioning/apply-default")

    response = await client.post("/api/v1/events", json={"principal_name": "s3User"})
    assert response.status_code == 502
    assert response.json()["error"] == "SINK_REJECTED"


async def test_correlation_not_found(client: AsyncClient) -> None:
    assert (await client.get("/api/v1/audit/correlations/ghost")).status_code == 404
    assert (await client.post("/api/v1/audit/correlations/ghost/replay")).status_code == 404


async def test_logging_error_channel_reports_without_retaining(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    from iamsync.core.config import get_settings
    from iamsync.main import create_app

    monkeypatch.setenv("ERROR_CHANNEL", "logging")
    get_settings.cache_clear()
    application = create_app()
    assert isinstance(application.state.container.error_channel, LoggingErrorChannel)
    assert not isinstance(application.state.container.error_channel, InMemoryErrorChannel)

    transport = ASGITransport(app=application)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        response = await ac.post("/api/v1/events", json={"principal_name": "ghost"})
        assert response.status_code == 503
        failures = await ac.get("/api/v1/audit/failures")
    assert failures.status_code == 404
    assert failures.json()["error"] == "HTTP_ERROR"
    assert application.state.container.correlator.ledger.state("ghost") == CorrelationState.FAILED

"""Pytest configuration and fixtures for iamsync.

Every test gets fast retry/backoff settings and the in-memory backends.
HTTP tests use a fresh create_app() per test so registry, vault and
ledger state never leak between tests.
"""

from collections.abc import AsyncIterator

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from iamsync.core.config import get_settings

_FAST_ENV = {
    "REGISTRY_BACKEND": "memory",
    "EVENT_CHANNEL": "inprocess",
    "AUDIT_SINK": "memory",
    "SEED_DEFAULT_STACK": "false",
    "TELEMETRY_ENABLED": "false",
    "CORRELATION_MAX_ATTEMPTS": "5",
    "CORRELATION_BACKOFF_SECONDS": "0.01",
    "CORRELATION_BACKOFF_MAX_SECONDS": "0.05",
    "CORRELATION_TIMEOUT_SECONDS": "5",
    "METADATA_RETRY_DELAY_SECONDS": "0.01",
    "LOCK_TIMEOUT_SECONDS": "5",
}


@pytest.fixture(autouse=True)
def fast_settings(monkeypatch: pytest.MonkeyPatch) -> None:
    """Apply test settings and reset the cached Settings around each test."""
    for key, value in _FAST_ENV.items():
        monkeypatch.setenv(key, value)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
async def app() -> AsyncIterator[FastAPI]:
    """Fresh application; in-process deliveries are cancelled on teardown."""
    from iamsync.main import create_app

    application = create_app()
    yield application
    channel = application.state.container.event_channel
    if channel is not None:
        await channel.close()


@pytest.fixture
async def client(app: FastAPI) -> AsyncIterator[AsyncClient]:
    """Async HTTP client against the FastAPI app (ASGI)."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

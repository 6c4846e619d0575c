"""Composition root: builds registry, vault, sinks, correlator and provisioner from settings.

Built eagerly in create_app() and stored on app.state.container; the API
dependencies read components from there. Nothing here does I/O, so
connecting Redis or creating SQL tables is left to the lifespan.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta

from iamsync.application.interfaces import (
    IAuditSink,
    ICreationEventPublisher,
    IErrorChannel,
    IPrincipalRegistry,
)
from iamsync.application.services import EventCorrelator, Provisioner
from iamsync.core.config import Settings
from iamsync.infrastructure.messaging import InProcessEventChannel
from iamsync.infrastructure.messaging.redis_pubsub import CreationEventPublisher
from iamsync.infrastructure.registry import InMemoryPrincipalRegistry
from iamsync.infrastructure.security import get_password_hash
from iamsync.infrastructure.sinks import (
    InMemoryAuditSink,
    InMemoryErrorChannel,
    LoggingAuditSink,
    LoggingErrorChannel,
)
from iamsync.infrastructure.vault import InMemorySecretVault

logger = logging.getLogger(__name__)


@dataclass
class Container:
    """Wired components for one application instance."""

    settings: Settings
    registry: IPrincipalRegistry
    vault: InMemorySecretVault
    audit_sink: IAuditSink
    error_channel: IErrorChannel
    correlator: EventCorrelator
    provisioner: Provisioner
    event_channel: InProcessEventChannel | None = None
    redis_publisher: CreationEventPublisher | None = None


def _build_registry(settings: Settings) -> IPrincipalRegistry:
    if settings.registry_backend == "postgres":
        from iamsync.infrastructure.persistence.database import get_session_factory
        from iamsync.infrastructure.persistence.sql_registry import SqlPrincipalRegistry

        return SqlPrincipalRegistry(get_session_factory())
    return InMemoryPrincipalRegistry()


def _build_audit_sink(settings: Settings) -> IAuditSink:
    if settings.audit_sink == "logging":
        return LoggingAuditSink(reveal_secret=settings.audit_log_reveal_secret)
    return InMemoryAuditSink()


def _build_error_channel(settings: Settings) -> IErrorChannel:
    if settings.error_channel == "logging":
        return LoggingErrorChannel()
    return InMemoryErrorChannel()


def build_container(settings: Settings) -> Container:
    """Wire every component according to settings."""
    registry = _build_registry(settings)
    vault = InMemorySecretVault(lock_timeout_seconds=settings.lock_timeout_seconds)
    audit_sink = _build_audit_sink(settings)
    error_channel = _build_error_channel(settings)
    correlator = EventCorrelator(
        registry,
        vault,
        audit_sink,
        error_channel,
        secret_id=settings.secret_id,
        max_attempts=settings.correlation_max_attempts,
        backoff_seconds=settings.correlation_backoff_seconds,
        backoff_max_seconds=settings.correlation_backoff_max_seconds,
        timeout_seconds=settings.correlation_timeout_seconds,
        lock_timeout_seconds=settings.lock_timeout_seconds,
    )

    event_channel: InProcessEventChannel | None = None
    redis_publisher: CreationEventPublisher | None = None
    publisher: ICreationEventPublisher
    if settings.event_channel == "redis":
        redis_publisher = CreationEventPublisher()
        publisher = redis_publisher
    else:
        event_channel = InProcessEventChannel(correlator.handle)
        publisher = event_channel

    max_age = (
        timedelta(seconds=settings.secret_max_age_seconds)
        if settings.secret_max_age_seconds
        else None
    )
    provisioner = Provisioner(
        registry,
        vault,
        secret_id=settings.secret_id,
        policy=settings.secret_policy(),
        hash_password=get_password_hash,
        max_secret_age=max_age,
        metadata_retry_attempts=settings.metadata_retry_attempts,
        metadata_retry_delay_seconds=settings.metadata_retry_delay_seconds,
        event_publisher=publisher,
    )
    logger.info(
        "Container built: registry=%s, audit_sink=%s, error_channel=%s, event_channel=%s",
        settings.registry_backend,
        settings.audit_sink,
        settings.error_channel,
        settings.event_channel,
    )
    return Container(
        settings=settings,
        registry=registry,
        vault=vault,
        audit_sink=audit_sink,
        error_channel=error_channel,
        correlator=correlator,
        provisioner=provisioner,
        event_channel=event_channel,
        redis_publisher=redis_publisher,
    )

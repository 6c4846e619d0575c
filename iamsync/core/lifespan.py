"""Application lifespan: startup and shutdown.

Wiring of infrastructure only: SQL schema, Redis event channel and its
consumer, default stack seeding, telemetry. Components themselves are
built in create_app() (see iamsync.core.container).
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from iamsync.core.container import Container

logger = logging.getLogger(__name__)


@asynccontextmanager
async def create_lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Run startup then yield; on exit run shutdown.

    Startup order: SQL schema (postgres), Redis publisher and consumer
    (redis channel), telemetry (if enabled), default stack (if enabled).
    Shutdown order: in-process deliveries, Redis consumer and publisher,
    telemetry, SQL engine.
    """
    container: Container = app.state.container
    settings = container.settings

    # ---- Startup ----
    if settings.registry_backend == "postgres":
        from iamsync.infrastructure.persistence.database import init_schema

        await init_schema()

    if settings.telemetry_enabled:
        from iamsync.shared.telemetry.telemetry import TelemetryConfig, set_telemetry

        telemetry = TelemetryConfig.from_settings(settings)
        telemetry.setup_telemetry(
            exporter_type=settings.telemetry_exporter,
            otlp_endpoint=settings.telemetry_otlp_endpoint,
            sample_rate=settings.telemetry_sample_rate,
        )
        set_telemetry(telemetry)
        telemetry.instrument_fastapi(app)
        if settings.event_channel == "redis":
            telemetry.instrument_redis()
        if settings.registry_backend == "postgres":
            from iamsync.infrastructure.persistence import database

            telemetry.instrument_sqlalchemy(database.engine)

    app.state.creation_event_consumer = None
    if container.redis_publisher is not None:
        from iamsync.infrastructure.messaging.redis_pubsub import run_creation_event_consumer

        await container.redis_publisher.connect()
        app.state.creation_event_consumer = asyncio.create_task(
            run_creation_event_consumer(container.correlator.handle)
        )

    if settings.seed_default_stack:
        from iamsync.application.services import default_stack

        desired, groups = default_stack(settings)
        result = await container.provisioner.apply(desired, groups)
        logger.info(
            "Default stack applied: %d succeeded, %d failed",
            len(result.succeeded),
            len(result.failed),
        )

    yield

    # ---- Shutdown ----
    if container.event_channel is not None:
        await container.event_channel.close()

    consumer = getattr(app.state, "creation_event_consumer", None)
    if consumer is not None:
        consumer.cancel()
        try:
            await consumer
        except asyncio.CancelledError:
            pass
        logger.info("Creation event consumer stopped")

    if container.redis_publisher is not None:
        await container.redis_publisher.disconnect()

    from iamsync.shared.telemetry.telemetry import get_telemetry, set_telemetry

    telemetry_instance = get_telemetry()
    if telemetry_instance is not None:
        telemetry_instance.shutdown()
        set_telemetry(None)

    if settings.registry_backend == "postgres":
        from iamsync.infrastructure.persistence.database import dispose_engine

        await dispose_engine()

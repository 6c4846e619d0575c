"""Redis Pub/Sub transport for creation events.

The publisher is the provisioner's event publisher when event_channel is
'redis'; run_creation_event_consumer subscribes and hands each message to
the correlator. Duplicate deliveries are expected and deduplicated
downstream.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

import redis.asyncio as redis

from iamsync.core.config import get_settings
from iamsync.domain.entities import CreationEvent
from iamsync.infrastructure.messaging.in_process import EventHandler, log_delivery_outcome

logger = logging.getLogger(__name__)


class _RedisPubSubBase:
    """Shared Redis connection logic for the creation event channel."""

    def __init__(self, redis_client: redis.Redis | None = None) -> None:
        """Initialize. Pass redis_client for DI/testing."""
        self.redis = redis_client
        self.settings = get_settings()
        self.channel = self.settings.redis_event_channel
        self._connected = redis_client is not None

    async def connect(self) -> None:
        """Establish Redis connection. Call on app startup."""
        if self._connected:
            return
        try:
            self.redis = redis.Redis(
                host=self.settings.redis_host,
                port=self.settings.redis_port,
                db=self.settings.redis_db,
                password=self.settings.redis_password.get_secret_value()
                if self.settings.redis_password
                else None,
                decode_responses=True,
                socket_connect_timeout=5,
            )
            await self.redis.ping()
            self._connected = True
            logger.info("Redis event channel connected")
        except (redis.ConnectionError, redis.TimeoutError) as e:
            logger.warning("Redis event channel connection failed: %s", e)
            self._connected = False
            self.redis = None

    async def disconnect(self) -> None:
        """Close Redis connection. Call on app shutdown."""
        if self.redis:
            await self.redis.close()
            self._connected = False
            logger.info("Redis event channel disconnected")

    def is_available(self) -> bool:
        """Return True if Redis is connected."""
        return self._connected and self.redis is not None


class CreationEventPublisher(_RedisPubSubBase):
    """Publishes creation events as JSON."""

    async def publish(self, event: CreationEvent) -> bool:
        """Publish event.

        Returns:
            True if published, False if Redis is unavailable or publish failed.
        """
        if not self.is_available() or self.redis is None:
            logger.warning(
                "Redis not available, creation event %s for %s not published",
                event.event_id,
                event.principal_name,
            )
            return False
        try:
            await self.redis.publish(self.channel, json.dumps(event.to_dict()))
            logger.debug("Published creation event %s to %s", event.event_id, self.channel)
        except redis.RedisError:
            logger.exception("Failed to publish creation event %s", event.event_id)
            return False
        else:
            return True


def _decode(message: dict[str, Any]) -> CreationEvent | None:
    try:
        return CreationEvent.from_dict(json.loads(message["data"]))
    except (json.JSONDecodeError, KeyError, TypeError, ValueError):
        logger.exception("Failed to parse creation event message")
        return None


async def run_creation_event_consumer(
    handler: EventHandler,
    subscriber: _RedisPubSubBase | None = None,
) -> None:
    """Subscribe to the creation event channel and dispatch each event to handler.

    Each delivery runs in its own task so a slow correlation does not block
    the subscription. Call as a background task from lifespan; cancelling
    the task stops the loop and cancels in-flight deliveries.
    """
    subscriber = subscriber or _RedisPubSubBase()
    await subscriber.connect()
    if not subscriber.is_available() or subscriber.redis is None:
        logger.warning("Redis not available, creation event consumer not started")
        return
    pubsub = subscriber.redis.pubsub()
    deliveries: set[asyncio.Task[Any]] = set()
    try:
        await pubsub.subscribe(subscriber.channel)
        logger.info("Subscribed to %s", subscriber.channel)
        async for message in pubsub.listen():
            if message["type"] != "message":
                continue
            event = _decode(message)
            if event is None:
                continue
            task = asyncio.create_task(
                handler(event), name=f"deliver:{event.principal_name}:{event.event_id}"
            )
            deliveries.add(task)
            task.add_done_callback(deliveries.discard)
            task.add_done_callback(log_delivery_outcome)
    except asyncio.CancelledError:
        logger.info("Creation event consumer cancelled")
        for task in deliveries:
            task.cancel()
        raise
    finally:
        await pubsub.unsubscribe(subscriber.channel)
        await pubsub.close()
        await subscriber.disconnect()

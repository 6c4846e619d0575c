"""Liveness and readiness probes."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from iamsync.api.v1.dependencies import get_container, get_settings_dep
from iamsync.core.config import Settings
from iamsync.core.container import Container
from iamsync.domain.exceptions import IamSyncException
from iamsync.schemas.health import ComponentCheck, HealthResponse, ReadinessResponse

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=HealthResponse)
def health_check(settings: Annotated[Settings, Depends(get_settings_dep)]) -> HealthResponse:
    """Return ok status with the configured backends."""
    return HealthResponse(
        version=settings.app_version,
        registry_backend=settings.registry_backend,
        event_channel=settings.event_channel,
    )


async def _check_registry(container: Container) -> ComponentCheck:
    try:
        await container.registry.list_groups()
    except IamSyncException as e:
        return ComponentCheck(name="registry", ok=False, detail=e.message)
    except Exception as e:
        logger.warning("Readiness: registry check failed: %s", e)
        return ComponentCheck(name="registry", ok=False, detail=type(e).__name__)
    return ComponentCheck(name="registry", ok=True)


def _check_event_channel(container: Container) -> ComponentCheck:
    if container.redis_publisher is not None:
        if container.redis_publisher.is_available():
            return ComponentCheck(name="event_channel", ok=True)
        return ComponentCheck(name="event_channel", ok=False, detail="redis not connected")
    if container.event_channel is not None and container.event_channel.closed:
        return ComponentCheck(name="event_channel", ok=False, detail="channel closed")
    return ComponentCheck(name="event_channel", ok=True)


@router.get(
    "/ready",
    response_model=ReadinessResponse,
    responses={503: {"model": ReadinessResponse}},
)
async def readiness_check(
    container: Annotated[Container, Depends(get_container)],
) -> ReadinessResponse | JSONResponse:
    """Check the registry answers and the creation event channel can publish."""
    checks = [await _check_registry(container), _check_event_channel(container)]
    if all(check.ok for check in checks):
        return ReadinessResponse(status="ready", checks=checks)
    body = ReadinessResponse(status="not_ready", checks=checks)
    return JSONResponse(status_code=503, content=body.model_dump())

"""Health and readiness schemas."""

from typing import Literal

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """GET /health: process is up, with the backends it was configured with."""

    status: str = Field(default="ok", description="Service status")
    version: str
    registry_backend: str
    event_channel: str


class ComponentCheck(BaseModel):
    name: str
    ok: bool
    detail: str | None = None


class ReadinessResponse(BaseModel):
    """GET /health/ready: 200 when every component check passes, 503 otherwise."""

    status: Literal["ready", "not_ready"]
    checks: list[ComponentCheck]

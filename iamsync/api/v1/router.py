"""API v1 router aggregation.

Includes all endpoint modules with consistent prefix and tags. Routes get
their components from iamsync.api.v1.dependencies.
"""

from fastapi import APIRouter

from iamsync.api.v1.endpoints import audit, events, health, principals, provisioning

api_router = APIRouter()

api_router.include_router(health.router, prefix="/health", tags=["health"])
api_router.include_router(provisioning.router, prefix="/provisioning", tags=["provisioning"])
api_router.include_router(principals.router, prefix="/principals", tags=["principals"])
api_router.include_router(events.router, prefix="/events", tags=["events"])
api_router.include_router(audit.router, prefix="/audit", tags=["audit"])

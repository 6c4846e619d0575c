"""API v1."""

from iamsync.api.v1.router import api_router

__all__ = ["api_router"]

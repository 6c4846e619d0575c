"""Principal registry implementations."""

from iamsync.infrastructure.registry.in_memory import InMemoryPrincipalRegistry

__all__ = ["InMemoryPrincipalRegistry"]

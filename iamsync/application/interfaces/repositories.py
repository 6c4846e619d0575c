"""Repository and vault interfaces (ports) for the application layer.

Protocols define contracts that infrastructure implementations must fulfill (DIP).
"""

from __future__ import annotations

from datetime import timedelta
from typing import Protocol

from iamsync.domain.entities import Group, OneTimeSecret, Principal, SecretPolicy


class IPrincipalRegistry(Protocol):
    """Protocol for the principal registry (in-memory or SQL)."""

    async def upsert(self, principal: Principal) -> bool:
        """Insert or replace by name. Return True when a new principal was created."""

    async def get(self, name: str) -> Principal:
        """Return principal; raise NotFoundException if absent."""

    async def add_to_group(self, name: str, group_name: str) -> None:
        """Idempotently add membership; raise NotFoundException for missing principal or group."""

    async def set_metadata(self, name: str, email: str) -> None:
        """Attach contact email; raise UnknownPrincipalException if principal absent."""

    async def upsert_group(self, group: Group) -> None:
        """Insert or replace a group by name."""

    async def get_group(self, name: str) -> Group:
        """Return group; raise NotFoundException if absent."""

    async def list_principals(self) -> list[Principal]:
        """Return all principals sorted by name."""

    async def list_groups(self) -> list[Group]:
        """Return all groups sorted by name."""


class ISecretVault(Protocol):
    """Protocol for the versioned secret vault."""

    async def generate(self, secret_id: str, policy: SecretPolicy) -> OneTimeSecret:
        """Append and return a new version."""

    async def ensure_current(
        self,
        secret_id: str,
        policy: SecretPolicy,
        max_age: timedelta | None = None,
    ) -> tuple[OneTimeSecret, bool]:
        """Return current version, generating one if absent or expired."""

    async def get(self, secret_id: str, version: str | None = None) -> str:
        """Return a value; raise NotFoundException if id/version absent."""

    async def describe(self, secret_id: str, version: str | None = None) -> OneTimeSecret:
        """Return stored secret metadata and value."""

"""In-memory principal registry.

Principals and groups are stored as immutable entities and replaced
wholesale on write, so readers never observe a half-applied update.
"""

from __future__ import annotations

import logging
from dataclasses import replace

from iamsync.core.constants import metadata_path
from iamsync.domain.entities import Group, Principal
from iamsync.domain.entities.principal import validate_email
from iamsync.domain.exceptions import NotFoundException, UnknownPrincipalException

logger = logging.getLogger(__name__)


class InMemoryPrincipalRegistry:
    """Registry of principals, groups and contact metadata keyed by name."""

    def __init__(self) -> None:
        self._principals: dict[str, Principal] = {}
        self._groups: dict[str, Group] = {}

    async def upsert(self, principal: Principal) -> bool:
        """Insert or replace principal by name.

        Replacement keeps the original created_at, and the stored contact
        email when the incoming principal has none. Identical input is a no-op.

        Returns:
            True if the principal did not exist before.
        """
        existing = self._principals.get(principal.name)
        if existing is None:
            self._principals[principal.name] = principal
            logger.info("Created principal %s", principal.name)
            return True
        merged = replace(
            principal,
            created_at=existing.created_at,
            contact_email=principal.contact_email or existing.contact_email,
        )
        if not merged.same_state(existing):
            self._principals[principal.name] = merged
            logger.info("Updated principal %s", principal.name)
        return False

    async def get(self, name: str) -> Principal:
        principal = self._principals.get(name)
        if principal is None:
            raise NotFoundException("principal", name)
        return principal

    async def add_to_group(self, name: str, group_name: str) -> None:
        """Add name to group_name. Adding an existing membership is a no-op."""
        principal = await self.get(name)
        await self.get_group(group_name)
        if group_name in principal.group_names:
            return
        self._principals[name] = replace(
            principal, group_names=principal.group_names | {group_name}
        )
        logger.info("Added principal %s to group %s", name, group_name)

    async def set_metadata(self, name: str, email: str) -> None:
        """Record the contact email at /provisioned-users/{name}/email.

        Raises:
            UnknownPrincipalException: If the principal does not exist yet.
        """
        validate_email(email)
        principal = self._principals.get(name)
        if principal is None:
            raise UnknownPrincipalException(name)
        if principal.contact_email != email:
            self._principals[name] = replace(principal, contact_email=email)
            logger.info("Set %s", metadata_path(name))

    async def upsert_group(self, group: Group) -> None:
        if self._groups.get(group.name) != group:
            self._groups[group.name] = group
            logger.info("Upserted group %s (%d rule(s))", group.name, len(group.rules))

    async def get_group(self, name: str) -> Group:
        group = self._groups.get(name)
        if group is None:
            raise NotFoundException("group", name)
        return group

    async def list_principals(self) -> list[Principal]:
        return [self._principals[name] for name in sorted(self._principals)]

    async def list_groups(self) -> list[Group]:
        return [self._groups[name] for name in sorted(self._groups)]

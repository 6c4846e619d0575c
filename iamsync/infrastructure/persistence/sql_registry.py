"""SQL-backed principal registry (durable backend).

Each operation runs in its own transaction. Semantics match
InMemoryPrincipalRegistry: upsert keeps created_at and an existing
contact email, add_to_group is idempotent, set_metadata refuses unknown
principals.
"""

from __future__ import annotations

import logging

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from iamsync.core.constants import metadata_path
from iamsync.domain.entities import Group, LoginProfile, PermissionRule, Principal
from iamsync.domain.entities.principal import validate_email
from iamsync.domain.exceptions import NotFoundException, UnknownPrincipalException
from iamsync.infrastructure.persistence.models import (
    GroupModel,
    MembershipModel,
    PrincipalModel,
)
from iamsync.shared.utils.datetime import ensure_utc

logger = logging.getLogger(__name__)


def _row_to_principal(row: PrincipalModel, group_names: set[str]) -> Principal:
    """Map ORM row and membership names to the Principal entity."""
    login = None
    if row.login_secret_id and row.login_secret_version and row.login_password_hash:
        login = LoginProfile(
            secret_id=row.login_secret_id,
            secret_version=row.login_secret_version,
            password_hash=row.login_password_hash,
            password_reset_required=row.password_reset_required,
        )
    return Principal(
        name=row.name,
        group_names=frozenset(group_names),
        contact_email=row.contact_email,
        password_reset_required=row.password_reset_required,
        created_at=ensure_utc(row.created_at),
        login=login,
    )


def _row_to_group(row: GroupModel) -> Group:
    return Group(
        name=row.name,
        rules=tuple(
            PermissionRule(actions=tuple(r["actions"]), resources=tuple(r["resources"]))
            for r in row.rules
        ),
    )


class SqlPrincipalRegistry:
    """Principal registry persisted with SQLAlchemy (PostgreSQL via asyncpg)."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def _memberships(self, session: AsyncSession, name: str) -> set[str]:
        result = await session.execute(
            select(MembershipModel.group_name).where(MembershipModel.principal_name == name)
        )
        return set(result.scalars().all())

    async def upsert(self, principal: Principal) -> bool:
        """Insert or replace by name. Returns True if the principal was created."""
        try:
            return await self._upsert_once(principal)
        except IntegrityError:
            # Lost an insert race for the same name; the row exists now.
            logger.debug("Concurrent insert of principal %s; retrying as update", principal.name)
            return await self._upsert_once(principal)

    async def _upsert_once(self, principal: Principal) -> bool:
        async with self._session_factory() as session, session.begin():
            row = await session.get(PrincipalModel, principal.name)
            created = row is None
            if row is None:
                row = PrincipalModel(name=principal.name, created_at=principal.created_at)
                session.add(row)
            if principal.contact_email is not None:
                row.contact_email = principal.contact_email
            row.password_reset_required = principal.password_reset_required
            login = principal.login
            row.login_secret_id = login.secret_id if login else None
            row.login_secret_version = login.secret_version if login else None
            row.login_password_hash = login.password_hash if login else None
            await session.flush()
            current = set() if created else await self._memberships(session, principal.name)
            for group_name in principal.group_names - current:
                session.add(MembershipModel(principal_name=principal.name, group_name=group_name))
            stale = current - principal.group_names
            if stale:
                await session.execute(
                    delete(MembershipModel).where(
                        MembershipModel.principal_name == principal.name,
                        MembershipModel.group_name.in_(stale),
                    )
                )
        if created:
            logger.info("Created principal %s", principal.name)
        return created

    async def get(self, name: str) -> Principal:
        async with self._session_factory() as session:
            row = await session.get(PrincipalModel, name)
            if row is None:
                raise NotFoundException("principal", name)
            return _row_to_principal(row, await self._memberships(session, name))

    async def add_to_group(self, name: str, group_name: str) -> None:
        async with self._session_factory() as session, session.begin():
            if await session.get(PrincipalModel, name) is None:
                raise NotFoundException("principal", name)
            if await session.get(GroupModel, group_name) is None:
                raise NotFoundException("group", group_name)
            if await session.get(MembershipModel, (name, group_name)) is None:
                session.add(MembershipModel(principal_name=name, group_name=group_name))
                logger.info("Added principal %s to group %s", name, group_name)

    async def set_metadata(self, name: str, email: str) -> None:
        validate_email(email)
        async with self._session_factory() as session, session.begin():
            row = await session.get(PrincipalModel, name)
            if row is None:
                raise UnknownPrincipalException(name)
            if row.contact_email != email:
                row.contact_email = email
                logger.info("Set %s", metadata_path(name))

    async def upsert_group(self, group: Group) -> None:
        rules = [{"actions": list(r.actions), "resources": list(r.resources)} for r in group.rules]
        async with self._session_factory() as session, session.begin():
            row = await session.get(GroupModel, group.name)
            if row is None:
                session.add(GroupModel(name=group.name, rules=rules))
            elif row.rules != rules:
                row.rules = rules

    async def get_group(self, name: str) -> Group:
        async with self._session_factory() as session:
            row = await session.get(GroupModel, name)
            if row is None:
                raise NotFoundException("group", name)
            return _row_to_group(row)

    async def list_principals(self) -> list[Principal]:
        async with self._session_factory() as session:
            rows = (
                await session.execute(select(PrincipalModel).order_by(PrincipalModel.name))
            ).scalars().all()
            memberships = (await session.execute(select(MembershipModel))).scalars().all()
        groups_by_principal: dict[str, set[str]] = {}
        for m in memberships:
            groups_by_principal.setdefault(m.principal_name, set()).add(m.group_name)
        return [_row_to_principal(r, groups_by_principal.get(r.name, set())) for r in rows]

    async def list_groups(self) -> list[Group]:
        async with self._session_factory() as session:
            rows = (await session.execute(select(GroupModel).order_by(GroupModel.name))).scalars().all()
        return [_row_to_group(r) for r in rows]

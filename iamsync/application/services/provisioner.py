"""Provisioner: reconcile a declared desired state against the registry and vault.

One apply() call is a single convergence pass:

1. ensure exactly one valid one-time secret exists (generate only when
   absent or expired by the configured max age);
2. upsert declared groups, then each principal with its group membership
   and a reset-required login derived from the current secret version;
3. once step 2 has finished for every entry, attach contact metadata,
   retrying UnknownPrincipal within this call only.

Re-running the same input is safe: unchanged entries are no-ops and
entries that failed part-way are completed.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence
from datetime import timedelta

from iamsync.application.dtos.provisioning import (
    DesiredPrincipal,
    EntryResult,
    GroupPolicy,
    ProvisionResult,
)
from iamsync.application.interfaces import (
    ICreationEventPublisher,
    IPrincipalRegistry,
    ISecretVault,
)
from iamsync.core.constants import metadata_path
from iamsync.domain.entities import (
    CreationEvent,
    Group,
    LoginProfile,
    OneTimeSecret,
    Principal,
    SecretPolicy,
)
from iamsync.domain.entities.principal import validate_email, validate_name
from iamsync.domain.enums import EntryStatus
from iamsync.domain.exceptions import (
    IamSyncException,
    NotFoundException,
    UnknownPrincipalException,
    ValidationException,
)
from iamsync.shared.telemetry.tracing import add_span_attributes, traced
from iamsync.shared.utils.generators import generate_event_id

logger = logging.getLogger(__name__)


def validate_desired_state(desired: Sequence[DesiredPrincipal]) -> None:
    """Validate names and emails; a principal listed twice must keep one email.

    Raises:
        ValidationException: On the first invalid entry.
    """
    emails: dict[str, str] = {}
    for entry in desired:
        validate_name(entry.principal_name, "principal_name")
        validate_name(entry.group_name, "group_name")
        validate_email(entry.contact_email)
        seen = emails.setdefault(entry.principal_name, entry.contact_email)
        if seen != entry.contact_email:
            raise ValidationException(
                f"Principal {entry.principal_name} is declared with two contact emails",
                field="contact_email",
            )


class Provisioner:
    """Idempotently provisions principals, groups, login profiles and metadata."""

    def __init__(
        self,
        registry: IPrincipalRegistry,
        vault: ISecretVault,
        *,
        secret_id: str,
        policy: SecretPolicy,
        hash_password: Callable[[str], str],
        max_secret_age: timedelta | None = None,
        metadata_retry_attempts: int = 3,
        metadata_retry_delay_seconds: float = 0.1,
        event_publisher: ICreationEventPublisher | None = None,
    ) -> None:
        self._registry = registry
        self._vault = vault
        self._secret_id = secret_id
        self._policy = policy
        self._hash_password = hash_password
        self._max_secret_age = max_secret_age
        self._metadata_retry_attempts = metadata_retry_attempts
        self._metadata_retry_delay = metadata_retry_delay_seconds
        self._event_publisher = event_publisher

    @traced("provisioner.apply")
    async def apply(
        self,
        desired: Sequence[DesiredPrincipal],
        groups: Sequence[GroupPolicy] = (),
    ) -> ProvisionResult:
        """Run one convergence pass over desired (and declared groups).

        Raises:
            ValidationException: If the input is malformed (nothing is written).
            PolicyViolationException: If the secret policy cannot be satisfied.
        """
        validate_desired_state(desired)
        for policy in groups:
            validate_name(policy.group_name, "group_name")

        secret, generated = await self._vault.ensure_current(
            self._secret_id, self._policy, self._max_secret_age
        )
        add_span_attributes(secret_generated=generated, entries=len(desired))

        for policy in groups:
            await self._registry.upsert_group(Group(name=policy.group_name, rules=policy.rules))
        declared = {policy.group_name for policy in groups}

        results: dict[int, EntryResult] = {}
        before: dict[int, Principal | None] = {}
        new_login: LoginProfile | None = None
        for index, entry in enumerate(desired):
            try:
                existing = await self._lookup(entry.principal_name)
                before[index] = existing
                await self._ensure_group(entry.group_name, declared)
                if not self._login_current(existing, secret):
                    if new_login is None:
                        new_login = await self._new_login(secret)
                    login = new_login
                else:
                    login = existing.login
                created = await self._registry.upsert(
                    Principal(
                        name=entry.principal_name,
                        group_names=existing.group_names if existing else frozenset(),
                        password_reset_required=True,
                        login=login,
                    )
                )
                await self._registry.add_to_group(entry.principal_name, entry.group_name)
                if created:
                    await self._publish_created(entry.principal_name)
            except IamSyncException as e:
                logger.warning(
                    "Provisioning %s into %s failed: %s",
                    entry.principal_name,
                    entry.group_name,
                    e.message,
                )
                results[index] = self._failed(entry, e)

        for index, entry in enumerate(desired):
            if index in results:
                continue
            try:
                await self._attach_metadata(entry)
                after = await self._registry.get(entry.principal_name)
            except IamSyncException as e:
                logger.warning(
                    "Attaching metadata to %s failed: %s", entry.principal_name, e.message
                )
                results[index] = self._failed(entry, e)
                continue
            results[index] = EntryResult(
                principal_name=entry.principal_name,
                group_name=entry.group_name,
                status=self._status(before[index], after),
            )

        result = ProvisionResult(
            secret_id=secret.secret_id,
            secret_version=secret.current_version,
            secret_generated=generated,
            entries=[results[i] for i in range(len(desired))],
        )
        logger.info(
            "Provisioning pass finished: %d succeeded, %d failed (secret %s version %s%s)",
            len(result.succeeded),
            len(result.failed),
            secret.secret_id,
            secret.current_version,
            ", generated" if generated else "",
        )
        return result

    async def _lookup(self, name: str) -> Principal | None:
        try:
            return await self._registry.get(name)
        except NotFoundException:
            return None

    async def _ensure_group(self, group_name: str, declared: set[str]) -> None:
        """Create an empty group for undeclared names that do not exist yet."""
        if group_name in declared:
            return
        try:
            await self._registry.get_group(group_name)
        except NotFoundException:
            logger.warning("Group %s is not declared; creating it without rules", group_name)
            await self._registry.upsert_group(Group(name=group_name))
            declared.add(group_name)

    def _login_current(self, existing: Principal | None, secret: OneTimeSecret) -> bool:
        return (
            existing is not None
            and existing.login is not None
            and existing.login.secret_id == secret.secret_id
            and existing.login.secret_version == secret.current_version
        )

    async def _new_login(self, secret: OneTimeSecret) -> LoginProfile:
        password_hash = await asyncio.to_thread(self._hash_password, secret.value)
        return LoginProfile(
            secret_id=secret.secret_id,
            secret_version=secret.current_version,
            password_hash=password_hash,
            password_reset_required=True,
        )

    async def _attach_metadata(self, entry: DesiredPrincipal) -> None:
        for attempt in range(1, self._metadata_retry_attempts + 1):
            try:
                await self._registry.set_metadata(entry.principal_name, entry.contact_email)
                return
            except UnknownPrincipalException:
                if attempt == self._metadata_retry_attempts:
                    raise
                logger.info(
                    "%s not writable yet (attempt %d/%d); retrying",
                    metadata_path(entry.principal_name),
                    attempt,
                    self._metadata_retry_attempts,
                )
                await asyncio.sleep(self._metadata_retry_delay)

    async def _publish_created(self, principal_name: str) -> None:
        if self._event_publisher is None:
            return
        event = CreationEvent(event_id=generate_event_id(), principal_name=principal_name)
        if not await self._event_publisher.publish(event):
            logger.warning("Creation event for %s was not published", principal_name)

    @staticmethod
    def _status(before: Principal | None, after: Principal) -> EntryStatus:
        if before is None:
            return EntryStatus.CREATED
        if before.same_state(after):
            return EntryStatus.UNCHANGED
        return EntryStatus.UPDATED

    @staticmethod
    def _failed(entry: DesiredPrincipal, error: IamSyncException) -> EntryResult:
        return EntryResult(
            principal_name=entry.principal_name,
            group_name=entry.group_name,
            status=EntryStatus.FAILED,
            error_code=error.error_code,
            message=error.message,
        )

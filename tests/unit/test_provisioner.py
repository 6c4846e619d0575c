"""Provisioner.apply against the in-memory registry and vault."""

from datetime import timedelta
from unittest.mock import AsyncMock

import pytest

from iamsync.application.dtos import DesiredPrincipal, GroupPolicy
from iamsync.application.services import Provisioner, default_stack
from iamsync.core.config import get_settings
from iamsync.domain.entities import PermissionRule, SecretPolicy
from iamsync.domain.enums import EntryStatus
from iamsync.domain.exceptions import (
    NotFoundException,
    PolicyViolationException,
    UnknownPrincipalException,
    ValidationException,
)
from iamsync.infrastructure.registry import InMemoryPrincipalRegistry
from iamsync.infrastructure.vault import InMemorySecretVault

SECRET_ID = "initial-iam-password"

EC2_GROUP = GroupPolicy(
    group_name="EC2UserGroup",
    rules=(PermissionRule(actions=("ec2:Describe*", "ec2:Get*")),),
)


def _fake_hash(password: str) -> str:
    return f"hashed:{len(password)}"


def _ec2_user(email: str = "ec2_user@example.com") -> DesiredPrincipal:
    return DesiredPrincipal(
        principal_name="ec2User", group_name="EC2UserGroup", contact_email=email
    )


def _provisioner(
    registry=None,
    vault=None,
    policy: SecretPolicy | None = None,
    **kwargs,
) -> Provisioner:
    return Provisioner(
        registry or InMemoryPrincipalRegistry(),
        vault or InMemorySecretVault(),
        secret_id=SECRET_ID,
        policy=policy or SecretPolicy(),
        hash_password=_fake_hash,
        metadata_retry_delay_seconds=0,
        **kwargs,
    )


async def test_ec2_user_scenario() -> None:
    """One entry: principal, membership, reset-required login and email metadata."""
    registry = InMemoryPrincipalRegistry()
    vault = InMemorySecretVault()
    result = await _provisioner(registry, vault).apply([_ec2_user()], [EC2_GROUP])

    assert result.ok
    assert result.secret_generated is True
    assert [e.status for e in result.entries] == [EntryStatus.CREATED]
    principal = await registry.get("ec2User")
    assert principal.group_names == frozenset({"EC2UserGroup"})
    assert principal.contact_email == "ec2_user@example.com"
    assert principal.password_reset_required is True
    assert principal.login is not None
    assert principal.login.secret_id == SECRET_ID
    assert principal.login.secret_version == result.secret_version
    assert principal.login.password_reset_required is True
    secret = await vault.describe(SECRET_ID)
    assert secret.current_version == result.secret_version
    assert SecretPolicy().is_satisfied_by(secret.value)
    assert (await registry.get_group("EC2UserGroup")).rules == EC2_GROUP.rules


async def test_apply_is_idempotent() -> None:
    registry = InMemoryPrincipalRegistry()
    vault = InMemorySecretVault()
    provisioner = _provisioner(registry, vault)
    first = await provisioner.apply([_ec2_user()], [EC2_GROUP])
    snapshot = await registry.get("ec2User")

    second = await provisioner.apply([_ec2_user()], [EC2_GROUP])

    assert second.secret_generated is False
    assert second.secret_version == first.secret_version
    assert [e.status for e in second.entries] == [EntryStatus.UNCHANGED]
    after = await registry.get("ec2User")
    assert after == snapshot


async def test_default_stack_applies_both_principals() -> None:
    registry = InMemoryPrincipalRegistry()
    desired, groups = default_stack(get_settings())
    result = await _provisioner(registry).apply(desired, groups)
    assert result.ok
    assert [p.name for p in await registry.list_principals()] == ["ec2User", "s3User"]
    s3 = await registry.get("s3User")
    assert s3.group_names == frozenset({"S3UserGroup"})
    assert s3.contact_email == "s3_user@example.com"
    rules = (await registry.get_group("S3UserGroup")).rules
    assert rules[0].actions == ("s3:Get*", "s3:List*")


async def test_invalid_input_writes_nothing() -> None:
    registry = InMemoryPrincipalRegistry()
    vault = InMemorySecretVault()
    with pytest.raises(ValidationException):
        await _provisioner(registry, vault).apply(
            [_ec2_user(), _ec2_user(email="not-an-email")]
        )
    assert await registry.list_principals() == []
    with pytest.raises(NotFoundException):
        await vault.describe(SECRET_ID)


async def test_principal_with_two_emails_is_rejected() -> None:
    other = DesiredPrincipal(
        principal_name="ec2User", group_name="Other", contact_email="other@example.com"
    )
    with pytest.raises(ValidationException) as exc_info:
        await _provisioner().apply([_ec2_user(), other])
    assert exc_info.value.details["field"] == "contact_email"


async def test_principal_listed_in_two_groups_gets_both() -> None:
    registry = InMemoryPrincipalRegistry()
    second = DesiredPrincipal(
        principal_name="ec2User", group_name="S3UserGroup", contact_email="ec2_user@example.com"
    )
    result = await _provisioner(registry).apply([_ec2_user(), second], [EC2_GROUP])
    assert result.ok
    principal = await registry.get("ec2User")
    assert principal.group_names == frozenset({"EC2UserGroup", "S3UserGroup"})


async def test_undeclared_group_is_created_without_rules() -> None:
    registry = InMemoryPrincipalRegistry()
    await _provisioner(registry).apply([_ec2_user()])
    assert (await registry.get_group("EC2UserGroup")).rules == ()


async def test_unsatisfiable_policy_is_fatal() -> None:
    registry = InMemoryPrincipalRegistry()
    policy = SecretPolicy(excluded_chars=frozenset("ABCDEFGHIJKLMNOPQRSTUVWXYZ"))
    with pytest.raises(PolicyViolationException):
        await _provisioner(registry, policy=policy).apply([_ec2_user()])
    assert await registry.list_principals() == []


class _FlakyGroupRegistry(InMemoryPrincipalRegistry):
    """Fails membership writes for one principal until healed."""

    def __init__(self, broken: str) -> None:
        super().__init__()
        self.broken: str | None = broken

    async def add_to_group(self, name: str, group_name: str) -> None:
        if name == self.broken:
            raise NotFoundException("group", group_name)
        await super().add_to_group(name, group_name)


async def test_partial_failure_is_completed_by_rerun() -> None:
    registry = _FlakyGroupRegistry(broken="s3User")
    provisioner = _provisioner(registry)
    desired, groups = default_stack(get_settings())

    first = await provisioner.apply(desired, groups)
    assert not first.ok
    assert [e.principal_name for e in first.succeeded] == ["ec2User"]
    assert first.failed[0].principal_name == "s3User"
    assert first.failed[0].error_code == "NOT_FOUND"
    assert (await registry.get("s3User")).contact_email is None

    registry.broken = None
    second = await provisioner.apply(desired, groups)
    assert second.ok
    statuses = {e.principal_name: e.status for e in second.entries}
    assert statuses == {"ec2User": EntryStatus.UNCHANGED, "s3User": EntryStatus.UPDATED}
    s3 = await registry.get("s3User")
    assert s3.group_names == frozenset({"S3UserGroup"})
    assert s3.contact_email == "s3_user@example.com"


class _LaggingMetadataRegistry(InMemoryPrincipalRegistry):
    """Reports UnknownPrincipal for the first `lag` metadata writes."""

    def __init__(self, lag: int) -> None:
        super().__init__()
        self.lag = lag
        self.metadata_calls = 0

    async def set_metadata(self, name: str, email: str) -> None:
        self.metadata_calls += 1
        if self.metadata_calls <= self.lag:
            raise UnknownPrincipalException(name)
        await super().set_metadata(name, email)


async def test_metadata_is_retried_until_principal_visible() -> None:
    registry = _LaggingMetadataRegistry(lag=2)
    result = await _provisioner(registry, metadata_retry_attempts=3).apply([_ec2_user()])
    assert result.ok
    assert registry.metadata_calls == 3
    assert (await registry.get("ec2User")).contact_email == "ec2_user@example.com"


async def test_metadata_retries_are_bounded() -> None:
    registry = _LaggingMetadataRegistry(lag=10)
    result = await _provisioner(registry, metadata_retry_attempts=3).apply([_ec2_user()])
    assert registry.metadata_calls == 3
    assert result.failed[0].error_code == "UNKNOWN_PRINCIPAL"


async def test_expired_secret_rotates_logins() -> None:
    registry = InMemoryPrincipalRegistry()
    provisioner = _provisioner(registry, max_secret_age=timedelta(0))
    first = await provisioner.apply([_ec2_user()])
    second = await provisioner.apply([_ec2_user()])
    assert second.secret_generated is True
    assert second.secret_version != first.secret_version
    assert [e.status for e in second.entries] == [EntryStatus.UPDATED]
    principal = await registry.get("ec2User")
    assert principal.login.secret_version == second.secret_version


async def test_creation_events_published_only_for_new_principals() -> None:
    publisher = AsyncMock()
    publisher.publish = AsyncMock(return_value=True)
    provisioner = _provisioner(event_publisher=publisher)
    desired, groups = default_stack(get_settings())

    await provisioner.apply(desired, groups)
    await provisioner.apply(desired, groups)

    assert publisher.publish.await_count == 2
    names = sorted(call.args[0].principal_name for call in publisher.publish.await_args_list)
    assert names == ["ec2User", "s3User"]


async def test_login_hash_computed_once_per_pass() -> None:
    calls: list[str] = []

    def counting_hash(password: str) -> str:
        calls.append(password)
        return "h"

    provisioner = Provisioner(
        InMemoryPrincipalRegistry(),
        InMemorySecretVault(),
        secret_id=SECRET_ID,
        policy=SecretPolicy(),
        hash_password=counting_hash,
    )
    desired, groups = default_stack(get_settings())
    await provisioner.apply(desired, groups)
    assert len(calls) == 1

"""InMemoryPrincipalRegistry: upsert semantics, membership, metadata ordering."""

import pytest

from iamsync.domain.entities import Group, LoginProfile, PermissionRule, Principal
from iamsync.domain.exceptions import (
    NotFoundException,
    UnknownPrincipalException,
    ValidationException,
)
from iamsync.infrastructure.registry import InMemoryPrincipalRegistry


@pytest.fixture
def registry() -> InMemoryPrincipalRegistry:
    return InMemoryPrincipalRegistry()


async def test_upsert_reports_creation_once(registry: InMemoryPrincipalRegistry) -> None:
    assert await registry.upsert(Principal(name="ec2User")) is True
    assert await registry.upsert(Principal(name="ec2User")) is False
    assert [p.name for p in await registry.list_principals()] == ["ec2User"]


async def test_upsert_keeps_created_at_and_email(registry: InMemoryPrincipalRegistry) -> None:
    await registry.upsert(Principal(name="ec2User"))
    original = await registry.get("ec2User")
    await registry.set_metadata("ec2User", "ec2_user@example.com")
    login = LoginProfile(secret_id="initial-iam-password", secret_version="v1", password_hash="h")
    await registry.upsert(Principal(name="ec2User", login=login))
    updated = await registry.get("ec2User")
    assert updated.created_at == original.created_at
    assert updated.contact_email == "ec2_user@example.com"
    assert updated.login == login


async def test_get_missing_principal(registry: InMemoryPrincipalRegistry) -> None:
    with pytest.raises(NotFoundException) as exc_info:
        await registry.get("ghost")
    assert exc_info.value.details == {"resource_type": "principal", "resource_id": "ghost"}


async def test_add_to_group_is_idempotent(registry: InMemoryPrincipalRegistry) -> None:
    await registry.upsert_group(Group(name="EC2UserGroup"))
    await registry.upsert(Principal(name="ec2User"))
    await registry.add_to_group("ec2User", "EC2UserGroup")
    await registry.add_to_group("ec2User", "EC2UserGroup")
    assert (await registry.get("ec2User")).group_names == frozenset({"EC2UserGroup"})


async def test_add_to_missing_group(registry: InMemoryPrincipalRegistry) -> None:
    await registry.upsert(Principal(name="ec2User"))
    with pytest.raises(NotFoundException):
        await registry.add_to_group("ec2User", "NoSuchGroup")


async def test_metadata_before_principal_is_unknown_principal(
    registry: InMemoryPrincipalRegistry,
) -> None:
    """Metadata can only follow the principal it describes."""
    with pytest.raises(UnknownPrincipalException) as exc_info:
        await registry.set_metadata("ec2User", "ec2_user@example.com")
    assert exc_info.value.error_code == "UNKNOWN_PRINCIPAL"
    await registry.upsert(Principal(name="ec2User"))
    await registry.set_metadata("ec2User", "ec2_user@example.com")
    assert (await registry.get("ec2User")).contact_email == "ec2_user@example.com"


async def test_set_metadata_rejects_bad_email(registry: InMemoryPrincipalRegistry) -> None:
    await registry.upsert(Principal(name="ec2User"))
    with pytest.raises(ValidationException):
        await registry.set_metadata("ec2User", "not-an-email")


async def test_groups_round_trip(registry: InMemoryPrincipalRegistry) -> None:
    group = Group(
        name="S3UserGroup",
        rules=(PermissionRule(actions=("s3:Get*", "s3:List*")),),
    )
    await registry.upsert_group(group)
    await registry.upsert_group(Group(name="EC2UserGroup"))
    assert await registry.get_group("S3UserGroup") == group
    assert [g.name for g in await registry.list_groups()] == ["EC2UserGroup", "S3UserGroup"]
    with pytest.raises(NotFoundException):
        await registry.get_group("Missing")


def test_principal_name_validation() -> None:
    with pytest.raises(ValidationException):
        Principal(name="")
    with pytest.raises(ValidationException):
        Principal(name="has space")
    with pytest.raises(ValidationException):
        Principal(name="x" * 65)


def test_permission_rule_needs_actions() -> None:
    with pytest.raises(ValidationException):
        PermissionRule(actions=())

"""Principal and group domain entities.

Represent identity accounts and the permission bundles attached to them,
independent of persistence.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime

from iamsync.domain.exceptions import ValidationException
from iamsync.shared.utils.datetime import utc_now

# Principal and group names follow IAM naming: alphanumerics plus +=,.@_-
_NAME_RE = re.compile(r"^[A-Za-z0-9+=,.@_-]{1,64}$")
_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def validate_name(value: str, field_name: str) -> None:
    """Raise ValidationException unless value is a valid principal/group name."""
    if not value or not _NAME_RE.match(value):
        raise ValidationException(
            f"{field_name} must be 1-64 characters of letters, digits or +=,.@_-",
            field=field_name,
        )


def validate_email(value: str, field_name: str = "contact_email") -> None:
    """Raise ValidationException unless value looks like an email address."""
    if not value or not _EMAIL_RE.match(value):
        raise ValidationException(f"Invalid email address: {value!r}", field=field_name)


@dataclass(frozen=True)
class PermissionRule:
    """Allow-rule: action patterns (e.g. 's3:Get*') on resource patterns (e.g. '*')."""

    actions: tuple[str, ...]
    resources: tuple[str, ...] = ("*",)

    def __post_init__(self) -> None:
        if not self.actions:
            raise ValidationException("Permission rule needs at least one action", field="actions")
        if not self.resources:
            raise ValidationException(
                "Permission rule needs at least one resource", field="resources"
            )


@dataclass(frozen=True)
class Group:
    """Named bundle of allow-rules. Rules are additive; there are no deny rules."""

    name: str
    rules: tuple[PermissionRule, ...] = ()

    def __post_init__(self) -> None:
        validate_name(self.name, "group_name")


@dataclass(frozen=True)
class LoginProfile:
    """Console login derived from one version of the shared one-time secret."""

    secret_id: str
    secret_version: str
    password_hash: str = field(repr=False)
    password_reset_required: bool = True


@dataclass(frozen=True)
class Principal:
    """Identity account subject to provisioning.

    The name is the registry key and is immutable once created. created_at
    is kept from the first insert when the principal is replaced.
    """

    name: str
    group_names: frozenset[str] = frozenset()
    contact_email: str | None = None
    password_reset_required: bool = True
    created_at: datetime = field(default_factory=utc_now)
    login: LoginProfile | None = None

    def __post_init__(self) -> None:
        validate_name(self.name, "principal_name")
        if self.contact_email is not None:
            validate_email(self.contact_email)

    def same_state(self, other: "Principal") -> bool:
        """Return True when other differs from self at most in created_at."""
        return (
            self.name == other.name
            and self.group_names == other.group_names
            and self.contact_email == other.contact_email
            and self.password_reset_required == other.password_reset_required
            and self.login == other.login
        )

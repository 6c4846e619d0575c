"""DTOs for provisioning use cases (no dependency on ORM or HTTP schemas)."""

from dataclasses import dataclass, field

from iamsync.domain.entities import PermissionRule
from iamsync.domain.enums import EntryStatus


@dataclass(frozen=True)
class DesiredPrincipal:
    """One desired-state entry: principal, its group and contact email."""

    principal_name: str
    group_name: str
    contact_email: str


@dataclass(frozen=True)
class GroupPolicy:
    """Declared group with its allow-rules."""

    group_name: str
    rules: tuple[PermissionRule, ...] = ()


@dataclass(frozen=True)
class EntryResult:
    """Outcome of reconciling one desired-state entry."""

    principal_name: str
    group_name: str
    status: EntryStatus
    error_code: str | None = None
    message: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.status != EntryStatus.FAILED


@dataclass
class ProvisionResult:
    """Result of one Provisioner.apply call. Never carries the secret value."""

    secret_id: str
    secret_version: str
    secret_generated: bool
    entries: list[EntryResult] = field(default_factory=list)

    @property
    def succeeded(self) -> list[EntryResult]:
        return [e for e in self.entries if e.succeeded]

    @property
    def failed(self) -> list[EntryResult]:
        return [e for e in self.entries if not e.succeeded]

    @property
    def ok(self) -> bool:
        return not self.failed

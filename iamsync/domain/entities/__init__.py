"""Domain entities.

Pure domain models; no ORM or persistence concerns.
"""

from iamsync.domain.entities.audit import (
    AuditRecord,
    CorrelationFailure,
    CreationEvent,
    LedgerEntry,
)
from iamsync.domain.entities.principal import (
    Group,
    LoginProfile,
    PermissionRule,
    Principal,
)
from iamsync.domain.entities.secret import OneTimeSecret, SecretPolicy

__all__ = [
    "AuditRecord",
    "CorrelationFailure",
    "CreationEvent",
    "Group",
    "LedgerEntry",
    "LoginProfile",
    "OneTimeSecret",
    "PermissionRule",
    "Principal",
    "SecretPolicy",
]

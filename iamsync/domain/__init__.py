"""Domain layer: entities, enums, and exceptions.

No dependencies on infrastructure or presentation. Used by application
and infrastructure layers.
"""

from iamsync.domain.entities import (
    AuditRecord,
    CorrelationFailure,
    CreationEvent,
    Group,
    LedgerEntry,
    LoginProfile,
    OneTimeSecret,
    PermissionRule,
    Principal,
    SecretPolicy,
)
from iamsync.domain.enums import CharacterClass, CorrelationState, EntryStatus
from iamsync.domain.exceptions import (
    CorrelationTimeoutException,
    IamSyncException,
    LockTimeoutException,
    NotFoundException,
    PolicyViolationException,
    SinkRejectedException,
    UnknownPrincipalException,
    ValidationException,
)

__all__ = [
    # Entities
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
    # Enums
    "CharacterClass",
    "CorrelationState",
    "EntryStatus",
    # Exceptions
    "CorrelationTimeoutException",
    "IamSyncException",
    "LockTimeoutException",
    "NotFoundException",
    "PolicyViolationException",
    "SinkRejectedException",
    "UnknownPrincipalException",
    "ValidationException",
]

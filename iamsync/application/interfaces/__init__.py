"""Application interfaces (ports): registry, vault and service protocols.

No runtime imports from iamsync.infrastructure.
"""

from iamsync.application.interfaces.repositories import IPrincipalRegistry, ISecretVault
from iamsync.application.interfaces.services import (
    IAuditSink,
    ICreationEventPublisher,
    IErrorChannel,
)

__all__ = [
    "IAuditSink",
    "ICreationEventPublisher",
    "IErrorChannel",
    "IPrincipalRegistry",
    "ISecretVault",
]

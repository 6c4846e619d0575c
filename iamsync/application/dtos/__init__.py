"""Application DTOs."""

from iamsync.application.dtos.provisioning import (
    DesiredPrincipal,
    EntryResult,
    GroupPolicy,
    ProvisionResult,
)

__all__ = ["DesiredPrincipal", "EntryResult", "GroupPolicy", "ProvisionResult"]

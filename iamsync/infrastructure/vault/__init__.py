"""Secret vault client implementations."""

from iamsync.infrastructure.vault.secret_vault import InMemorySecretVault

__all__ = ["InMemorySecretVault"]

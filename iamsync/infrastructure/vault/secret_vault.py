"""In-memory versioned secret vault.

Stands in for a Secrets Manager style store: each generate() appends one
version and moves the current pointer; values are never recomputed and
old versions are reachable only by their version token.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import timedelta

from iamsync.domain.entities.secret import OneTimeSecret, SecretPolicy
from iamsync.domain.exceptions import NotFoundException
from iamsync.infrastructure.security.password import generate_password
from iamsync.shared.utils.datetime import utc_now
from iamsync.shared.utils.generators import generate_cuid
from iamsync.shared.utils.locks import KeyedLock

logger = logging.getLogger(__name__)


@dataclass
class _SecretVersions:
    current: str
    versions: dict[str, OneTimeSecret] = field(default_factory=dict)


class InMemorySecretVault:
    """Versioned secret store with a single-writer section per secret id."""

    def __init__(self, lock_timeout_seconds: float | None = None) -> None:
        self._secrets: dict[str, _SecretVersions] = {}
        self._locks = KeyedLock(lock_timeout_seconds)

    async def generate(self, secret_id: str, policy: SecretPolicy) -> OneTimeSecret:
        """Generate, store and return a new current version of secret_id.

        Raises:
            PolicyViolationException: If the policy cannot be satisfied.
        """
        async with self._locks.hold(secret_id):
            return self._append_version(secret_id, policy)

    async def ensure_current(
        self,
        secret_id: str,
        policy: SecretPolicy,
        max_age: timedelta | None = None,
    ) -> tuple[OneTimeSecret, bool]:
        """Return the current version, generating one if absent or expired.

        Check and generation run under the secret's lock, so concurrent
        callers never create two valid versions.

        Returns:
            (secret, generated) where generated is True if a new version was made.
        """
        async with self._locks.hold(secret_id):
            entry = self._secrets.get(secret_id)
            if entry is not None:
                current = entry.versions[entry.current]
                if max_age is None or utc_now() - current.created_at < max_age:
                    return current, False
                logger.info(
                    "Secret %s version %s expired (max_age=%s); rotating",
                    secret_id,
                    current.current_version,
                    max_age,
                )
            return self._append_version(secret_id, policy), True

    async def get(self, secret_id: str, version: str | None = None) -> str:
        """Return the value of the current (or a specific) version.

        Raises:
            NotFoundException: If the secret or the version does not exist.
        """
        return (await self.describe(secret_id, version)).value

    async def describe(self, secret_id: str, version: str | None = None) -> OneTimeSecret:
        """Return the stored OneTimeSecret for the current (or a specific) version."""
        entry = self._secrets.get(secret_id)
        if entry is None:
            raise NotFoundException("secret", secret_id)
        token = version if version is not None else entry.current
        secret = entry.versions.get(token)
        if secret is None:
            raise NotFoundException("secret_version", f"{secret_id}:{token}")
        return secret

    def _append_version(self, secret_id: str, policy: SecretPolicy) -> OneTimeSecret:
        value = generate_password(policy, secret_id)
        secret = OneTimeSecret(
            secret_id=secret_id,
            current_version=generate_cuid(),
            value=value,
            created_at=utc_now(),
        )
        entry = self._secrets.get(secret_id)
        if entry is None:
            entry = self._secrets[secret_id] = _SecretVersions(current=secret.current_version)
        entry.versions[secret.current_version] = secret
        entry.current = secret.current_version
        logger.info("Generated secret %s version %s", secret_id, secret.current_version)
        return secret

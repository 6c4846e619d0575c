"""One-time password generation and login hashing.

Generation draws from the `secrets` CSPRNG. Login profiles store a bcrypt
hash with SHA-256 pre-hash (bcrypt truncates inputs at 72 bytes).
"""

import base64
import hashlib
import secrets

import bcrypt

from iamsync.domain.entities.secret import SecretPolicy
from iamsync.domain.exceptions import PolicyViolationException

# Minimum length that can hold one character of each required class.
_CLASS_COUNT = 4


def _check_satisfiable(policy: SecretPolicy, secret_id: str) -> None:
    """Raise PolicyViolationException for policies no candidate could meet."""
    if policy.min_length <= 0:
        raise PolicyViolationException(secret_id, "min_length must be positive")
    if not policy.alphabet():
        raise PolicyViolationException(secret_id, "every character is excluded")
    if policy.require_each_class:
        empty = [cls.value for cls, chars in policy.allowed_by_class().items() if not chars]
        if empty:
            raise PolicyViolationException(
                secret_id, f"required classes fully excluded: {', '.join(empty)}"
            )


def generate_password(policy: SecretPolicy, secret_id: str = "") -> str:
    """Return a random string satisfying policy.

    Candidates of length max(min_length, 4) are drawn until one meets the
    policy, at most policy.max_attempts times.

    Raises:
        PolicyViolationException: If the policy is unsatisfiable or no
            candidate passed within the attempt bound.
    """
    _check_satisfiable(policy, secret_id)
    alphabet = policy.alphabet()
    length = max(policy.min_length, _CLASS_COUNT if policy.require_each_class else 1)
    for _ in range(policy.max_attempts):
        candidate = "".join(secrets.choice(alphabet) for _ in range(length))
        if policy.is_satisfied_by(candidate):
            return candidate
    raise PolicyViolationException(
        secret_id, f"no valid value generated in {policy.max_attempts} attempts"
    )


def _prehash(password: str) -> bytes:
    """SHA-256 pre-hash to avoid bcrypt's 72-byte truncation."""
    return base64.b64encode(hashlib.sha256(password.encode("utf-8")).digest())


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Return True if plain_password matches hashed_password."""
    try:
        return bool(bcrypt.checkpw(_prehash(plain_password), hashed_password.encode("utf-8")))
    except (ValueError, TypeError):
        return False


def get_password_hash(password: str) -> str:
    """Return bcrypt hash of password (SHA-256 pre-hashed before bcrypt)."""
    return bcrypt.hashpw(_prehash(password), bcrypt.gensalt()).decode("utf-8")

"""Security helpers: one-time password generation and bcrypt hashing."""

from iamsync.infrastructure.security.password import (
    generate_password,
    get_password_hash,
    verify_password,
)

__all__ = ["generate_password", "get_password_hash", "verify_password"]

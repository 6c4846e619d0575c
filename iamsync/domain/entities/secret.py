"""One-time secret entity and its complexity policy."""

import string
from dataclasses import dataclass, field
from datetime import datetime

from iamsync.domain.enums import CharacterClass

CHARACTER_CLASSES: dict[CharacterClass, str] = {
    CharacterClass.UPPER: string.ascii_uppercase,
    CharacterClass.LOWER: string.ascii_lowercase,
    CharacterClass.DIGIT: string.digits,
    CharacterClass.SYMBOL: string.punctuation,
}


@dataclass(frozen=True)
class SecretPolicy:
    """Complexity policy for generated secrets.

    Attributes:
        min_length: Minimum number of characters.
        excluded_chars: Characters that must never appear.
        require_each_class: Require at least one upper, lower, digit and symbol.
        max_attempts: Bound on generation attempts before giving up.
    """

    min_length: int = 16
    excluded_chars: frozenset[str] = frozenset('"@/\\')
    require_each_class: bool = True
    max_attempts: int = 100

    def allowed_by_class(self) -> dict[CharacterClass, str]:
        """Return each character class with excluded characters removed."""
        return {
            cls: "".join(c for c in chars if c not in self.excluded_chars)
            for cls, chars in CHARACTER_CLASSES.items()
        }

    def alphabet(self) -> str:
        """Return every character a generated secret may contain."""
        return "".join(self.allowed_by_class().values())

    def is_satisfied_by(self, value: str) -> bool:
        """Return True if value meets length, exclusion and class requirements."""
        if len(value) < self.min_length:
            return False
        if any(c in self.excluded_chars for c in value):
            return False
        if self.require_each_class:
            for chars in CHARACTER_CLASSES.values():
                if not any(c in chars for c in value):
                    return False
        return True


@dataclass(frozen=True)
class OneTimeSecret:
    """A stored version of the shared one-time password.

    The value is generated once per version and never recomputed. It is
    excluded from repr so it does not leak into logs.
    """

    secret_id: str
    current_version: str
    value: str = field(repr=False)
    created_at: datetime

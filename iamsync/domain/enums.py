"""Domain enumerations for iamsync.

Enums represent fixed sets of domain values (correlation lifecycle,
provisioning outcomes, character classes).
"""

from enum import Enum


class CorrelationState(str, Enum):
    """Lifecycle of one logical principal creation in the correlation ledger.

    PENDING -> CORRELATED -> EMITTED. FAILED marks exhausted retries; a
    later redelivery may claim the entry again.
    """

    PENDING = "pending"
    CORRELATED = "correlated"
    EMITTED = "emitted"
    FAILED = "failed"

    @classmethod
    def values(cls) -> list[str]:
        """Return all valid state values as strings."""
        return [state.value for state in cls]


class EntryStatus(str, Enum):
    """Outcome of reconciling one desired-state entry."""

    CREATED = "created"
    UPDATED = "updated"
    UNCHANGED = "unchanged"
    FAILED = "failed"


class CharacterClass(str, Enum):
    """Character classes a generated secret may be required to include."""

    UPPER = "upper"
    LOWER = "lower"
    DIGIT = "digit"
    SYMBOL = "symbol"

"""Dedupe ledger for creation event correlation, keyed by principal name."""

from __future__ import annotations

from iamsync.domain.entities import LedgerEntry
from iamsync.domain.enums import CorrelationState


class CorrelationLedger:
    """In-memory ledger. An absent entry means PENDING (never seen)."""

    def __init__(self) -> None:
        self._entries: dict[str, LedgerEntry] = {}

    def get(self, principal_name: str) -> LedgerEntry | None:
        return self._entries.get(principal_name)

    def state(self, principal_name: str) -> CorrelationState:
        entry = self._entries.get(principal_name)
        return entry.state if entry else CorrelationState.PENDING

    def put(self, entry: LedgerEntry) -> None:
        self._entries[entry.principal_name] = entry

    def remove(self, entry: LedgerEntry) -> None:
        """Drop entry, unless it has since been replaced by another one."""
        if self._entries.get(entry.principal_name) is entry:
            del self._entries[entry.principal_name]

    def entries(self) -> list[LedgerEntry]:
        return [self._entries[name] for name in sorted(self._entries)]

"""Audit sink implementations.

LoggingAuditSink writes each record to the 'iamsync.audit' logger, the
way the original notification handler printed new users. InMemoryAuditSink
keeps records for the read API and tests.
"""

from __future__ import annotations

import logging

from iamsync.domain.entities import AuditRecord

audit_logger = logging.getLogger("iamsync.audit")

_MASK = "********"


class LoggingAuditSink:
    """Logs audit records. The secret value is masked unless reveal_secret is set."""

    def __init__(self, reveal_secret: bool = False) -> None:
        self._reveal_secret = reveal_secret

    async def emit(self, record: AuditRecord) -> None:
        secret = record.secret_value_at_creation if self._reveal_secret else _MASK
        audit_logger.info(
            "[New User Created] Username: %s Email: %s Temporary Password: %s "
            "(secret version %s, event %s)",
            record.principal_name,
            record.contact_email,
            secret,
            record.secret_version,
            record.event_id,
        )


class InMemoryAuditSink:
    """Keeps emitted records in order of emission."""

    def __init__(self) -> None:
        self.records: list[AuditRecord] = []

    async def emit(self, record: AuditRecord) -> None:
        self.records.append(record)
        audit_logger.info("Audit record stored for %s", record.principal_name)

"""Audit sinks and error channels."""

from iamsync.infrastructure.sinks.audit_sinks import InMemoryAuditSink, LoggingAuditSink
from iamsync.infrastructure.sinks.error_channels import (
    InMemoryErrorChannel,
    LoggingErrorChannel,
)

__all__ = [
    "InMemoryAuditSink",
    "InMemoryErrorChannel",
    "LoggingAuditSink",
    "LoggingErrorChannel",
]

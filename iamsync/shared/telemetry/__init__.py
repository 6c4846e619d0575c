"""Logging setup, OpenTelemetry configuration and tracing helpers."""

from iamsync.shared.telemetry.logging import setup_logging
from iamsync.shared.telemetry.telemetry import TelemetryConfig, get_telemetry, set_telemetry
from iamsync.shared.telemetry.tracing import add_span_attributes, add_span_event, traced

__all__ = [
    "TelemetryConfig",
    "add_span_attributes",
    "add_span_event",
    "get_telemetry",
    "set_telemetry",
    "setup_logging",
    "traced",
]

"""OpenTelemetry setup for the provisioning service.

Spans come from @traced on Provisioner.apply and EventCorrelator.handle,
plus FastAPI, Redis and SQLAlchemy instrumentation for whichever backends
the settings select. Exporters: console, otlp, or none (spans are created
and sampled but not exported).
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, Any

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import SERVICE_NAME, SERVICE_VERSION, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import (
    BatchSpanProcessor,
    ConsoleSpanExporter,
    SpanExporter,
)
from opentelemetry.sdk.trace.sampling import ParentBased, TraceIdRatioBased

if TYPE_CHECKING:
    from fastapi import FastAPI

    from iamsync.core.config import Settings

logger = logging.getLogger(__name__)


def _build_exporter(exporter_type: str, otlp_endpoint: str | None) -> SpanExporter | None:
    """Return the span exporter for exporter_type; None means export nothing."""
    if exporter_type == "none":
        return None
    if exporter_type == "otlp":
        if otlp_endpoint:
            return OTLPSpanExporter(
                endpoint=otlp_endpoint, insecure=otlp_endpoint.startswith("http://")
            )
        logger.warning("TELEMETRY_OTLP_ENDPOINT not set; falling back to console exporter")
    elif exporter_type != "console":
        logger.warning("Unknown telemetry exporter %r; using console", exporter_type)
    return ConsoleSpanExporter()


class TelemetryConfig:
    """Tracer provider and instrumentation for one process."""

    def __init__(
        self,
        service_name: str,
        service_version: str,
        environment: str = "development",
    ) -> None:
        self.service_name = service_name
        self.service_version = service_version
        self.environment = environment
        self.tracer_provider: TracerProvider | None = None
        self._instrumented: list[str] = []

    @classmethod
    def from_settings(cls, settings: Settings) -> TelemetryConfig:
        return cls(
            service_name=settings.app_name,
            service_version=settings.app_version,
            environment=settings.telemetry_environment,
        )

    def setup_telemetry(
        self,
        exporter_type: str = "console",
        otlp_endpoint: str | None = None,
        sample_rate: float = 1.0,
    ) -> TracerProvider | None:
        """Install the global tracer provider.

        Failures are logged and leave tracing as a no-op; provisioning and
        correlation never depend on telemetry.

        Returns:
            The TracerProvider, or None if setup failed.
        """
        try:
            provider = TracerProvider(
                resource=Resource(
                    attributes={
                        SERVICE_NAME: self.service_name,
                        SERVICE_VERSION: self.service_version,
                        "deployment.environment": self.environment,
                    }
                ),
                sampler=ParentBased(TraceIdRatioBased(sample_rate)),
            )
            exporter = _build_exporter(exporter_type, otlp_endpoint)
            if exporter is not None:
                provider.add_span_processor(BatchSpanProcessor(exporter))
            trace.set_tracer_provider(provider)
        except Exception as e:
            logger.exception("Failed to initialize telemetry: %s", e)
            return None
        self.tracer_provider = provider
        logger.info(
            "Tracing enabled for %s %s (exporter=%s, sample_rate=%s)",
            self.service_name,
            self.service_version,
            exporter_type,
            sample_rate,
        )
        return provider

    def instrument_fastapi(self, app: FastAPI) -> None:
        """Trace API requests; health probes are excluded."""
        from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor

        self._instrument(
            "fastapi",
            lambda provider: FastAPIInstrumentor.instrument_app(
                app, tracer_provider=provider, excluded_urls="/api/v1/health"
            ),
        )

    def instrument_redis(self) -> None:
        """Trace the Redis client behind the creation event channel."""
        from opentelemetry.instrumentation.redis import RedisInstrumentor

        self._instrument(
            "redis", lambda provider: RedisInstrumentor().instrument(tracer_provider=provider)
        )

    def instrument_sqlalchemy(self, engine: Any) -> None:
        """Trace registry queries on the async engine."""
        from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor

        self._instrument(
            "sqlalchemy",
            lambda provider: SQLAlchemyInstrumentor().instrument(
                engine=engine.sync_engine, tracer_provider=provider
            ),
        )

    def _instrument(self, name: str, install: Any) -> None:
        if self.tracer_provider is None or name in self._instrumented:
            return
        install(self.tracer_provider)
        self._instrumented.append(name)
        logger.info("%s instrumentation enabled", name)

    def shutdown(self) -> None:
        """Flush remaining spans and shut down the provider."""
        if self.tracer_provider is None:
            return
        try:
            self.tracer_provider.shutdown()
        except Exception as e:
            logger.exception("Error during telemetry shutdown: %s", e)
        else:
            logger.info("Telemetry shutdown complete")


_telemetry: TelemetryConfig | None = None
_telemetry_lock = threading.RLock()


def get_telemetry() -> TelemetryConfig | None:
    """Return the process telemetry instance (set by the lifespan)."""
    with _telemetry_lock:
        return _telemetry


def set_telemetry(telemetry: TelemetryConfig | None) -> None:
    global _telemetry
    with _telemetry_lock:
        _telemetry = telemetry

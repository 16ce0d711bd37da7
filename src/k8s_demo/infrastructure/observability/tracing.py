"""
OpenTelemetry distributed tracing support.

Exports spans over OTLP/HTTP (Jaeger, Tempo, any OTLP collector) with a
batch span processor and an environment-keyed sampling policy.

Key Concepts:
- Span: Single unit of work (function call, HTTP request)
- Trace: Collection of spans representing end-to-end flow
- Context Propagation: Passing trace context between services

Example:
    from k8s_demo.infrastructure.observability import TracingConfig, init_tracing

    tracing = init_tracing(
        TracingConfig(
            service_name="k8s-demo",
            service_version="v0.1.0",
            environment="PRODUCTION",
            endpoint="http://jaeger:4318/v1/traces",
        )
    )
    with start_span(tracing.tracer, "startup_check"):
        ...
    tracing.shutdown(timeout=5.0)
"""

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Iterator, Optional
from urllib.parse import urlparse

from opentelemetry import propagate, trace
from opentelemetry.baggage.propagation import W3CBaggagePropagator
from opentelemetry.exporter.otlp.proto.http.trace_exporter import (
    OTLPSpanExporter,
)
from opentelemetry.propagators.composite import CompositePropagator
from opentelemetry.propagators.textmap import TextMapPropagator
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.sdk.trace.sampling import ALWAYS_ON, Sampler, TraceIdRatioBased
from opentelemetry.trace.propagation.tracecontext import (
    TraceContextTextMapPropagator,
)

from k8s_demo.config import ENV_DEVELOPMENT, ENV_PRODUCTION
from k8s_demo.domain.exceptions import TelemetryInitError, TelemetryShutdownError

logger = logging.getLogger(__name__)

MAX_EXPORT_BATCH_SIZE = 512
SCHEDULE_DELAY_MILLIS = 5_000
EXPORT_TIMEOUT_MILLIS = 30_000
# Per-request HTTP timeout of the OTLP exporter, seconds
EXPORTER_REQUEST_TIMEOUT = 10

PRODUCTION_SAMPLE_RATE = 0.2
DEVELOPMENT_SAMPLE_RATE = 1.0
DEFAULT_SAMPLE_RATE = 0.5


@dataclass(frozen=True)
class TracingConfig:
    """Configuration for OpenTelemetry tracing."""

    service_name: str
    """Name of the service (resource attribute service.name)"""

    service_version: str = "v0.1.0"
    """Version of the service (resource attribute service.version)"""

    environment: str = ENV_DEVELOPMENT
    """Deployment environment tag, also selects the sampler"""

    endpoint: str = "http://jaeger:4318/v1/traces"
    """OTLP/HTTP traces endpoint URL"""


def sample_rate_for_environment(environment: str) -> float:
    """Return the fraction of traces sampled for an environment tag."""
    if environment == ENV_PRODUCTION:
        return PRODUCTION_SAMPLE_RATE
    if environment == ENV_DEVELOPMENT:
        return DEVELOPMENT_SAMPLE_RATE
    return DEFAULT_SAMPLE_RATE


def sampler_for_environment(environment: str) -> Sampler:
    """
    Select the sampling strategy for an environment tag.

    PRODUCTION samples 20%, DEVELOPMENT samples everything, any other
    environment samples 50%.
    """
    if environment == ENV_DEVELOPMENT:
        return ALWAYS_ON
    return TraceIdRatioBased(sample_rate_for_environment(environment))


def _validate_endpoint(endpoint: str) -> None:
    parsed = urlparse(endpoint)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise TelemetryInitError(f"invalid collector endpoint {endpoint!r}")


class TracingManager:
    """
    Manages OpenTelemetry tracing setup and lifecycle.

    Owns the tracer provider and hands out the tracer and propagator by
    reference, so callers never need to reach for the global API.
    """

    def __init__(self, config: TracingConfig):
        """
        Initialize tracing manager.

        Args:
            config: Tracing configuration
        """
        self.config = config
        self.tracer_provider: Optional[TracerProvider] = None
        self.tracer: Optional[trace.Tracer] = None
        self.propagator: TextMapPropagator = CompositePropagator(
            [TraceContextTextMapPropagator(), W3CBaggagePropagator()]
        )
        self._initialized = False

    def setup(self, register_global: bool = True) -> trace.Tracer:
        """
        Setup OpenTelemetry tracing.

        Args:
            register_global: Install provider and propagator process-wide

        Returns:
            Configured tracer instance

        Raises:
            TelemetryInitError: If the exporter cannot be built
        """
        if self._initialized:
            logger.warning("Tracing already initialized")
            return self.tracer

        _validate_endpoint(self.config.endpoint)

        try:
            exporter = OTLPSpanExporter(
                endpoint=self.config.endpoint, timeout=EXPORTER_REQUEST_TIMEOUT
            )
        except Exception as e:
            raise TelemetryInitError(str(e)) from e

        resource = Resource.create(
            {
                "service.name": self.config.service_name,
                "service.version": self.config.service_version,
                "deployment.environment": self.config.environment,
            }
        )

        self.tracer_provider = TracerProvider(
            resource=resource,
            sampler=sampler_for_environment(self.config.environment),
        )

        span_processor = BatchSpanProcessor(
            exporter,
            max_export_batch_size=MAX_EXPORT_BATCH_SIZE,
            schedule_delay_millis=SCHEDULE_DELAY_MILLIS,
            export_timeout_millis=EXPORT_TIMEOUT_MILLIS,
        )
        self.tracer_provider.add_span_processor(span_processor)

        if register_global:
            trace.set_tracer_provider(self.tracer_provider)
            propagate.set_global_textmap(self.propagator)

        self.tracer = self.tracer_provider.get_tracer(self.config.service_name)

        self._initialized = True

        logger.info(
            "Tracing initialized",
            extra={
                "service": self.config.service_name,
                "version": self.config.service_version,
                "environment": self.config.environment,
                "endpoint": self.config.endpoint,
            },
        )

        return self.tracer

    def shutdown(self, timeout: float = 30.0) -> None:
        """
        Flush pending spans and shut the provider down.

        The exporter may block on a slow or unreachable collector, so flush
        and shutdown run on a daemon thread and the caller waits at most
        `timeout` seconds for them.

        Args:
            timeout: Seconds allowed for flush and shutdown together

        Raises:
            TelemetryShutdownError: If pending spans could not be flushed in time
        """
        if self.tracer_provider is None:
            return

        provider = self.tracer_provider
        self.tracer_provider = None
        timeout = max(timeout, 0.0)
        result: dict[str, Any] = {}

        def _flush_and_stop() -> None:
            try:
                result["flushed"] = provider.force_flush(
                    timeout_millis=int(timeout * 1000)
                )
                provider.shutdown()
            except Exception as e:
                result["error"] = e

        worker = threading.Thread(
            target=_flush_and_stop, name="TracingShutdown", daemon=True
        )
        worker.start()
        worker.join(timeout)

        if worker.is_alive():
            raise TelemetryShutdownError(
                f"tracer provider did not shut down within {timeout:.1f}s"
            )
        if "error" in result:
            raise TelemetryShutdownError(str(result["error"])) from result["error"]
        if not result.get("flushed", False):
            raise TelemetryShutdownError(f"span flush did not finish in {timeout:.1f}s")
        logger.info("Tracing shutdown complete")

    @property
    def is_initialized(self) -> bool:
        """Check if tracing is initialized."""
        return self._initialized


class NoopTracing:
    """
    Stand-in used when tracing cannot be initialized.

    Spans are non-recording and shutdown always succeeds.
    """

    def __init__(self):
        self.tracer: trace.Tracer = trace.NoOpTracer()
        self.propagator: TextMapPropagator = propagate.get_global_textmap()

    def shutdown(self, timeout: float = 30.0) -> None:
        return None

    @property
    def is_initialized(self) -> bool:
        return False


def init_tracing(config: TracingConfig, register_global: bool = True) -> TracingManager:
    """
    Initialize tracing with the given configuration.

    Args:
        config: Tracing configuration
        register_global: Install provider and propagator process-wide

    Returns:
        Initialized TracingManager; its shutdown method is the shutdown callback

    Raises:
        TelemetryInitError: If the exporter cannot be built
    """
    manager = TracingManager(config)
    manager.setup(register_global=register_global)
    return manager


@contextmanager
def start_span(
    tracer: trace.Tracer,
    name: str,
    attributes: Optional[dict[str, Any]] = None,
    **kwargs: Any,
) -> Iterator[trace.Span]:
    """
    Start a span as the current span.

    Exceptions escaping the block are recorded on the span and re-raised.

    Args:
        tracer: Tracer to create the span with
        name: Span name
        attributes: Initial span attributes
        **kwargs: Forwarded to start_as_current_span (kind, context, ...)
    """
    with tracer.start_as_current_span(name, attributes=attributes, **kwargs) as span:
        yield span


__all__ = [
    "TracingConfig",
    "TracingManager",
    "NoopTracing",
    "init_tracing",
    "start_span",
    "sample_rate_for_environment",
    "sampler_for_environment",
]

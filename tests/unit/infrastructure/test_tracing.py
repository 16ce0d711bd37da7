"""
Unit tests for tracing bootstrap.

Tests the sampling policy, batch export settings, resource attributes, the
shutdown time bound and the no-op fallback.

Usage:
    pytest tests/unit/infrastructure/test_tracing.py
"""

import socket
import threading
import time

import pytest
from opentelemetry import trace
from opentelemetry.sdk.trace import SpanProcessor
from opentelemetry.sdk.trace.sampling import ALWAYS_ON, TraceIdRatioBased

from k8s_demo.domain.exceptions import TelemetryInitError, TelemetryShutdownError
from k8s_demo.infrastructure.observability import (
    NoopTracing,
    TracingConfig,
    init_tracing,
    sample_rate_for_environment,
    sampler_for_environment,
    start_span,
)
from k8s_demo.infrastructure.observability import tracing as tracing_module


class RecordingProcessor(SpanProcessor):
    """Stands in for BatchSpanProcessor and records how it was built."""

    instances: list["RecordingProcessor"] = []

    def __init__(self, exporter, **kwargs):
        self.exporter = exporter
        self.kwargs = kwargs
        self.flush_result = True
        self.shutdown_called = False
        RecordingProcessor.instances.append(self)

    def force_flush(self, timeout_millis: int = 30000) -> bool:
        return self.flush_result

    def shutdown(self) -> None:
        self.shutdown_called = True


class BlockingProcessor(SpanProcessor):
    """Processor whose shutdown hangs until released."""

    instances: list["BlockingProcessor"] = []

    def __init__(self, exporter, **kwargs):
        self.release = threading.Event()
        BlockingProcessor.instances.append(self)

    def force_flush(self, timeout_millis: int = 30000) -> bool:
        return True

    def shutdown(self) -> None:
        self.release.wait(5.0)


@pytest.fixture
def recording_processor(monkeypatch):
    RecordingProcessor.instances = []
    monkeypatch.setattr(tracing_module, "BatchSpanProcessor", RecordingProcessor)
    return RecordingProcessor


def _config(
    environment: str = "DEVELOPMENT",
    endpoint: str = "http://localhost:4318/v1/traces",
) -> TracingConfig:
    return TracingConfig(
        service_name="k8s-demo",
        service_version="v1.2.3",
        environment=environment,
        endpoint=endpoint,
    )


class TestSamplingPolicy:
    """Unit tests for environment-keyed sampling."""

    @pytest.mark.parametrize(
        "environment, rate",
        [
            ("PRODUCTION", 0.2),
            ("DEVELOPMENT", 1.0),
            ("STAGING", 0.5),
            ("", 0.5),
            ("production", 0.5),
        ],
    )
    def test_sample_rates(self, environment, rate):
        assert sample_rate_for_environment(environment) == rate

    def test_development_samples_everything(self):
        assert sampler_for_environment("DEVELOPMENT") is ALWAYS_ON

    def test_production_ratio(self):
        """Test PRODUCTION uses a 0.2 trace ID ratio sampler."""
        sampler = sampler_for_environment("PRODUCTION")

        assert isinstance(sampler, TraceIdRatioBased)
        assert sampler.rate == 0.2

    def test_other_environments_ratio(self):
        sampler = sampler_for_environment("STAGING")

        assert isinstance(sampler, TraceIdRatioBased)
        assert sampler.rate == 0.5


class TestInitTracing:
    """Unit tests for init_tracing."""

    @pytest.mark.parametrize(
        "endpoint", ["", "jaeger:4318", "ftp://jaeger/v1/traces", "http://"]
    )
    def test_bad_endpoint_raises(self, endpoint):
        """Test an unusable collector endpoint raises TelemetryInitError."""
        with pytest.raises(TelemetryInitError) as exc_info:
            init_tracing(_config(endpoint=endpoint), register_global=False)

        assert exc_info.value.code == "TELEMETRY_INIT_ERROR"

    def test_batch_processor_settings(self, recording_processor):
        """Test spans are batched 512 at a time every 5s with a 30s timeout."""
        init_tracing(_config(), register_global=False)

        assert len(recording_processor.instances) == 1
        assert recording_processor.instances[0].kwargs == {
            "max_export_batch_size": 512,
            "schedule_delay_millis": 5000,
            "export_timeout_millis": 30000,
        }

    def test_resource_and_sampler(self, recording_processor):
        """Test the provider carries service identity and the sampler."""
        manager = init_tracing(_config("PRODUCTION"), register_global=False)

        attributes = manager.tracer_provider.resource.attributes
        assert attributes["service.name"] == "k8s-demo"
        assert attributes["service.version"] == "v1.2.3"
        assert attributes["deployment.environment"] == "PRODUCTION"
        assert isinstance(manager.tracer_provider.sampler, TraceIdRatioBased)
        assert manager.tracer_provider.sampler.rate == 0.2
        assert manager.is_initialized

    def test_setup_without_global_registration(self, recording_processor):
        """Test a private provider leaves the global one untouched."""
        before = trace.get_tracer_provider()

        manager = init_tracing(_config(), register_global=False)

        assert trace.get_tracer_provider() is before
        assert manager.tracer is not None

    def test_shutdown_flushes_and_stops(self, recording_processor):
        manager = init_tracing(_config(), register_global=False)

        manager.shutdown(timeout=1.0)

        assert recording_processor.instances[0].shutdown_called
        assert manager.tracer_provider is None

    def test_shutdown_reports_unflushed_spans(self, recording_processor):
        """Test a flush that does not finish raises TelemetryShutdownError."""
        manager = init_tracing(_config(), register_global=False)
        recording_processor.instances[0].flush_result = False

        with pytest.raises(TelemetryShutdownError):
            manager.shutdown(timeout=0.1)

        assert recording_processor.instances[0].shutdown_called

    def test_second_shutdown_is_noop(self, recording_processor):
        manager = init_tracing(_config(), register_global=False)

        manager.shutdown(timeout=1.0)
        manager.shutdown(timeout=1.0)


class TestTracingShutdownDeadline:
    """Unit tests for the shutdown time bound."""

    def test_stuck_processor_does_not_block_caller(self, monkeypatch):
        """Test a processor that never stops is abandoned after the timeout."""
        BlockingProcessor.instances = []
        monkeypatch.setattr(tracing_module, "BatchSpanProcessor", BlockingProcessor)
        manager = init_tracing(_config(), register_global=False)
        processor = BlockingProcessor.instances[0]

        started = time.monotonic()
        try:
            with pytest.raises(TelemetryShutdownError) as exc_info:
                manager.shutdown(timeout=0.2)
            elapsed = time.monotonic() - started
        finally:
            processor.release.set()

        assert "did not shut down within" in exc_info.value.message
        assert elapsed < 1.0
        assert manager.tracer_provider is None

    def test_unreachable_collector_is_bounded(self):
        """Test pending spans for a refused port do not hold up shutdown."""
        free_socket = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        free_socket.bind(("127.0.0.1", 0))
        port = free_socket.getsockname()[1]
        free_socket.close()
        manager = init_tracing(
            _config(endpoint=f"http://127.0.0.1:{port}/v1/traces"),
            register_global=False,
        )
        for i in range(5):
            with start_span(manager.tracer, f"pending-{i}"):
                pass

        started = time.monotonic()
        try:
            manager.shutdown(timeout=0.5)
        except TelemetryShutdownError:
            pass
        elapsed = time.monotonic() - started

        assert elapsed < 2.0


class TestNoopTracing:
    """Unit tests for the no-op fallback."""

    def test_shutdown_succeeds(self):
        tracing = NoopTracing()

        assert tracing.shutdown(5.0) is None
        assert tracing.is_initialized is False

    def test_spans_are_not_recorded(self):
        tracing = NoopTracing()

        with start_span(tracing.tracer, "startup_check") as span:
            assert not span.is_recording()


class TestStartSpan:
    """Unit tests for start_span."""

    def test_records_attributes(self, tracer, span_exporter):
        with start_span(tracer, "health_check", {"service.name": "k8s-demo"}):
            pass

        (span,) = span_exporter.get_finished_spans()
        assert span.name == "health_check"
        assert span.attributes["service.name"] == "k8s-demo"

    def test_records_exceptions(self, tracer, span_exporter):
        """Test an exception escaping the block marks the span as failed."""
        with pytest.raises(ValueError):
            with start_span(tracer, "startup_check"):
                raise ValueError("boom")

        (span,) = span_exporter.get_finished_spans()
        assert span.status.status_code == trace.StatusCode.ERROR
        assert span.events[0].name == "exception"

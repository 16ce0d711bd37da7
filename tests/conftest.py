"""
Test fixtures and configuration.
"""

import logging
from dataclasses import replace
from typing import Generator

import pytest
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import (
    InMemorySpanExporter,
)
from prometheus_client import CollectorRegistry

from k8s_demo.config import AppConfig, DatabaseConfig, Settings, WebConfig
from k8s_demo.infrastructure.monitoring import Metrics, set_request_id
from k8s_demo.infrastructure.monitoring.logger import request_id_ctx


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the host environment out of settings tests."""
    for name in Settings.model_fields:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture(autouse=True)
def clear_request_id() -> Generator[None, None, None]:
    """Reset the request ID context variable around each test."""
    token = request_id_ctx.set(None)
    yield
    request_id_ctx.reset(token)


@pytest.fixture
def app_config() -> AppConfig:
    """Config with short timeouts and a loopback listener."""
    return AppConfig(
        db=DatabaseConfig(
            tls="disable",
            user="postgres",
            name="k8s-demo",
            host="localhost",
            scheme="postgres",
            password="password",
            max_idle_conns=5,
            max_open_conns=20,
        ),
        web=WebConfig(
            api_host="127.0.0.1:0",
            read_timeout=10.0,
            write_timeout=10.0,
            idle_timeout=120.0,
            shutdown_timeout=5.0,
        ),
        service_name="k8s-demo",
        service_version="v0.1.0",
        environment="DEVELOPMENT",
        jaeger_endpoint="http://localhost:4318/v1/traces",
    )


@pytest.fixture
def production_config(app_config: AppConfig) -> AppConfig:
    return replace(app_config, environment="PRODUCTION")


@pytest.fixture
def registry() -> CollectorRegistry:
    """Fresh Prometheus registry per test."""
    return CollectorRegistry()


@pytest.fixture
def metrics(registry: CollectorRegistry) -> Metrics:
    return Metrics(registry)


@pytest.fixture
def span_exporter() -> InMemorySpanExporter:
    return InMemorySpanExporter()


@pytest.fixture
def tracer_provider(span_exporter: InMemorySpanExporter) -> TracerProvider:
    """Private tracer provider exporting to memory."""
    provider = TracerProvider()
    provider.add_span_processor(SimpleSpanProcessor(span_exporter))
    return provider


@pytest.fixture
def tracer(tracer_provider: TracerProvider):
    return tracer_provider.get_tracer("k8s-demo-tests")


@pytest.fixture
def test_logger() -> logging.Logger:
    return logging.getLogger("k8s_demo.tests")


@pytest.fixture
def request_id() -> str:
    return set_request_id("test-request-id")

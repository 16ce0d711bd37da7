"""
Observability utilities.

Provides:
- OpenTelemetry distributed tracing
"""

from k8s_demo.infrastructure.observability.tracing import (
    NoopTracing,
    TracingConfig,
    TracingManager,
    init_tracing,
    sample_rate_for_environment,
    sampler_for_environment,
    start_span,
)

__all__ = [
    "TracingConfig",
    "TracingManager",
    "NoopTracing",
    "init_tracing",
    "start_span",
    "sample_rate_for_environment",
    "sampler_for_environment",
]

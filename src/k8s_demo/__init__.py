"""
k8s-demo: health-check service with logging, metrics and tracing.
"""

__version__ = "0.1.0"

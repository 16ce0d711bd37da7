"""
API routes for k8s-demo.
"""

from k8s_demo.presentation.api.routes import health, metrics

__all__ = ["health", "metrics"]

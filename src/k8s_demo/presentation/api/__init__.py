"""
HTTP API for k8s-demo.
"""

from k8s_demo.presentation.api.app import create_app

__all__ = ["create_app"]

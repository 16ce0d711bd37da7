"""
Domain layer for k8s-demo.
"""

"""
Server lifecycle management.
"""

from k8s_demo.lifecycle.server import ListenerConfig, Server, ServerState

__all__ = ["ListenerConfig", "Server", "ServerState"]

"""
Configuration module for k8s-demo.
"""

from k8s_demo.config.settings import (
    ENV_DEVELOPMENT,
    ENV_PRODUCTION,
    AppConfig,
    DatabaseConfig,
    Settings,
    WebConfig,
    get_config,
    load_config,
    override_config,
    parse_duration,
    reset_config,
    split_host_port,
)

__all__ = [
    "ENV_DEVELOPMENT",
    "ENV_PRODUCTION",
    "AppConfig",
    "DatabaseConfig",
    "Settings",
    "WebConfig",
    "get_config",
    "load_config",
    "override_config",
    "parse_duration",
    "reset_config",
    "split_host_port",
]

"""
Base domain exceptions.
"""


class K8sDemoException(Exception):
    """Base exception for all k8s-demo errors."""

    def __init__(self, message: str, code: str | None = None):
        self.message = message
        self.code = code or self.__class__.__name__
        super().__init__(self.message)


class ConfigError(K8sDemoException):
    """Raised when a configuration value cannot be parsed."""

    def __init__(self, key: str, value: str, reason: str):
        message = f"Invalid value {value!r} for {key}: {reason}"
        super().__init__(message, code="CONFIG_ERROR")
        self.key = key
        self.value = value

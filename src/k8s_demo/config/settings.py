"""
Application settings with environment-based configuration.

Priority (highest to lowest):
1. Environment variables
2. .env file in the working directory
3. Defaults

Malformed numbers and durations never fail startup: they fall back to the
default value, the same way an unset variable does.
"""

import re
from dataclasses import dataclass
from typing import Any, Optional

from pydantic import Field, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from k8s_demo.domain.exceptions import ConfigError

ENV_PRODUCTION = "PRODUCTION"
ENV_DEVELOPMENT = "DEVELOPMENT"

_DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "μs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}

_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|μs|ms|s|m|h)")


def parse_duration(value: str, key: str = "duration") -> float:
    """
    Parse a Go-style duration string into seconds.

    Accepts a sequence of decimal numbers each followed by a unit,
    e.g. "300ms", "1.5s", "2m", "1h30m". A bare "0" is also accepted.

    Args:
        value: Duration string
        key: Setting name used in the error message

    Returns:
        Duration in seconds

    Raises:
        ConfigError: If the string is not a valid duration
    """
    text = value.strip()
    if not text:
        raise ConfigError(key, value, "empty duration")

    sign = 1.0
    if text[0] in "+-":
        sign = -1.0 if text[0] == "-" else 1.0
        text = text[1:]

    if text == "0":
        return 0.0

    total = 0.0
    position = 0
    while position < len(text):
        match = _DURATION_PART.match(text, position)
        if match is None:
            raise ConfigError(key, value, "invalid duration")
        number, unit = match.groups()
        total += float(number) * _DURATION_UNITS[unit]
        position = match.end()

    if position == 0:
        raise ConfigError(key, value, "invalid duration")

    return sign * total


def split_host_port(address: str) -> tuple[str, int]:
    """
    Split a "host:port" listen address.

    An empty host (":8080") binds every interface. IPv6 hosts may be
    bracketed ("[::1]:8080").

    Raises:
        ConfigError: If the port is missing or not a number
    """
    host, sep, port = address.rpartition(":")
    if not sep:
        raise ConfigError("SERVER_API_HOST", address, "missing port")
    host = host.strip("[]") or "0.0.0.0"
    try:
        port_number = int(port)
    except ValueError as e:
        raise ConfigError("SERVER_API_HOST", address, "invalid port") from e
    if not 0 <= port_number <= 65535:
        raise ConfigError("SERVER_API_HOST", address, "port out of range")
    return host, port_number


class Settings(BaseSettings):
    """
    Raw environment settings.

    Field names match environment variable names exactly.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        env_ignore_empty=True,
        extra="ignore",
        frozen=True,
    )

    # Service identity
    SERVICE_NAME: str = Field(default="k8s-demo")
    SERVICE_VERSION: str = Field(default="v0.1.0")
    ENVIRONMENT: str = Field(default=ENV_DEVELOPMENT)

    # Tracing
    JAEGER_ENDPOINT: str = Field(
        default="http://jaeger:4318/v1/traces",
        description="OTLP/HTTP traces endpoint",
    )

    # Logging
    LOG_LEVEL: str = Field(default="INFO")

    # Database
    DB_TLS: str = Field(default="disable", description="libpq sslmode")
    DB_USER: str = Field(default="postgres")
    DB_NAME: str = Field(default="k8s-demo")
    DB_HOST: str = Field(default="localhost")
    DB_SCHEME: str = Field(default="postgres")
    DB_PASSWORD: str = Field(default="password")
    DB_MAX_IDLE_CONN: int = Field(default=5)
    DB_MAX_OPEN_CONN: int = Field(default=20)

    # Web server
    SERVER_API_HOST: str = Field(default=":8080")
    SERVER_READ_TIMEOUT: float = Field(default=10.0, description="seconds")
    SERVER_WRITE_TIMEOUT: float = Field(default=10.0, description="seconds")
    SERVER_IDLE_TIMEOUT: float = Field(default=120.0, description="seconds")
    SERVER_SHUTDOWN_TIMEOUT: float = Field(default=20.0, description="seconds")

    @field_validator("DB_MAX_IDLE_CONN", "DB_MAX_OPEN_CONN", mode="before")
    @classmethod
    def fallback_int(cls, v: Any, info: ValidationInfo) -> Any:
        """Replace malformed integers with the field default."""
        if isinstance(v, int):
            return v
        try:
            return int(str(v).strip())
        except ValueError:
            return cls.model_fields[info.field_name].default

    @field_validator(
        "SERVER_READ_TIMEOUT",
        "SERVER_WRITE_TIMEOUT",
        "SERVER_IDLE_TIMEOUT",
        "SERVER_SHUTDOWN_TIMEOUT",
        mode="before",
    )
    @classmethod
    def fallback_duration(cls, v: Any, info: ValidationInfo) -> Any:
        """Parse Go-style durations, falling back to the default when malformed."""
        if isinstance(v, (int, float)):
            return float(v)
        try:
            return parse_duration(str(v), key=info.field_name)
        except ConfigError:
            return cls.model_fields[info.field_name].default

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Normalize log level, falling back to INFO when unknown."""
        allowed = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in allowed:
            return "INFO"
        return v_upper


@dataclass(frozen=True)
class DatabaseConfig:
    """Data store connection parameters."""

    tls: str
    user: str
    name: str
    host: str
    scheme: str
    password: str
    max_idle_conns: int
    max_open_conns: int


@dataclass(frozen=True)
class WebConfig:
    """HTTP listener address and timeouts (seconds)."""

    api_host: str
    read_timeout: float
    write_timeout: float
    idle_timeout: float
    shutdown_timeout: float


@dataclass(frozen=True)
class AppConfig:
    """Immutable snapshot of the process configuration."""

    db: DatabaseConfig
    web: WebConfig
    service_name: str
    service_version: str
    environment: str
    jaeger_endpoint: str
    log_level: str = "INFO"

    @classmethod
    def from_settings(cls, settings: Settings) -> "AppConfig":
        """Build the config tree from raw settings."""
        return cls(
            service_name=settings.SERVICE_NAME,
            service_version=settings.SERVICE_VERSION,
            environment=settings.ENVIRONMENT,
            jaeger_endpoint=settings.JAEGER_ENDPOINT,
            log_level=settings.LOG_LEVEL,
            db=DatabaseConfig(
                tls=settings.DB_TLS,
                user=settings.DB_USER,
                name=settings.DB_NAME,
                host=settings.DB_HOST,
                scheme=settings.DB_SCHEME,
                password=settings.DB_PASSWORD,
                max_idle_conns=settings.DB_MAX_IDLE_CONN,
                max_open_conns=settings.DB_MAX_OPEN_CONN,
            ),
            web=WebConfig(
                api_host=settings.SERVER_API_HOST,
                read_timeout=settings.SERVER_READ_TIMEOUT,
                write_timeout=settings.SERVER_WRITE_TIMEOUT,
                idle_timeout=settings.SERVER_IDLE_TIMEOUT,
                shutdown_timeout=settings.SERVER_SHUTDOWN_TIMEOUT,
            ),
        )


def load_config(env_file: Optional[str] = ".env") -> AppConfig:
    """
    Load configuration from the environment and an optional .env file.

    Args:
        env_file: Path of the dotenv file (None to skip it)

    Returns:
        AppConfig instance
    """
    return AppConfig.from_settings(Settings(_env_file=env_file))


_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """Get or initialize the process configuration."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def override_config(new_config: AppConfig) -> None:
    """Override the process configuration (for testing)."""
    global _config
    _config = new_config


def reset_config() -> None:
    """Reset configuration to force re-loading (for testing)."""
    global _config
    _config = None

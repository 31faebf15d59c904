"""Pydantic schema for configuration validation.

All config values are validated at startup. Typos and invalid values
fail fast with clear error messages.

Usage:
    from svxmon.config_schema import load_validated_config, AppConfig
    config = load_validated_config("config/config.yaml")
    # config is now a validated AppConfig instance
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator


# =============================================================================
# BASE MODEL WITH STRICT VALIDATION
# =============================================================================

class StrictModel(BaseModel):
    """Base model that rejects unknown fields (catches typos)."""

    model_config = ConfigDict(extra="forbid")


# =============================================================================
# MONITOR MODEL
# =============================================================================

class MonitorConfig(StrictModel):
    """Monitored log file and polling configuration."""

    system_name: str = Field(
        default="SVX Monitor for SVXLINK",
        description="Name of the monitored SVXLink system"
    )
    log_path: str = Field(
        default="./log/",
        description="Directory holding the relay log"
    )
    log_name: str = Field(
        default="svxreflector.log",
        description="Log file name; a name containing 'reflector' selects the reflector dialect"
    )
    frequency_ms: int = Field(
        default=500,
        gt=0,
        description="Period of the log poll / broadcast tick in milliseconds"
    )
    client_timeout: int = Field(
        default=0,
        ge=0,
        description="Close observers silent for this many seconds, 0 to disable"
    )

    @property
    def log_file(self) -> Path:
        """Full path of the monitored log."""
        return Path(self.log_path) / self.log_name


# =============================================================================
# SERVER MODEL
# =============================================================================

class ServerConfig(StrictModel):
    """Dashboard server configuration."""

    host: str = Field(
        default="0.0.0.0",
        description="Host to bind (0.0.0.0 for all interfaces)"
    )
    port: int = Field(
        default=7779,
        gt=0,
        description="Port number"
    )
    websocket_path: str = Field(
        default="/ws",
        description="WebSocket endpoint path"
    )
    static_dir: str = Field(
        default="pages",
        description="Path to static files directory (index.html lives here)"
    )
    cors_origins: list[str] = Field(
        default_factory=lambda: ["*"],
        description="Allowed CORS origins"
    )
    receive_timeout: float = Field(
        default=30.0,
        gt=0,
        description="Seconds without client traffic before a keepalive ping"
    )
    send_timeout: float = Field(
        default=5.0,
        gt=0,
        description="Seconds allowed for one observer send before it is dropped"
    )


# =============================================================================
# ACCESS MODEL
# =============================================================================

class AllowedClient(StrictModel):
    """One allow-list entry for direct (non page) WebSocket connections."""

    ipaddress: str = Field(description="Remote address the entry applies to")
    id: str = Field(
        default="*",
        description="Observer page id, or '*' for any page"
    )
    lease: str = Field(
        default="*",
        description="Lease length in days, or '*' for no expiry"
    )
    tglist: list[str] = Field(
        default_factory=list,
        description="Talkgroup patterns (exact, '209*', '100..200'); empty means all"
    )

    @field_validator("lease")
    @classmethod
    def lease_is_days_or_wildcard(cls, v: str) -> str:
        """Lease must be '*' or a whole number of days."""
        v = v.strip()
        if v != "*" and not v.isdigit():
            raise ValueError(f"lease must be '*' or a day count, got {v!r}")
        return v

    @field_validator("tglist", mode="before")
    @classmethod
    def coerce_patterns(cls, v: Any) -> Any:
        """Allow bare numbers in YAML talkgroup lists."""
        if isinstance(v, list):
            return [str(item) for item in v]
        return v


class AccessConfig(StrictModel):
    """Direct connection access control."""

    allowed_clients: list[AllowedClient] = Field(
        default_factory=lambda: [AllowedClient(ipaddress="127.0.0.1")],
        description="Allow-list; empty admits every direct connection unfiltered by page"
    )


# =============================================================================
# ALIAS MODEL
# =============================================================================

class AliasConfig(StrictModel):
    """Subscriber (radio-ID) alias dictionary configuration."""

    path: str = Field(
        default="./assets/",
        description="Directory holding the subscriber file"
    )
    subscriber_file: str = Field(
        default="subscriber_ids.json",
        description="Subscriber dictionary file name"
    )
    subscriber_url: str = Field(
        default="https://database.radioid.net/static/users.json",
        description="Where the subscriber dictionary is downloaded from"
    )
    reload_days: int = Field(
        default=7,
        ge=0,
        description="Days before the subscriber file is considered stale"
    )
    download_timeout: float = Field(
        default=120.0,
        gt=0,
        description="Seconds allowed for the subscriber download"
    )

    @property
    def subscriber_path(self) -> Path:
        """Full path of the subscriber file."""
        return Path(self.path) / self.subscriber_file


# =============================================================================
# LOGGING MODEL
# =============================================================================

class LoggingConfig(StrictModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Root log level"
    )
    format: str = Field(
        default="%(asctime)s %(levelname)s %(name)s: %(message)s",
        description="logging format string"
    )


# =============================================================================
# ROOT MODEL
# =============================================================================

class AppConfig(StrictModel):
    """Root configuration model for the entire application.

    All fields have sensible defaults, so an empty config file is valid.
    """

    monitor: MonitorConfig = Field(default_factory=MonitorConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    access: AccessConfig = Field(default_factory=AccessConfig)
    aliases: AliasConfig = Field(default_factory=AliasConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


# =============================================================================
# LOADING FUNCTIONS
# =============================================================================

def load_validated_config(config_path: str | Path = "config/config.yaml") -> AppConfig:
    """Load and validate configuration from YAML file.

    Args:
        config_path: Path to config YAML file.

    Returns:
        Validated AppConfig instance.

    Raises:
        FileNotFoundError: If config file doesn't exist.
        pydantic.ValidationError: If config is invalid (with detailed error message).
    """
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path) as f:
        raw_config = yaml.safe_load(f) or {}

    return AppConfig.model_validate(raw_config)


def validate_config_dict(config_dict: dict[str, Any]) -> AppConfig:
    """Validate a configuration dictionary.

    Args:
        config_dict: Configuration as a dictionary.

    Returns:
        Validated AppConfig instance.

    Raises:
        pydantic.ValidationError: If config is invalid.
    """
    return AppConfig.model_validate(config_dict)


# =============================================================================
# EXPORTS
# =============================================================================

__all__ = [
    "StrictModel",
    "MonitorConfig",
    "ServerConfig",
    "AllowedClient",
    "AccessConfig",
    "AliasConfig",
    "LoggingConfig",
    "AppConfig",
    "load_validated_config",
    "validate_config_dict",
]

"""Configuration loader for SVX Monitor

All configurable values come from config/config.yaml.
Configuration is validated at load time using Pydantic.
Typos and invalid values fail fast with clear error messages.

Usage:
    from svxmon.config import load_config, get, get_validated_config

    # Load and validate (call once at startup)
    load_config("config/config.yaml")

    # Get values by dot-path
    period = get("monitor.frequency_ms")

    # Or use the typed config object (preferred)
    config = get_validated_config()
    period = config.monitor.frequency_ms

Dashboard components never read this module directly; the composition
root hands them the validated AppConfig.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml

from .config_schema import AppConfig, load_validated_config, validate_config_dict


# Loaded once by the entry point
_config: dict[str, Any] | None = None
_validated_config: AppConfig | None = None

# Default config path, overridable through the environment
DEFAULT_CONFIG_PATH: Path = Path(
    os.environ.get(
        "SVXMON_CONFIG",
        str(Path(__file__).parent.parent / "config" / "config.yaml"),
    )
)


def load_config(config_path: str | Path | None = None) -> dict[str, Any]:
    """Load and validate configuration from YAML file.

    Args:
        config_path: Path to config file. Defaults to config/config.yaml.

    Returns:
        Raw configuration dictionary.

    Raises:
        FileNotFoundError: If config file doesn't exist.
        pydantic.ValidationError: If config is invalid.
    """
    global _config, _validated_config

    path: Path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH

    _validated_config = load_validated_config(path)

    with open(path) as f:
        loaded: Any = yaml.safe_load(f)
        if not isinstance(loaded, dict):
            loaded = {}
        _config = loaded

    return _config


def get_config() -> dict[str, Any]:
    """Get the loaded configuration dict. Loads default if not already loaded.

    For typed access, use get_validated_config() instead.
    """
    if _config is None:
        load_config()
    if _config is None:
        raise RuntimeError("Config failed to load. Call load_config() first.")
    return _config


def get_validated_config() -> AppConfig:
    """Get the validated configuration object.

    Loads default config if not already loaded.
    """
    if _validated_config is None:
        load_config()
    if _validated_config is None:
        raise RuntimeError("Validated config failed to load. Call load_config() first.")
    return _validated_config


def get(key: str, default: Any = None) -> Any:
    """Get a config value by dot-separated key path.

    Examples:
        get("monitor.log_name")
        get("server.port")
    """
    config: dict[str, Any] = get_config()
    keys: list[str] = key.split(".")

    value: Any = config
    for k in keys:
        if isinstance(value, dict) and k in value:
            value = value[k]
        else:
            return default

    return value


def set_config_value(key: str, value: Any) -> None:
    """Set a config value by dot-separated key path.

    Used for runtime overrides (e.g., CLI args). The result is re-validated.

    Args:
        key: Dot-separated key path (e.g., "server.port")
        value: Value to set
    """
    global _validated_config

    config = get_config()

    keys = key.split(".")
    target = config

    # Navigate to parent
    for k in keys[:-1]:
        if k not in target or not isinstance(target[k], dict):
            target[k] = {}
        target = target[k]

    target[keys[-1]] = value

    _validated_config = validate_config_dict(config)


def reset_config() -> None:
    """Forget the loaded configuration (used by tests)."""
    global _config, _validated_config
    _config = None
    _validated_config = None

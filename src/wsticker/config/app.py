"""
Configuration management for the ticker server.

Provides YAML-based configuration with CLI overrides,
configuration hierarchy (CLI > YAML > Defaults), and validation.
"""

from __future__ import annotations

import json
import math
import os
import re
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

from wsticker.utils.duration import parse_duration

DEFAULT_CONFIG_FILE = "~/.wsticker/config.yaml"

# ${VAR} or ${VAR:-default}
_ENV_VAR_PATTERN = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)(?::-([^}]*))?\}")

ShutdownPolicy = Literal["broadcast", "request"]


def normalize_route(path: str) -> str:
    """Strip a single trailing slash; "/ticker/" and "/ticker" are the same route."""
    return path.removesuffix("/")


class LoggingSettings(BaseModel):
    """Logging configuration."""

    model_config = ConfigDict(frozen=True)

    level: Literal["debug", "info", "warning", "error"] = Field(
        default="info",
        description="Log level",
    )
    format: Literal["text", "json"] = Field(
        default="text",
        description="Log format (text or json)",
    )


class TickerConfig(BaseModel):
    """
    Ticker server configuration.

    Immutable once loaded; every connection reads the same instance.
    """

    model_config = ConfigDict(frozen=True)

    host: str = Field(
        default="0.0.0.0",
        description="Interface to bind the listener to",
    )
    port: int = Field(
        default=8080,
        description="Port to listen on",
    )
    route: str = Field(
        default="/ticker",
        description="Path the WebSocket endpoint is served on (trailing slash ignored)",
    )
    interval: float = Field(
        default=1.0,
        description="Seconds between ticks; accepts duration strings such as '500ms'",
    )
    debug: bool = Field(
        default=False,
        description="Enable debug logging (overrides logging.level)",
    )
    shutdown_policy: ShutdownPolicy = Field(
        default="broadcast",
        description=(
            "broadcast: process shutdown closes every connection with a normal closure; "
            "request: each connection ends only when its own request context is canceled"
        ),
    )
    ping_interval: float | None = Field(
        default=20.0,
        description="Keepalive ping interval in seconds (null disables pings)",
    )
    ping_timeout: float | None = Field(
        default=20.0,
        description="Pong timeout in seconds before considering connection dead",
    )
    logging: LoggingSettings = Field(
        default_factory=LoggingSettings,
        description="Logging configuration",
    )

    @field_validator("port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        """Validate port number is in valid range."""
        if not (1 <= v <= 65535):
            raise ValueError("Port must be between 1 and 65535")
        return v

    @field_validator("route")
    @classmethod
    def validate_route(cls, v: str) -> str:
        """Normalize the route so comparisons only need to strip the request path."""
        return normalize_route(v)

    @field_validator("interval", mode="before")
    @classmethod
    def parse_interval(cls, v: Any) -> Any:
        """Accept duration strings like '1s' or '250ms'."""
        if isinstance(v, str):
            return parse_duration(v)
        return v

    @field_validator("interval")
    @classmethod
    def validate_interval(cls, v: float) -> float:
        """Validate interval is a positive, finite number of seconds."""
        if not math.isfinite(v) or v <= 0:
            raise ValueError("interval must be a positive finite duration")
        return v

    @field_validator("ping_interval", "ping_timeout")
    @classmethod
    def validate_positive(cls, v: float | None) -> float | None:
        """Validate value is positive and finite when set."""
        if v is not None and (not math.isfinite(v) or v <= 0):
            raise ValueError("Value must be positive and finite")
        return v

    @property
    def log_level(self) -> str:
        """Effective log level after applying the debug flag."""
        return "debug" if self.debug else self.logging.level


def expand_env_vars(content: str) -> str:
    """
    Expand ${VAR} and ${VAR:-default} references in raw config text.

    Unset variables without a default are left as written. A default is
    used when the variable is unset or empty.
    """

    def replace(match: re.Match[str]) -> str:
        name, default = match.group(1), match.group(2)
        value = os.environ.get(name)
        if default is not None:
            return value if value else default
        return value if value is not None else match.group(0)

    return _ENV_VAR_PATTERN.sub(replace, content)


def load_yaml(config_file: str) -> dict[str, Any]:
    """
    Load YAML or JSON configuration file.

    Args:
        config_file: Path to YAML or JSON configuration file

    Returns:
        Dictionary with parsed YAML/JSON content

    Raises:
        ValueError: If YAML/JSON is invalid or file format is wrong
    """
    config_path = Path(config_file).expanduser()

    if not config_path.exists():
        return {}

    # Validate file extension matches format
    file_ext = config_path.suffix.lower()
    if file_ext not in [".yaml", ".yml", ".json"]:
        raise ValueError(
            f"Config file must have .yaml, .yml, or .json extension, got: {file_ext}\n"
            f"File: {config_path}"
        )

    try:
        with open(config_path) as f:
            content = expand_env_vars(f.read())

        if file_ext == ".json":
            data = json.loads(content) if content.strip() else {}
        else:
            data = yaml.safe_load(content)
            data = data if data is not None else {}

    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in config file: {e}") from e
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in config file: {e}") from e

    if not isinstance(data, dict):
        raise ValueError(f"Config file must contain a mapping at top level: {config_path}")
    return data


def apply_cli_overrides(
    config_dict: dict[str, Any],
    cli_overrides: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """
    Apply CLI argument overrides to config dictionary.

    Args:
        config_dict: Configuration dictionary
        cli_overrides: Dictionary of CLI overrides

    Returns:
        Configuration dictionary with CLI overrides applied
    """
    if cli_overrides is None:
        return config_dict

    for key, value in cli_overrides.items():
        if "." in key:
            # Handle nested keys like "logging.level"
            parts = key.split(".")
            current = config_dict
            for part in parts[:-1]:
                if not isinstance(current.get(part), dict):
                    current[part] = {}
                current = current[part]
            current[parts[-1]] = value
        else:
            config_dict[key] = value

    return config_dict


def generate_default_config(config_file: str) -> None:
    """
    Generate default configuration file from Pydantic model defaults.

    Args:
        config_file: Path where to create the config file
    """
    config_path = Path(config_file).expanduser()
    config_path.parent.mkdir(parents=True, exist_ok=True)

    default_config = TickerConfig().model_dump(mode="python", exclude_none=True)

    with open(config_path, "w") as f:
        yaml.safe_dump(default_config, f, default_flow_style=False, sort_keys=False)

    # Set restrictive permissions (owner read/write only)
    config_path.chmod(0o600)


def load_config(
    config_file: str | None = None,
    cli_overrides: dict[str, Any] | None = None,
) -> TickerConfig:
    """
    Load configuration with hierarchy: CLI > YAML > Defaults.

    Args:
        config_file: Path to YAML config file (default: ~/.wsticker/config.yaml)
        cli_overrides: Dictionary of CLI argument overrides

    Returns:
        Validated TickerConfig instance

    Raises:
        ValueError: If configuration is invalid
    """
    if config_file is None:
        config_file = DEFAULT_CONFIG_FILE

    config_dict = load_yaml(config_file)
    config_dict = apply_cli_overrides(config_dict, cli_overrides)

    try:
        return TickerConfig(**config_dict)
    except Exception as e:
        raise ValueError(
            f"Configuration validation failed: {e}\n"
            f"Please check your configuration file at {config_file}"
        ) from e

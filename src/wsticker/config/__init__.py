"""
Configuration package.

Re-exports the config models and loader used by the CLI and runner.
"""

from wsticker.config.app import (
    DEFAULT_CONFIG_FILE,
    LoggingSettings,
    ShutdownPolicy,
    TickerConfig,
    generate_default_config,
    load_config,
)

__all__ = [
    "DEFAULT_CONFIG_FILE",
    "LoggingSettings",
    "ShutdownPolicy",
    "TickerConfig",
    "generate_default_config",
    "load_config",
]

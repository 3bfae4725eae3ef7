"""Configuration module for chocokit.

This module provides YAML configuration parsing and validation for chocokit.yaml.
"""

from chocokit.config.parser import (
    ChocoKitConfig,
    ConfigError,
    DEFAULT_CONFIG_FILE,
    load_config,
    parse_config,
)

__all__ = [
    "ChocoKitConfig",
    "ConfigError",
    "DEFAULT_CONFIG_FILE",
    "load_config",
    "parse_config",
]

"""YAML configuration parser for chocokit.

This module provides parsing and validation for chocokit.yaml configuration files.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional
import logging

import yaml

from chocokit.core.classifier import DEFAULT_LOCK_PATTERNS, LockErrorClassifier
from chocokit.core.exceptions import ChocoKitError
from chocokit.core.retry import DEFAULT_RETRY_POLICY, RetryPolicy

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "chocokit.yaml"


class ConfigError(ChocoKitError):
    """Configuration parsing or validation error."""

    pass


@dataclass
class ChocoKitConfig:
    """Complete chocokit configuration."""

    install_path: Optional[str] = None  # falls back to ChocolateyInstall
    retry: RetryPolicy = DEFAULT_RETRY_POLICY  # archive and directory reads
    wait: RetryPolicy = DEFAULT_RETRY_POLICY  # pending-marker probes
    lock_patterns: List[str] = field(default_factory=list)  # extra message fragments

    def classifier(self) -> LockErrorClassifier:
        """Lock classifier with the configured extra patterns."""
        return LockErrorClassifier(DEFAULT_LOCK_PATTERNS.with_fragments(self.lock_patterns))


def parse_config(config_path: Path) -> ChocoKitConfig:
    """
    Parse chocokit.yaml configuration file.

    Args:
        config_path: Path to chocokit.yaml

    Returns:
        Parsed and validated configuration

    Raises:
        ConfigError: If configuration is invalid
    """
    if not config_path.exists():
        raise ConfigError(f"Configuration file not found: {config_path}")

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML syntax: {e}")

    if data is None:
        raise ConfigError("Configuration file is empty")

    return _parse_and_validate(data)


def load_config(config_path: Optional[Path] = None) -> ChocoKitConfig:
    """
    Load configuration, falling back to defaults.

    Args:
        config_path: Optional path to chocokit.yaml

    Returns:
        Parsed configuration, or defaults if no path was given or the file
        does not exist
    """
    if config_path is None or not config_path.exists():
        logger.debug(f"Config file not found (optional): {config_path}")
        return ChocoKitConfig()

    logger.debug(f"Loading configuration from {config_path}")
    return parse_config(config_path)


def _parse_and_validate(data: Any) -> ChocoKitConfig:
    """Parse and validate configuration data."""
    if not isinstance(data, dict):
        raise ConfigError("Configuration must be a mapping")

    install_path = data.get("install_path")
    if install_path is not None and not isinstance(install_path, str):
        raise ConfigError("'install_path' must be a string")

    patterns = data.get("lock_patterns", [])
    if not isinstance(patterns, list) or not all(
        isinstance(p, str) and p for p in patterns
    ):
        raise ConfigError("'lock_patterns' must be a list of non-empty strings")

    return ChocoKitConfig(
        install_path=install_path,
        retry=_parse_policy(data.get("retry"), "retry"),
        wait=_parse_policy(data.get("wait"), "wait"),
        lock_patterns=patterns,
    )


def _parse_policy(data: Optional[Dict[str, Any]], section: str) -> RetryPolicy:
    """Parse a retry policy section."""
    if data is None:
        return DEFAULT_RETRY_POLICY
    if not isinstance(data, dict):
        raise ConfigError(f"'{section}' must be a mapping")

    unknown = set(data) - {"max_retries", "base_delay"}
    if unknown:
        raise ConfigError(f"Unknown keys in '{section}': {', '.join(sorted(unknown))}")

    max_retries = data.get("max_retries", DEFAULT_RETRY_POLICY.max_retries)
    base_delay = data.get("base_delay", DEFAULT_RETRY_POLICY.base_delay)
    if isinstance(base_delay, bool) or not isinstance(base_delay, (int, float)):
        raise ConfigError(f"'{section}.base_delay' must be a number")

    try:
        return RetryPolicy(max_retries=max_retries, base_delay=float(base_delay))
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid '{section}' policy: {e}")

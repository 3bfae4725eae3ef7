"""
Shared utilities for CLI commands.

Provides common functionality used across CLI commands to ensure
consistent configuration and library construction.
"""

import logging
from pathlib import Path
from typing import Optional

from chocokit.config.parser import DEFAULT_CONFIG_FILE, ChocoKitConfig, load_config
from chocokit.core.retry import RetryExecutor
from chocokit.packages.library import ChocolateyLibrary

logger = logging.getLogger(__name__)


def resolve_config_path(args) -> Optional[Path]:
    """
    Determine which configuration file to use.

    An explicit --config wins; otherwise ./chocokit.yaml is used if present.

    Args:
        args: Parsed arguments with optional config attribute

    Returns:
        Path to the configuration file, or None
    """
    if getattr(args, "config", None):
        return Path(args.config)

    default_config = Path.cwd() / DEFAULT_CONFIG_FILE
    return default_config if default_config.exists() else None


def load_cli_config(args) -> ChocoKitConfig:
    """Load configuration for a CLI invocation."""
    config_path = resolve_config_path(args)
    if getattr(args, "config", None) and not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")
    return load_config(config_path)


def build_library(args) -> ChocolateyLibrary:
    """
    Create a ChocolateyLibrary from CLI arguments and configuration.

    --install-path overrides install_path from the configuration file.

    Args:
        args: Parsed arguments

    Returns:
        Configured ChocolateyLibrary
    """
    config = load_cli_config(args)
    install_path = getattr(args, "install_path", None) or config.install_path

    library = ChocolateyLibrary(
        install_path=install_path,
        executor=RetryExecutor(classifier=config.classifier()),
        retry_policy=config.retry,
        wait_policy=config.wait,
    )
    logger.debug(f"Using Chocolatey library: {library.lib_path}")
    return library

"""
List command implementation.

Prints the packages installed in the Chocolatey library with their versions.
"""

import logging

from chocokit.cli.utils import build_library

logger = logging.getLogger(__name__)


def run(args) -> int:
    """
    Run the list command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 for success)
    """
    library = build_library(args)
    packages = library.installed_packages()

    if not packages:
        logger.info(f"No packages installed in {library.lib_path}")
        return 0

    for name in sorted(packages):
        print(f"{name} {packages[name]}")

    return 0

"""
Wait command implementation.

Blocks until Chocolatey releases the pending-install locks of the given
packages.
"""

import logging

from chocokit.cli.utils import build_library

logger = logging.getLogger(__name__)


def run(args) -> int:
    """
    Run the wait command.

    Args:
        args: Parsed command-line arguments with a packages list

    Returns:
        Exit code (0 when all locks were released, 1 otherwise)
    """
    library = build_library(args)

    try:
        library.wait_for_release(args.packages)
    except OSError as e:
        logger.error(f"File locks still held for {', '.join(args.packages)}: {e}")
        return 1

    logger.info(f"No pending locks for: {', '.join(args.packages)}")
    return 0

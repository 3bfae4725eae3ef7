"""
Waiting out Chocolatey's pending-install file locks.

While Chocolatey finalizes an installation it writes a `.chocolateyPending`
marker into the package directory and holds an exclusive lock on it. Reading
package state during that window returns half-written data, so callers wait
for the lock to be released first.

Features:
- Non-blocking lock probe on a file owned by another process
- Probe result that makes the busy/permanent decision in one place
- Bounded wait with exponential backoff via RetryExecutor

Usage:
    from chocokit.core.locking import LockWaiter

    waiter = LockWaiter(Path(r"C:\\ProgramData\\chocolatey\\lib"))
    waiter.wait_for_release(["git", "7zip"])
"""

import errno
import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional, Sequence

import portalocker

from chocokit.core.classifier import is_file_lock_error
from chocokit.core.retry import DEFAULT_RETRY_POLICY, RetryExecutor, RetryPolicy

logger = logging.getLogger(__name__)

PENDING_MARKER = ".chocolateyPending"


class ProbeStatus(Enum):
    """Outcome of a non-blocking lock probe."""

    ACQUIRED = "acquired"
    WOULD_BLOCK = "would_block"
    ERROR = "error"


@dataclass(frozen=True)
class ProbeResult:
    """
    Result of probe_lock.

    Attributes:
        status: What happened
        error: The OS error behind WOULD_BLOCK or ERROR, None when ACQUIRED
    """

    status: ProbeStatus
    error: Optional[BaseException] = None

    @property
    def acquired(self) -> bool:
        return self.status is ProbeStatus.ACQUIRED


def _contention_error(exc: portalocker.LockException, path: Path) -> OSError:
    """
    Extract the OS "would block" error portalocker wrapped.

    Some platforms report contention as EACCES or through non-OSError types;
    those are replaced by an EAGAIN BlockingIOError chained to the original.
    """
    candidates = [exc.__cause__, *exc.args]
    for candidate in candidates:
        if isinstance(candidate, OSError) and is_file_lock_error(candidate):
            return candidate

    error = BlockingIOError(errno.EAGAIN, f"Lock is held by another process: {path}")
    error.__cause__ = exc
    return error


def probe_lock(path: Path) -> ProbeResult:
    """
    Try to take an exclusive, non-blocking lock on path and release it at once.

    The file is opened read-only; its content is never touched. A file that
    vanishes before it can be opened is reported as ACQUIRED since nothing
    holds it any more.

    Args:
        path: File to probe

    Returns:
        ProbeResult describing the outcome

    Example:
        >>> result = probe_lock(Path("C:/ProgramData/chocolatey/lib/git/.chocolateyPending"))
        >>> if result.status is ProbeStatus.WOULD_BLOCK:
        ...     print("Chocolatey still working on git")
    """
    try:
        with open(path, "r") as fh:
            try:
                portalocker.lock(
                    fh,
                    portalocker.LockFlags.EXCLUSIVE | portalocker.LockFlags.NON_BLOCKING,
                )
            except portalocker.AlreadyLocked as e:
                return ProbeResult(ProbeStatus.WOULD_BLOCK, _contention_error(e, path))
            except portalocker.LockException as e:
                cause = e.__cause__ if isinstance(e.__cause__, OSError) else e
                status = (
                    ProbeStatus.WOULD_BLOCK
                    if is_file_lock_error(cause)
                    else ProbeStatus.ERROR
                )
                return ProbeResult(status, cause)

            portalocker.unlock(fh)
            return ProbeResult(ProbeStatus.ACQUIRED)
    except FileNotFoundError:
        logger.debug(f"Lock file disappeared before probe: {path}")
        return ProbeResult(ProbeStatus.ACQUIRED)
    except OSError as e:
        # Windows reports a file opened exclusively elsewhere as a sharing
        # violation on open()
        status = ProbeStatus.WOULD_BLOCK if is_file_lock_error(e) else ProbeStatus.ERROR
        return ProbeResult(status, e)


def pending_marker_path(library_root: Path, package_name: str) -> Path:
    """Path of the pending-install marker for package_name."""
    return Path(library_root) / package_name / PENDING_MARKER


class LockWaiter:
    """
    Waits for Chocolatey to release pending-install markers.

    Attributes:
        library_root: Chocolatey library directory (<install>/lib)
        executor: RetryExecutor used for the probe attempts
        policy: Retry budget for each marker
    """

    def __init__(
        self,
        library_root: Path,
        executor: Optional[RetryExecutor] = None,
        policy: RetryPolicy = DEFAULT_RETRY_POLICY,
    ):
        self.library_root = Path(library_root)
        self.executor = executor if executor is not None else RetryExecutor()
        self.policy = policy

    def wait_for_release(self, package_names: Sequence[str]) -> None:
        """
        Block until no listed package has a locked pending marker.

        Packages are handled in order; a package without a marker is skipped.

        Args:
            package_names: Package names (directory names under library_root)

        Raises:
            OSError: The last lock error for a marker still locked after all
                retries, or the first permanent error from a probe
        """
        if not package_names:
            return

        logger.debug(
            "Waiting for chocolatey to release file locks for packages: "
            f"{', '.join(package_names)}"
        )

        for name in package_names:
            marker = pending_marker_path(self.library_root, name)
            if not marker.exists():
                continue

            self.executor.execute(
                lambda marker=marker: self._probe_or_raise(marker),
                self.policy,
                f"waiting for lock release on {name}",
            )
            logger.debug(f"Lock released for package: {name}")

    @staticmethod
    def _probe_or_raise(marker: Path) -> None:
        result = probe_lock(marker)
        if not result.acquired:
            raise result.error


def wait_for_release(
    library_root: Path,
    package_names: Sequence[str],
    policy: RetryPolicy = DEFAULT_RETRY_POLICY,
) -> None:
    """
    Wait for pending markers of package_names with a default executor.

    Example:
        >>> wait_for_release(Path("C:/ProgramData/chocolatey/lib"), ["git"])
    """
    LockWaiter(library_root, policy=policy).wait_for_release(package_names)


__all__ = [
    "PENDING_MARKER",
    "ProbeStatus",
    "ProbeResult",
    "probe_lock",
    "pending_marker_path",
    "LockWaiter",
    "wait_for_release",
]

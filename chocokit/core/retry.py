"""
Exponential backoff retry for operations racing Chocolatey's file locks.

RetryExecutor runs a zero-argument operation, consults a lock classifier on
every failure, and either retries after a backoff delay, re-raises a
permanent error at once, or re-raises the last lock error once the retry
budget is spent. Errors are never wrapped.

Usage:
    from chocokit.core.retry import RetryExecutor, RetryPolicy

    executor = RetryExecutor()
    entries = executor.execute(
        lambda: os.listdir(lib_path),
        RetryPolicy(max_retries=5, base_delay=0.5),
        "listing package directories",
    )
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable, List, Optional, TypeVar

from chocokit.core.classifier import is_file_lock_error

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """
    Retry budget for one call.

    Attributes:
        max_retries: Retries after the initial attempt (total attempts is
            max_retries + 1)
        base_delay: Delay in seconds before the first retry; doubles for
            each following retry
    """

    max_retries: int = 5
    base_delay: float = 0.5

    def __post_init__(self):
        """Validate policy after initialization."""
        if isinstance(self.max_retries, bool) or not isinstance(self.max_retries, int):
            raise TypeError(
                f"max_retries must be int, got {type(self.max_retries).__name__}"
            )
        if self.max_retries < 0:
            raise ValueError(f"max_retries cannot be negative: {self.max_retries}")
        if self.base_delay <= 0:
            raise ValueError(f"base_delay must be positive: {self.base_delay}")

    @property
    def total_attempts(self) -> int:
        return self.max_retries + 1

    def delay_for(self, retry_index: int) -> float:
        """Delay before retry number retry_index + 1."""
        return self.base_delay * (2**retry_index)

    def delays(self) -> List[float]:
        """The backoff schedule: one delay per retry."""
        return backoff_schedule(self)


def backoff_schedule(policy: RetryPolicy) -> List[float]:
    """
    Compute the delays slept between attempts.

    Example:
        >>> backoff_schedule(RetryPolicy(max_retries=3, base_delay=0.5))
        [0.5, 1.0, 2.0]
    """
    return [policy.delay_for(i) for i in range(policy.max_retries)]


DEFAULT_RETRY_POLICY = RetryPolicy()


class RetryExecutor:
    """
    Runs operations with file lock retry and exponential backoff.

    The classifier, sleep function and diagnostic logger are injectable so
    tests can substitute deterministic fakes.

    Attributes:
        classifier: Callable deciding whether an error is a transient lock
        sleep: Blocking sleep function taking seconds (default: time.sleep)
        logger: Destination for retry diagnostics (the `diagnostics` argument,
            default: this module's logger)
    """

    def __init__(
        self,
        classifier: Callable[[BaseException], bool] = is_file_lock_error,
        sleep: Optional[Callable[[float], None]] = None,
        diagnostics: Optional[logging.Logger] = None,
    ):
        self.classifier = classifier
        self.sleep = sleep if sleep is not None else time.sleep
        self.logger = diagnostics if diagnostics is not None else logger

    def execute(
        self,
        operation: Callable[[], T],
        policy: RetryPolicy = DEFAULT_RETRY_POLICY,
        description: str = "file operation",
    ) -> T:
        """
        Run operation, retrying while it fails with a file lock error.

        Args:
            operation: Zero-argument callable to run
            policy: Retry budget and base delay
            description: Text used only in diagnostics

        Returns:
            Whatever operation returns on its first successful attempt

        Raises:
            Exception: The first non-lock error, or the last lock error once
                all policy.total_attempts attempts have failed
        """
        attempt = 0
        while True:
            try:
                return operation()
            except Exception as e:
                if not self.classifier(e):
                    raise

                if attempt >= policy.max_retries:
                    self.logger.warning(
                        f"Failed {description} after {policy.max_retries} retries "
                        f"due to file lock: {e}"
                    )
                    raise

                delay = policy.delay_for(attempt)
                self.logger.debug(
                    f"Chocolatey file lock detected during {description} "
                    f"(attempt {attempt + 1}/{policy.total_attempts}), "
                    f"retrying in {delay}s: {e}"
                )
                self.sleep(delay)
                attempt += 1


def with_file_lock_retry(
    description: str,
    operation: Callable[[], T],
    max_retries: int = 5,
    base_delay: float = 0.5,
) -> T:
    """
    Run operation with the default executor.

    Example:
        >>> data = with_file_lock_retry("reading nuspec", lambda: path.read_bytes())
    """
    policy = RetryPolicy(max_retries=max_retries, base_delay=base_delay)
    return RetryExecutor().execute(operation, policy, description)


__all__ = [
    "RetryPolicy",
    "RetryExecutor",
    "DEFAULT_RETRY_POLICY",
    "backoff_schedule",
    "with_file_lock_retry",
]

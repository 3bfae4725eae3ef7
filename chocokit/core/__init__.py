"""
Core functionality for chocokit.

This package contains the lock classification, retry and lock waiting
modules that the package inspection code depends on.
"""

from .classifier import (
    ErrorKind,
    ErrorInfo,
    LockPatterns,
    LockErrorClassifier,
    DEFAULT_LOCK_PATTERNS,
    normalize_error,
    is_file_lock_error,
)

from .retry import (
    RetryPolicy,
    RetryExecutor,
    DEFAULT_RETRY_POLICY,
    backoff_schedule,
    with_file_lock_retry,
)

from .locking import (
    PENDING_MARKER,
    ProbeStatus,
    ProbeResult,
    probe_lock,
    pending_marker_path,
    LockWaiter,
    wait_for_release,
)

from .exceptions import (
    ChocoKitError,
    LibraryNotFoundError,
    PackageDataError,
    PackageMetadataNotFoundError,
    InvalidPackageMetadataError,
)

__all__ = [
    "ErrorKind",
    "ErrorInfo",
    "LockPatterns",
    "LockErrorClassifier",
    "DEFAULT_LOCK_PATTERNS",
    "normalize_error",
    "is_file_lock_error",
    "RetryPolicy",
    "RetryExecutor",
    "DEFAULT_RETRY_POLICY",
    "backoff_schedule",
    "with_file_lock_retry",
    "PENDING_MARKER",
    "ProbeStatus",
    "ProbeResult",
    "probe_lock",
    "pending_marker_path",
    "LockWaiter",
    "wait_for_release",
    "ChocoKitError",
    "LibraryNotFoundError",
    "PackageDataError",
    "PackageMetadataNotFoundError",
    "InvalidPackageMetadataError",
]

"""
File lock error classification for chocokit.

Chocolatey holds exclusive locks on package files while it finalizes an
installation or cleans up, and does not report lock contention through a
stable error type. This module decides whether a failure is such a
transient lock (worth retrying) or a permanent failure (not found,
permission denied, malformed data) that must surface immediately.

Classification works on a normalized ErrorInfo value:
1. A structured OS code for "resource busy" / "would block" (or a Windows
   sharing/lock violation) is a lock error.
2. Otherwise the message is matched, case-insensitively, against the
   configured LockPatterns.
3. Anything else is not a lock error.

Usage:
    from chocokit.core.classifier import is_file_lock_error

    try:
        read_archive(path)
    except OSError as e:
        if is_file_lock_error(e):
            ...
"""

import errno
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Optional, Tuple

# errno values meaning "another process holds the resource right now"
LOCK_ERRNOS = frozenset({errno.EBUSY, errno.EAGAIN, errno.EWOULDBLOCK})

# ERROR_SHARING_VIOLATION, ERROR_LOCK_VIOLATION
LOCK_WINERRORS = frozenset({32, 33})


class ErrorKind(Enum):
    """Shape of a classified error value."""

    OS = "os"
    EXCEPTION = "exception"
    OTHER = "other"


@dataclass(frozen=True)
class ErrorInfo:
    """
    Normalized view of an error.

    Attributes:
        kind: Where the value came from (OS error, other exception, other)
        message: Text of the error (empty if it could not be rendered)
        code: errno of an OS error, if any
        winerror: Windows error code of an OS error, if any
    """

    kind: ErrorKind
    message: str = ""
    code: Optional[int] = None
    winerror: Optional[int] = None


@dataclass(frozen=True)
class LockPatterns:
    """
    Message patterns that identify a file lock.

    Attributes:
        fragments: Substrings; any one present means a lock error
        denied_pattern: Regex for "access ... denied" messages
        marker_fragments: Marker file names; a denied message only counts
            as a lock error when it mentions one of them
    """

    fragments: Tuple[str, ...] = (
        "cannot access the file",
        "being used by another process",
    )
    denied_pattern: str = r"access\b.*\bdenied"
    marker_fragments: Tuple[str, ...] = ("chocolateypending",)
    _denied_re: re.Pattern = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        object.__setattr__(
            self, "fragments", tuple(f.lower() for f in self.fragments)
        )
        object.__setattr__(
            self, "marker_fragments", tuple(f.lower() for f in self.marker_fragments)
        )
        object.__setattr__(
            self, "_denied_re", re.compile(self.denied_pattern, re.IGNORECASE)
        )

    def with_fragments(self, extra: Iterable[str]) -> "LockPatterns":
        """Return a copy with additional message fragments."""
        return LockPatterns(
            fragments=self.fragments + tuple(extra),
            denied_pattern=self.denied_pattern,
            marker_fragments=self.marker_fragments,
        )

    def matches(self, message: str) -> bool:
        text = message.lower()
        if any(fragment in text for fragment in self.fragments):
            return True
        if self._denied_re.search(text):
            return any(marker in text for marker in self.marker_fragments)
        return False


DEFAULT_LOCK_PATTERNS = LockPatterns()


def normalize_error(error) -> ErrorInfo:
    """
    Convert any error value into an ErrorInfo.

    Never raises: values whose text cannot be rendered get an empty message.

    Args:
        error: Exception instance or any other value describing a failure

    Returns:
        Normalized error value
    """
    try:
        message = str(error)
    except Exception:
        message = ""

    if isinstance(error, OSError):
        code = error.errno if isinstance(error.errno, int) else None
        winerror = getattr(error, "winerror", None)
        if not isinstance(winerror, int):
            winerror = None
        return ErrorInfo(ErrorKind.OS, message, code, winerror)

    if isinstance(error, BaseException):
        return ErrorInfo(ErrorKind.EXCEPTION, message)

    return ErrorInfo(ErrorKind.OTHER, message)


class LockErrorClassifier:
    """
    Decides whether an error represents a transient file lock.

    Instances are callables so they can be handed to RetryExecutor directly.

    Example:
        >>> classifier = LockErrorClassifier(DEFAULT_LOCK_PATTERNS.with_fragments(["is locked"]))
        >>> classifier(OSError(errno.EBUSY, "Device or resource busy"))
        True
    """

    def __init__(self, patterns: LockPatterns = DEFAULT_LOCK_PATTERNS):
        self.patterns = patterns

    def classify(self, info: ErrorInfo) -> bool:
        if info.code in LOCK_ERRNOS or info.winerror in LOCK_WINERRORS:
            return True
        return self.patterns.matches(info.message)

    def __call__(self, error) -> bool:
        return self.classify(normalize_error(error))


_default_classifier = LockErrorClassifier()


def is_file_lock_error(error) -> bool:
    """
    Check whether an error is caused by a transient file lock.

    Args:
        error: Exception (or other value) raised by a file operation

    Returns:
        True if the operation is worth retrying, False otherwise
    """
    return _default_classifier(error)


__all__ = [
    "ErrorKind",
    "ErrorInfo",
    "LockPatterns",
    "LockErrorClassifier",
    "DEFAULT_LOCK_PATTERNS",
    "LOCK_ERRNOS",
    "LOCK_WINERRORS",
    "normalize_error",
    "is_file_lock_error",
]

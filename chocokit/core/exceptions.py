"""
Centralized exception hierarchy for chocokit.

This module defines the custom exceptions raised by chocokit itself.
OS-level failures raised while touching the Chocolatey library are never
translated into these types; they propagate unchanged so callers can
classify them.
"""


# ============================================================================
# Base Exceptions
# ============================================================================


class ChocoKitError(Exception):
    """Base exception for all chocokit errors."""

    pass


# ============================================================================
# Library Exceptions
# ============================================================================


class LibraryNotFoundError(ChocoKitError):
    """Raised when the Chocolatey library root does not exist."""

    def __init__(self, library_root):
        self.library_root = library_root
        super().__init__(f"Chocolatey library directory not found: {library_root}")


# ============================================================================
# Package Data Exceptions
# ============================================================================


class PackageDataError(ChocoKitError):
    """Base exception for package data errors. Never retried."""

    pass


class PackageMetadataNotFoundError(PackageDataError):
    """Raised when no package archive or descriptor entry can be found."""

    pass


class InvalidPackageMetadataError(PackageDataError):
    """Raised when a package descriptor is malformed or lacks id/version."""

    pass

"""
Chocolatey library inspection.

The Chocolatey library (`<install>/lib`) holds one directory per installed
package. This module lists those directories and combines lock waiting,
listing and metadata reads into a view of installed packages.

Classes:
    DirectoryLister: Lists package directories under a library root
    ChocolateyLibrary: Installed-package view of a Chocolatey installation

Example:
    from chocokit.packages.library import ChocolateyLibrary

    library = ChocolateyLibrary()
    for name, version in library.installed_packages().items():
        print(name, version)
"""

import logging
import os
import zipfile
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union

from chocokit.core.exceptions import LibraryNotFoundError, PackageDataError
from chocokit.core.locking import LockWaiter, pending_marker_path
from chocokit.core.retry import DEFAULT_RETRY_POLICY, RetryExecutor, RetryPolicy
from chocokit.packages.nuspec import PackageMetadataReader

logger = logging.getLogger(__name__)

DEFAULT_INSTALL_PATH = r"C:\ProgramData\chocolatey"
INSTALL_PATH_ENV = "ChocolateyInstall"


class DirectoryLister:
    """
    Lists installed-package directories.

    Attributes:
        executor: RetryExecutor used for enumeration
        policy: Retry budget for enumeration
    """

    def __init__(
        self,
        executor: Optional[RetryExecutor] = None,
        policy: RetryPolicy = DEFAULT_RETRY_POLICY,
    ):
        self.executor = executor if executor is not None else RetryExecutor()
        self.policy = policy

    def list_package_dirs(self, library_root: Union[str, Path]) -> List[str]:
        """
        Names of the subdirectories of library_root, in enumeration order.

        Args:
            library_root: Chocolatey library directory

        Returns:
            Directory names, excluding '.', '..' and non-directory entries

        Raises:
            LibraryNotFoundError: If library_root does not exist
        """
        root = os.fspath(library_root)
        if not os.path.isdir(root):
            raise LibraryNotFoundError(library_root)

        entries = self.executor.execute(
            lambda: os.listdir(root),
            self.policy,
            f"listing package directories in {root}",
        )

        return [
            name
            for name in entries
            if name not in (".", "..") and os.path.isdir(os.path.join(root, name))
        ]


def list_package_dirs(
    library_root: Union[str, Path], policy: RetryPolicy = DEFAULT_RETRY_POLICY
) -> List[str]:
    """List package directories with a default executor."""
    return DirectoryLister(policy=policy).list_package_dirs(library_root)


def get_install_path(install_path: Optional[Union[str, Path]] = None) -> Path:
    """
    Resolve the Chocolatey installation directory.

    Priority:
    1. Explicit install_path
    2. ChocolateyInstall environment variable
    3. C:\\ProgramData\\chocolatey

    Returns:
        Installation directory (not checked for existence)
    """
    if install_path:
        return Path(install_path)

    env_path = os.getenv(INSTALL_PATH_ENV)
    if env_path:
        return Path(env_path)

    return Path(DEFAULT_INSTALL_PATH)


class ChocolateyLibrary:
    """
    Installed-package view of a Chocolatey installation.

    All filesystem reads go through one RetryExecutor so they share the
    classifier, sleep function and diagnostics.

    Attributes:
        install_path: Chocolatey installation directory
        lib_path: Library directory (install_path / 'lib')
        executor: RetryExecutor shared by all reads
        retry_policy: Retry budget for listing and archive reads
        wait_policy: Retry budget for pending-marker probes

    Example:
        library = ChocolateyLibrary(Path("C:/ProgramData/chocolatey"))
        library.wait_for_release(["git"])
        versions = library.installed_packages(["git"])
    """

    def __init__(
        self,
        install_path: Optional[Union[str, Path]] = None,
        executor: Optional[RetryExecutor] = None,
        retry_policy: RetryPolicy = DEFAULT_RETRY_POLICY,
        wait_policy: RetryPolicy = DEFAULT_RETRY_POLICY,
    ):
        self.install_path = get_install_path(install_path)
        self.lib_path = self.install_path / "lib"
        self.executor = executor if executor is not None else RetryExecutor()
        self.retry_policy = retry_policy
        self.wait_policy = wait_policy

        self._waiter = LockWaiter(self.lib_path, self.executor, wait_policy)
        self._lister = DirectoryLister(self.executor, retry_policy)
        self._reader = PackageMetadataReader(self.executor, retry_policy)

    def marker_path(self, package_name: str) -> Path:
        """Pending-install marker path for package_name."""
        return pending_marker_path(self.lib_path, package_name)

    def package_dirs(self) -> List[str]:
        """Installed package directory names."""
        return self._lister.list_package_dirs(self.lib_path)

    def pending_packages(self) -> List[str]:
        """Package directories that currently hold a pending marker."""
        if not self.lib_path.is_dir():
            return []
        return [name for name in self.package_dirs() if self.marker_path(name).exists()]

    def wait_for_release(self, package_names: Sequence[str]) -> None:
        """Wait for the pending markers of package_names to be released."""
        self._waiter.wait_for_release(package_names)

    def read_metadata(self, package_name: str) -> Dict[str, str]:
        """Package id to version for one installed package directory."""
        return self._reader.read_metadata(self.lib_path / package_name)

    def installed_packages(
        self, package_names: Optional[Sequence[str]] = None
    ) -> Dict[str, str]:
        """
        Map installed package ids (lowercased) to versions.

        Waits for pending markers of package_names first, or of every
        pending package when package_names is None. Directories whose
        metadata cannot be read are skipped with a warning.

        Args:
            package_names: Packages about to be inspected

        Returns:
            Dictionary of lowercased package id to version ({} if the
            library directory does not exist)

        Raises:
            OSError: If a lock outlives its retry budget, or on a
                permanent I/O error
        """
        if not self.lib_path.is_dir():
            logger.debug(f"Chocolatey library not found: {self.lib_path}")
            return {}

        if package_names is None:
            package_names = self.pending_packages()
        self.wait_for_release(package_names)

        installed: Dict[str, str] = {}
        for name in self.package_dirs():
            try:
                metadata = self.read_metadata(name)
            except (PackageDataError, zipfile.BadZipFile) as e:
                logger.warning(f"Skipping package directory {name}: {e}")
                continue
            for package_id, version in metadata.items():
                installed[package_id.lower()] = version
        return installed


__all__ = [
    "DirectoryLister",
    "ChocolateyLibrary",
    "list_package_dirs",
    "get_install_path",
    "DEFAULT_INSTALL_PATH",
    "INSTALL_PATH_ENV",
]

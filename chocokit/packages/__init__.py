"""
Chocolatey package inspection for chocokit.

This package reads the on-disk state of packages installed by Chocolatey:
the package directories under the library root and the id/version recorded
in each package's .nupkg archive.

Available Components:
--------------------
- PackageIdentity: Package id and version from a nuspec
- PackageMetadataReader: Reads identities from package directories
- DirectoryLister: Lists package directories under a library root
- ChocolateyLibrary: Installed-package view of a Chocolatey installation

Example Usage:
-------------
    from chocokit.packages import ChocolateyLibrary

    library = ChocolateyLibrary()
    library.wait_for_release(["git"])
    print(library.installed_packages(["git"]))
"""

from chocokit.packages.nuspec import (
    PackageIdentity,
    PackageMetadataReader,
    parse_nuspec,
    read_metadata,
)
from chocokit.packages.library import (
    DirectoryLister,
    ChocolateyLibrary,
    list_package_dirs,
    get_install_path,
)

__all__ = [
    "PackageIdentity",
    "PackageMetadataReader",
    "parse_nuspec",
    "read_metadata",
    "DirectoryLister",
    "ChocolateyLibrary",
    "list_package_dirs",
    "get_install_path",
]

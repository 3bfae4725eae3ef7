"""
Package metadata extraction from installed .nupkg archives.

Every installed Chocolatey package keeps its `<name>.<version>.nupkg` archive
in its library directory. The archive is a zip file whose root holds the
package descriptor (`<id>.nuspec`), an XML document with
`package/metadata/id` and `package/metadata/version`.

Chocolatey may be writing or holding these files while they are read, so
both the archive search and the archive read go through RetryExecutor.

Classes:
    PackageIdentity: Package id and version
    PackageMetadataReader: Reads identities from package directories

Example:
    from chocokit.packages.nuspec import read_metadata

    read_metadata(Path("C:/ProgramData/chocolatey/lib/git"))
    # {'git': '2.43.0'}
"""

import logging
import xml.etree.ElementTree as ET
import zipfile
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

from chocokit.core.exceptions import (
    InvalidPackageMetadataError,
    PackageMetadataNotFoundError,
)
from chocokit.core.retry import DEFAULT_RETRY_POLICY, RetryExecutor, RetryPolicy

logger = logging.getLogger(__name__)

ARCHIVE_PATTERN = "*.nupkg"
DESCRIPTOR_SUFFIX = ".nuspec"


@dataclass(frozen=True)
class PackageIdentity:
    """Identifier and version of a package, as declared in its nuspec."""

    id: str
    version: str


def _local_name(tag: str) -> str:
    """Strip an XML namespace: '{ns}metadata' -> 'metadata'."""
    return tag.rsplit("}", 1)[-1]


def _child(element: ET.Element, name: str) -> Optional[ET.Element]:
    for child in element:
        if _local_name(child.tag) == name:
            return child
    return None


def parse_nuspec(content: bytes) -> PackageIdentity:
    """
    Extract id and version from a nuspec document.

    Only the package/metadata/id and package/metadata/version elements are
    read; namespaces are ignored and nothing else is validated.

    Args:
        content: Raw nuspec XML

    Returns:
        PackageIdentity

    Raises:
        InvalidPackageMetadataError: If the XML is malformed or a field is
            missing or empty
    """
    try:
        root = ET.fromstring(content)
    except ET.ParseError as e:
        raise InvalidPackageMetadataError(f"Invalid nuspec XML: {e}") from e

    if _local_name(root.tag) != "package":
        raise InvalidPackageMetadataError(
            f"Unexpected nuspec root element: {_local_name(root.tag)}"
        )

    metadata = _child(root, "metadata")
    if metadata is None:
        raise InvalidPackageMetadataError("nuspec has no <metadata> element")

    fields = {}
    for name in ("id", "version"):
        element = _child(metadata, name)
        text = (element.text or "").strip() if element is not None else ""
        if not text:
            raise InvalidPackageMetadataError(f"nuspec metadata has no <{name}>")
        fields[name] = text

    return PackageIdentity(id=fields["id"], version=fields["version"])


def read_descriptor(archive_path: Path) -> bytes:
    """
    Read the nuspec entry from a package archive.

    The descriptor is the first entry at the archive root whose name ends
    with .nuspec.

    Raises:
        PackageMetadataNotFoundError: If the archive has no descriptor
        zipfile.BadZipFile: If the archive is not a zip file
    """
    with zipfile.ZipFile(archive_path, "r") as zf:
        for info in zf.infolist():
            name = info.filename
            if "/" not in name and name.lower().endswith(DESCRIPTOR_SUFFIX):
                with zf.open(info) as stream:
                    return stream.read()

    raise PackageMetadataNotFoundError(f"No nuspec entry in archive: {archive_path}")


class PackageMetadataReader:
    """
    Reads package identities from installed package directories.

    Attributes:
        executor: RetryExecutor used for archive search and reads
        policy: Retry budget for each filesystem call
    """

    def __init__(
        self,
        executor: Optional[RetryExecutor] = None,
        policy: RetryPolicy = DEFAULT_RETRY_POLICY,
    ):
        self.executor = executor if executor is not None else RetryExecutor()
        self.policy = policy

    def find_archives(self, package_directory: Path) -> List[Path]:
        """Locate .nupkg archives in package_directory, sorted by name."""
        package_directory = Path(package_directory)
        return self.executor.execute(
            lambda: sorted(package_directory.glob(ARCHIVE_PATTERN)),
            self.policy,
            f"searching for package archives in {package_directory}",
        )

    def read_identity(self, archive_path: Path) -> PackageIdentity:
        """Read and parse the descriptor of a single archive."""
        content = self.executor.execute(
            lambda: read_descriptor(archive_path),
            self.policy,
            f"reading package archive {archive_path.name}",
        )
        return parse_nuspec(content)

    def read_metadata(self, package_directory: Path) -> Dict[str, str]:
        """
        Map package id to version for the archives in package_directory.

        Args:
            package_directory: Installed package directory (<lib>/<name>)

        Returns:
            Dictionary of package id to version, one entry per archive

        Raises:
            PackageMetadataNotFoundError: If no archive is found
            InvalidPackageMetadataError: If a descriptor lacks id or version
        """
        archives = self.find_archives(package_directory)
        if not archives:
            raise PackageMetadataNotFoundError(
                f"No {ARCHIVE_PATTERN} archive found in {package_directory}"
            )

        result: Dict[str, str] = {}
        for archive in archives:
            identity = self.read_identity(archive)
            logger.debug(f"Read {identity.id} {identity.version} from {archive.name}")
            result[identity.id] = identity.version
        return result


def read_metadata(
    package_directory: Path, policy: RetryPolicy = DEFAULT_RETRY_POLICY
) -> Dict[str, str]:
    """Read package metadata with a default executor."""
    return PackageMetadataReader(policy=policy).read_metadata(package_directory)


__all__ = [
    "PackageIdentity",
    "PackageMetadataReader",
    "parse_nuspec",
    "read_descriptor",
    "read_metadata",
]

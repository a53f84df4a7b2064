"""
Ubuntu package index lookup and .deb retrieval.

The list of required packages is an input. This module only looks each name
up in the release's ``Packages.gz`` index to find its download location; it
does not resolve dependencies.
"""

import gzip
import logging
from pathlib import Path
from typing import Dict, Iterable, List

from swiftsdkgen.core.exceptions import FetchError, MissingPackagesError
from swiftsdkgen.cross.targets import CPU, Ubuntu
from swiftsdkgen.generator.fetcher import ArtifactFetcher, RemoteArtifact

logger = logging.getLogger(__name__)

UBUNTU_MIRRORS = {
    CPU.ARM64: "http://ports.ubuntu.com/ubuntu-ports",
    CPU.X86_64: "http://archive.ubuntu.com/ubuntu",
}


def packages_index_url(
    distribution: Ubuntu, cpu: CPU, component: str = "main"
) -> str:
    """
    URL of the package index for a release, component and CPU.

    Example:
        >>> packages_index_url(Ubuntu("22.04"), CPU.X86_64)
        'http://archive.ubuntu.com/ubuntu/dists/jammy/main/binary-amd64/Packages.gz'
    """
    return (
        f"{UBUNTU_MIRRORS[cpu]}/dists/{distribution.codename}/{component}/"
        f"binary-{cpu.debian_convention_name}/Packages.gz"
    )


def parse_packages_index(text: str, wanted: Iterable[str]) -> Dict[str, str]:
    """
    Map wanted package names to their pool file names.

    The first stanza seen for a package wins.

    Args:
        text: Decompressed ``Packages`` index
        wanted: Package names to look up

    Returns:
        Package name -> ``Filename`` field, for the wanted names present
    """
    wanted = set(wanted)
    found: Dict[str, str] = {}

    for stanza in text.split("\n\n"):
        fields = {}
        for line in stanza.splitlines():
            if not line or line[0].isspace() or ":" not in line:
                continue
            name, _, value = line.partition(":")
            fields[name] = value.strip()

        package = fields.get("Package")
        if package in wanted and package not in found and "Filename" in fields:
            found[package] = fields["Filename"]

    return found


def download_ubuntu_packages(
    fetcher: ArtifactFetcher,
    distribution: Ubuntu,
    cpu: CPU,
    required_packages: Iterable[str],
) -> List[Path]:
    """
    Fetch the .deb files of every required package.

    Raises:
        MissingPackagesError: If a package is absent from the index
        FetchError: If the index or a package cannot be retrieved
    """
    required_packages = list(required_packages)
    index_url = packages_index_url(distribution, cpu)
    logger.info(
        f"Downloading {len(required_packages)} Ubuntu {distribution.version} "
        f"packages for {cpu.debian_convention_name}..."
    )

    index_path = fetcher.fetch(RemoteArtifact(index_url))
    try:
        with gzip.open(index_path, "rt", encoding="utf-8") as f:
            index_text = f.read()
    except (OSError, EOFError) as e:
        raise FetchError(f"Corrupt package index {index_url}: {e}") from e

    filenames = parse_packages_index(index_text, required_packages)
    missing = set(required_packages) - set(filenames)
    if missing:
        raise MissingPackagesError(missing)

    mirror = UBUNTU_MIRRORS[cpu]
    return [
        fetcher.fetch(RemoteArtifact(f"{mirror}/{filenames[package]}"))
        for package in required_packages
    ]

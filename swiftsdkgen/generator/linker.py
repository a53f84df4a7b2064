"""
LLD linker provisioning.

The ``lld`` binary is extracted from an LLVM release archive once per
(LLD version, archive URL) and kept in the cache engine; later runs copy the
cached binary straight into the toolchain.
"""

import logging
import os
import shutil
import stat
import tarfile
from pathlib import Path

from swiftsdkgen.core.cache_engine import CacheEngine, cache_key
from swiftsdkgen.core.exceptions import FilesystemError, UnpackError
from swiftsdkgen.core.filesystem import create_directory_if_needed, remove_recursively
from swiftsdkgen.core.paths import PathsConfiguration

logger = logging.getLogger(__name__)

LINKER_NAME = "ld.lld"


def extract_lld(archive: Path, destination: Path) -> Path:
    """
    Extract ``bin/lld`` from an LLVM release tarball.

    Args:
        archive: ``clang+llvm-<version>-<platform>.tar.xz``
        destination: Directory to write ``lld`` into

    Returns:
        Path of the extracted binary

    Raises:
        UnpackError: If the archive has no regular ``bin/lld`` member
    """
    try:
        with tarfile.open(archive, "r:*") as tar:
            member = next(
                (
                    m
                    for m in tar.getmembers()
                    if m.isfile() and m.name.rstrip("/").endswith("bin/lld")
                ),
                None,
            )
            if member is None:
                raise UnpackError(f"No bin/lld in {archive.name}")

            source = tar.extractfile(member)
            output = destination / "lld"
            with source, open(output, "wb") as f:
                shutil.copyfileobj(source, f)
    except (tarfile.TarError, OSError) as e:
        raise UnpackError(f"Failed to extract lld from {archive}: {e}") from e

    output.chmod(0o755)
    return output


class LinkerProvisioner:
    """Install ``ld.lld`` into the toolchain bin dir."""

    def __init__(self, engine: CacheEngine, paths: PathsConfiguration):
        self.engine = engine
        self.paths = paths

    def prepare_lld(self, archive: Path, lld_version: str, source_url: str) -> Path:
        """
        Install the linker, extracting it only on a cache miss.

        Args:
            archive: Local LLVM release archive
            lld_version: LLD version, part of the cache key
            source_url: Where the archive came from, part of the cache key

        Returns:
            Path of the installed ``ld.lld``
        """
        logger.info("Setting up the LLD linker...")

        key = cache_key("extract-lld", version=lld_version, url=source_url)
        artifact = self.engine.put(key, lambda staging: extract_lld(archive, staging))

        bin_dir = create_directory_if_needed(self.paths.toolchain_bin_dir_path)
        linker = bin_dir / LINKER_NAME

        try:
            remove_recursively(linker)
            shutil.copy2(artifact.path, linker)
            mode = os.stat(linker).st_mode
            linker.chmod(mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        except OSError as e:
            raise FilesystemError(f"Failed to install {linker}: {e}") from e

        return linker

"""
Idempotent file system operations for the Swift SDK generator.

This module provides the primitives every generation stage is built from:
- Directory scaffolding and removal that tolerate prior runs
- Symlink creation and relocation of absolute symlinks
- Archive extraction (tar.gz, tar.xz, tar.bz2, tar.zst, tar, zip)
- Tree copying that merges into existing directories
- Safe file operations (atomic writes, temporary directories)

Each operation either succeeds completely or raises a FilesystemError or
UnpackError, so callers never need to re-check their own preconditions.
"""

import logging
import os
import shutil
import sys
import tarfile
import tempfile
import zipfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Tuple, Union

from swiftsdkgen.core.exceptions import (
    FilesystemError,
    InsecureArchiveError,
    PathIsNotDirectoryError,
    SymlinkConflictError,
    UnpackError,
    UnsupportedArchiveFormat,
)

logger = logging.getLogger(__name__)


# ============================================================================
# Path Utilities
# ============================================================================


def is_relative_to(path: Path, parent: Path) -> bool:
    """
    Check if path is relative to (under) parent directory.

    Args:
        path: Path to check
        parent: Parent directory

    Returns:
        True if path is under parent directory

    Example:
        >>> is_relative_to(Path("/home/user/sdk/usr"), Path("/home/user"))
        True
    """
    try:
        path.relative_to(parent)
        return True
    except ValueError:
        return False


def does_file_exist(path: Union[str, Path]) -> bool:
    """
    Check whether anything (including a dangling symlink) exists at path.

    Args:
        path: Path to check

    Returns:
        True if a file, directory or symlink is present
    """
    path = Path(path)
    return path.is_symlink() or path.exists()


# ============================================================================
# Directory Operations
# ============================================================================


def remove_recursively(path: Union[str, Path]) -> None:
    """
    Remove a file, symlink or directory tree.

    Absence of the path is not an error.

    Args:
        path: Path to remove

    Raises:
        FilesystemError: If deletion fails

    Example:
        >>> remove_recursively('Bundles/my-sdk.artifactbundle')
    """
    path = Path(path)

    if not does_file_exist(path):
        return

    try:
        if path.is_symlink() or not path.is_dir():
            path.unlink()
        else:
            shutil.rmtree(path)
    except OSError as e:
        raise FilesystemError(f"Failed to remove '{path}': {e}") from e

    logger.debug(f"Removed {path}")


def create_directory_if_needed(path: Union[str, Path]) -> Path:
    """
    Ensure a directory exists (idempotent).

    Args:
        path: Directory path

    Returns:
        The directory path

    Raises:
        PathIsNotDirectoryError: If something other than a directory is at path
        FilesystemError: If the directory cannot be created
    """
    path = Path(path)

    if does_file_exist(path) and not path.is_dir():
        raise PathIsNotDirectoryError(path)

    try:
        path.mkdir(parents=True, exist_ok=True)
    except FileExistsError as e:
        # A parent component is a regular file
        raise PathIsNotDirectoryError(path) from e
    except OSError as e:
        raise FilesystemError(f"Failed to create directory '{path}': {e}") from e

    return path


def copy_tree(source: Union[str, Path], destination: Union[str, Path]) -> None:
    """
    Merge a directory tree into destination, like ``rsync -a``.

    Symlinks are copied as symlinks and existing files are overwritten.
    Files already present in destination but not in source are kept.

    Args:
        source: Source directory
        destination: Destination directory

    Raises:
        FilesystemError: If source is missing or copying fails
    """
    source = Path(source)
    destination = Path(destination)

    if not source.is_dir():
        raise FilesystemError(f"Source is not a directory: {source}")

    try:
        for dirpath, dirnames, filenames in os.walk(source, followlinks=False):
            target_dir = destination / Path(dirpath).relative_to(source)
            create_directory_if_needed(target_dir)

            for name in dirnames + filenames:
                src = Path(dirpath) / name
                dst = target_dir / name

                if src.is_symlink():
                    remove_recursively(dst)
                    os.symlink(os.readlink(src), dst)
                elif name in filenames:
                    if dst.is_symlink():
                        dst.unlink()
                    shutil.copy2(src, dst)
    except OSError as e:
        raise FilesystemError(f"Failed to copy {source} to {destination}: {e}") from e


# ============================================================================
# Symlinks
# ============================================================================


def create_symlink(at: Union[str, Path], pointing_to: Union[str, Path]) -> None:
    """
    Create a symbolic link at ``at`` whose target is ``pointing_to``.

    The target is stored verbatim, so relative targets stay relative.
    Creating a link that already exists with the same target is a no-op.

    Args:
        at: Location of the link
        pointing_to: Link target

    Raises:
        SymlinkConflictError: If ``at`` exists and is not the same symlink
        FilesystemError: If link creation fails

    Example:
        >>> create_symlink('usr/bin/swift-autolink-extract', 'swift')
    """
    at = Path(at)
    target = str(pointing_to)

    if at.is_symlink():
        if os.readlink(at) == target:
            return
        raise SymlinkConflictError(
            f"Symlink {at} already points to {os.readlink(at)}, not {target}"
        )

    if at.exists():
        raise SymlinkConflictError(f"Cannot create symlink, path exists: {at}")

    try:
        at.parent.mkdir(parents=True, exist_ok=True)
        os.symlink(target, at)
    except OSError as e:
        raise FilesystemError(f"Failed to create symlink {at} -> {target}: {e}") from e

    logger.debug(f"Created symlink: {at} -> {target}")


def find_symlinks(root: Union[str, Path]) -> List[Tuple[Path, str]]:
    """
    List every symlink under root without following any of them.

    Args:
        root: Directory to walk

    Returns:
        (link path, raw link target) pairs, sorted by path
    """
    root = Path(root)
    links = []

    for dirpath, dirnames, filenames in os.walk(root, followlinks=False):
        for name in dirnames + filenames:
            entry = Path(dirpath) / name
            if entry.is_symlink():
                links.append((entry, os.readlink(entry)))

    return sorted(links)


def fix_absolute_symlinks(root: Union[str, Path]) -> int:
    """
    Rewrite absolute symlinks under root as equivalent relative ones.

    Absolute targets are interpreted as rooted at ``root``, which is how they
    resolve inside a sysroot. Reachability of the target is not checked.
    Running this twice leaves the tree unchanged.

    Args:
        root: Tree to relocate

    Returns:
        Number of symlinks rewritten

    Example:
        >>> # sdk/usr/lib/libm.so -> /lib/x86_64-linux-gnu/libm.so.6
        >>> fix_absolute_symlinks('sdk')
        1
        >>> # sdk/usr/lib/libm.so -> ../../lib/x86_64-linux-gnu/libm.so.6
    """
    root = Path(root)
    fixed = 0

    for link, target in find_symlinks(root):
        if not os.path.isabs(target):
            continue

        depth = len(link.parent.relative_to(root).parts)
        # A target of "/" at the top level maps to the root itself
        relative_target = os.path.join(*([".."] * depth), target.lstrip("/")) or "."

        try:
            link.unlink()
            os.symlink(relative_target, link)
        except OSError as e:
            raise FilesystemError(f"Failed to rewrite symlink {link}: {e}") from e

        logger.debug(f"Relocated symlink: {link} -> {relative_target}")
        fixed += 1

    return fixed


# ============================================================================
# Archive Extraction
# ============================================================================


def _validate_archive_path(path: str, destination: Path) -> None:
    """
    Validate that an archive member path is safe to extract.

    Prevents directory traversal attacks (e.g., paths containing '../').

    Raises:
        InsecureArchiveError: If path attempts directory traversal
    """
    # Lexical check, existing symlinks in destination must not be followed
    root = Path(os.path.normpath(destination.absolute()))
    member_path = Path(os.path.normpath(root / path.lstrip("/")))

    if not is_relative_to(member_path, root):
        raise InsecureArchiveError(
            f"Archive member '{path}' attempts directory traversal. "
            "This is a security risk and extraction has been blocked."
        )


def extract_archive(
    archive_path: Union[str, Path], destination: Union[str, Path]
) -> None:
    """
    Extract an archive to a destination directory.

    Automatically detects archive format from the file name.
    Symlinks with absolute targets are preserved so sysroots extract intact.

    Supported formats:
    - .zip
    - .tar.gz, .tgz
    - .tar.xz
    - .tar.bz2
    - .tar.zst
    - .tar

    Args:
        archive_path: Path to the archive file
        destination: Directory to extract to

    Raises:
        UnsupportedArchiveFormat: If archive format is not recognized
        InsecureArchiveError: If archive contains malicious paths
        UnpackError: If extraction fails
    """
    archive_path = Path(archive_path)
    destination = Path(destination)

    if not archive_path.exists():
        raise UnpackError(f"Archive not found: {archive_path}")

    create_directory_if_needed(destination)

    archive_name = archive_path.name.lower()

    try:
        if archive_name.endswith(".zip"):
            _extract_zip(archive_path, destination)
        elif archive_name.endswith((".tar.gz", ".tgz")):
            _extract_tar(archive_path, destination, "r:gz")
        elif archive_name.endswith(".tar.xz"):
            _extract_tar(archive_path, destination, "r:xz")
        elif archive_name.endswith((".tar.bz2", ".tbz2")):
            _extract_tar(archive_path, destination, "r:bz2")
        elif archive_name.endswith(".tar"):
            _extract_tar(archive_path, destination, "r:")
        elif archive_name.endswith(".tar.zst"):
            _extract_tar_zst(archive_path, destination)
        else:
            raise UnsupportedArchiveFormat(
                f"Unsupported archive format: {archive_path.name}. "
                "Supported: .zip, .tar.gz, .tar.xz, .tar.bz2, .tar.zst, .tar"
            )
    except UnpackError:
        raise
    except Exception as e:
        raise UnpackError(f"Failed to extract {archive_path}: {e}") from e


def _extract_zip(archive_path: Path, destination: Path) -> None:
    """Extract a ZIP archive."""
    with zipfile.ZipFile(archive_path, "r") as zf:
        for member in zf.namelist():
            _validate_archive_path(member, destination)
        zf.extractall(destination)


def _extract_tar(archive_path: Path, destination: Path, mode: str) -> None:
    """Extract a tar archive with specified compression."""
    with tarfile.open(archive_path, mode) as tar:
        for member in tar.getmembers():
            _validate_archive_path(member.name, destination)

        # The "tar" filter keeps absolute symlink targets, "data" would reject them
        if sys.version_info >= (3, 12):
            tar.extractall(destination, filter="tar")
        else:
            tar.extractall(destination)


def _extract_tar_zst(archive_path: Path, destination: Path) -> None:
    """Extract a zstd-compressed tar archive."""
    import zstandard as zstd

    # Decompress zstd first, then validate members like any other tar
    with temporary_directory(prefix="zst_", parent=archive_path.parent) as tmp:
        tar_path = tmp / archive_path.name[: -len(".zst")]
        dctx = zstd.ZstdDecompressor()
        with open(archive_path, "rb") as ifh, open(tar_path, "wb") as ofh:
            dctx.copy_stream(ifh, ofh)
        _extract_tar(tar_path, destination, "r:")


# ============================================================================
# Safe File Operations
# ============================================================================


def atomic_write(
    file_path: Union[str, Path], content: Union[str, bytes], encoding: str = "utf-8"
) -> None:
    """
    Write file atomically using temp file + rename.

    This ensures the file is never in a partially-written state.
    If the write fails, the original file (if any) remains unchanged.

    Args:
        file_path: Path to write to
        content: Content to write (string or bytes)
        encoding: Text encoding (used only for string content)

    Example:
        >>> atomic_write('toolset.json', '{"schemaVersion": "1.0"}')
    """
    file_path = Path(file_path)
    file_path.parent.mkdir(parents=True, exist_ok=True)

    # Create temp file in same directory (ensures same filesystem)
    temp_fd, temp_path_str = tempfile.mkstemp(
        dir=file_path.parent, prefix=f".{file_path.name}.", suffix=".tmp"
    )
    temp_path = Path(temp_path_str)

    try:
        if isinstance(content, str):
            with open(temp_fd, "w", encoding=encoding) as f:
                f.write(content)
        else:
            with open(temp_fd, "wb") as f:
                f.write(content)

        temp_path.replace(file_path)

    except Exception:
        temp_path.unlink(missing_ok=True)
        raise


@contextmanager
def temporary_directory(
    prefix: str = "swiftsdkgen_", parent: Union[str, Path, None] = None
) -> Iterator[Path]:
    """
    Context manager for temporary directory with automatic cleanup.

    Args:
        prefix: Prefix for temp directory name
        parent: Directory to create it in (system temp dir if None)

    Yields:
        Path to temporary directory
    """
    if parent is not None:
        create_directory_if_needed(parent)
    temp_dir = Path(tempfile.mkdtemp(prefix=prefix, dir=parent))

    try:
        yield temp_dir
    finally:
        remove_recursively(temp_dir)


__all__ = [
    "is_relative_to",
    "does_file_exist",
    "remove_recursively",
    "create_directory_if_needed",
    "copy_tree",
    "create_symlink",
    "find_symlinks",
    "fix_absolute_symlinks",
    "extract_archive",
    "atomic_write",
    "temporary_directory",
]

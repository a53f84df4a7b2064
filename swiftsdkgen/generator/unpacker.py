"""
Unpacking of downloaded toolchains and system packages into the SDK layout.
"""

import logging
import shutil
import subprocess
from pathlib import Path
from typing import Iterable

from swiftsdkgen.core.exceptions import UnpackError
from swiftsdkgen.core.filesystem import (
    copy_tree,
    extract_archive,
    remove_recursively,
    temporary_directory,
)
from swiftsdkgen.core.paths import PathsConfiguration
from swiftsdkgen.generator.docker import image_archive_name

logger = logging.getLogger(__name__)

# Host tools that are never invoked when cross-compiling
UNUSED_HOST_BINARIES = (
    "clangd",
    "docc",
    "dsymutil",
    "lldb",
    "lldb-argdumper",
    "lldb-server",
    "lldb-vscode",
    "sourcekit-lsp",
    "swift-format",
    "swift-package",
    "swift-package-collection",
)


def find_usr_dir(root: Path) -> Path:
    """
    Locate the ``usr`` directory of an unpacked toolchain.

    Accepts ``root/usr`` or ``root/<single top-level dir>/usr``.

    Raises:
        UnpackError: If no such directory exists
    """
    if (root / "usr").is_dir():
        return root / "usr"

    candidates = [
        entry / "usr" for entry in root.iterdir() if (entry / "usr").is_dir()
    ]
    if len(candidates) == 1:
        return candidates[0]

    raise UnpackError(f"Unexpected archive layout, no usr directory under {root}")


class PackageUnpacker:
    """
    Extract artifacts into the SDK and toolchain directories.

    Temporary work happens under the artifacts cache directory so large
    archives never cross file systems.
    """

    def __init__(self, paths: PathsConfiguration):
        self.paths = paths

    def _workdir(self, prefix: str):
        return temporary_directory(
            prefix=prefix, parent=self.paths.artifacts_cache_path
        )

    def unpack_host_swift(self, archive: Path) -> None:
        """Install the host toolchain's ``usr`` tree into the toolchain dir."""
        logger.info("Unpacking and copying Swift toolchain for the host...")

        with self._workdir("host_swift_") as tmp:
            if archive.name.endswith(".pkg"):
                usr = self._expand_pkg(archive, tmp)
            else:
                extract_archive(archive, tmp)
                usr = find_usr_dir(tmp)

            copy_tree(usr, self.paths.toolchain_dir_path / "usr")

        for binary in UNUSED_HOST_BINARIES:
            remove_recursively(self.paths.toolchain_bin_dir_path / binary)

    def _expand_pkg(self, archive: Path, tmp: Path) -> Path:
        pkgutil = shutil.which("pkgutil")
        if not pkgutil:
            raise UnpackError(f"Unpacking {archive.name} requires macOS pkgutil")

        expanded = tmp / "expanded"
        cmd = [pkgutil, "--expand-full", str(archive), str(expanded)]
        logger.debug(f"Running: {' '.join(cmd)}")
        try:
            subprocess.run(cmd, capture_output=True, text=True, check=True)
        except subprocess.CalledProcessError as e:
            raise UnpackError(f"pkgutil failed for {archive}: {e.stderr}") from e

        payloads = sorted(expanded.glob("*/Payload/usr"))
        if not payloads:
            raise UnpackError(f"No Payload/usr directory in {archive.name}")
        return payloads[0]

    def unpack_target_swift_package(self, archive: Path) -> None:
        """Copy the target's Swift runtime out of a downloaded Swift package."""
        logger.info("Unpacking Swift distribution for the target triple...")

        with self._workdir("target_swift_") as tmp:
            extract_archive(archive, tmp)
            self.copy_target_swift(find_usr_dir(tmp) / "lib")

    def copy_target_swift(self, distribution_lib_path: Path) -> None:
        """
        Copy Swift core libraries for the target into the bundle.

        Only ``swift/linux`` is mandatory; the other directories are copied
        when the distribution ships them.

        Raises:
            UnpackError: If ``swift/linux`` is missing
        """
        logger.info(
            "Copying Swift core libraries for the target triple into Swift SDK bundle..."
        )
        toolchain_lib = self.paths.toolchain_dir_path / "usr" / "lib"
        sdk_include = self.paths.sdk_dir_path / "usr" / "include"

        layout = [
            ("swift/linux", toolchain_lib / "swift" / "linux", True),
            ("swift_static/linux", toolchain_lib / "swift_static" / "linux", False),
            ("swift_static/shims", toolchain_lib / "swift_static" / "shims", False),
            ("swift/dispatch", sdk_include / "dispatch", False),
            ("swift/os", sdk_include / "os", False),
            ("swift/CoreFoundation", sdk_include / "CoreFoundation", False),
        ]

        for within_package, destination, required in layout:
            source = distribution_lib_path / within_package
            if not source.is_dir():
                if required:
                    raise UnpackError(
                        f"Swift distribution is missing {within_package} "
                        f"under {distribution_lib_path}"
                    )
                logger.debug(f"Skipping absent {source}")
                continue
            copy_tree(source, destination)

    def unpack_deb_packages(self, packages: Iterable[Path]) -> None:
        """Extract the data member of each .deb into the SDK dir."""
        ar = shutil.which("ar")
        if not ar:
            raise UnpackError("Unpacking .deb packages requires the 'ar' executable")

        for package in packages:
            logger.debug(f"Unpacking {package.name}")
            with self._workdir("deb_") as tmp:
                try:
                    subprocess.run(
                        [ar, "x", str(package)],
                        cwd=tmp,
                        capture_output=True,
                        text=True,
                        check=True,
                    )
                except subprocess.CalledProcessError as e:
                    raise UnpackError(
                        f"Failed to unpack {package.name}: {e.stderr}"
                    ) from e

                data = sorted(tmp.glob("data.tar*"))
                if not data:
                    raise UnpackError(f"No data archive in {package.name}")
                extract_archive(data[0], self.paths.sdk_dir_path)

    def unpack_image_contents(
        self, image_dir: Path, container_paths: Iterable[str]
    ) -> None:
        """
        Extract tar streams copied out of a container into the SDK dir.

        Each container path lands at the same location inside the sysroot,
        after which the Swift libraries are copied into the toolchain.
        """
        logger.info("Unpacking target sysroot copied from Docker image...")

        for container_path in container_paths:
            archive = image_dir / image_archive_name(container_path)
            parent = Path(container_path).parent.relative_to("/")
            with self._workdir("image_") as tmp:
                extract_archive(archive, tmp)
                copy_tree(tmp, self.paths.sdk_dir_path / parent)

        self.copy_target_swift(self.paths.sdk_dir_path / "usr" / "lib")

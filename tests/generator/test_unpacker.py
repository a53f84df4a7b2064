"""
Unit tests for unpacking artifacts into the SDK layout.
"""

import os
import subprocess
from pathlib import Path
from unittest.mock import patch

import pytest

from swiftsdkgen.core.exceptions import UnpackError
from swiftsdkgen.generator.unpacker import PackageUnpacker, find_usr_dir
from tests.fixtures.archives import make_tar, target_swift_entries


class TestFindUsrDir:
    """Test locating the usr tree of an unpacked toolchain."""

    def test_usr_at_root(self, tmp_path):
        """Test archives with usr at the top level."""
        (tmp_path / "usr").mkdir()

        assert find_usr_dir(tmp_path) == tmp_path / "usr"

    def test_usr_nested_once(self, tmp_path):
        """Test archives with a single versioned top-level directory."""
        (tmp_path / "swift-5.9-RELEASE-ubuntu22.04" / "usr").mkdir(parents=True)

        assert find_usr_dir(tmp_path) == (
            tmp_path / "swift-5.9-RELEASE-ubuntu22.04" / "usr"
        )

    def test_no_usr(self, tmp_path):
        """Test unexpected layouts are rejected."""
        (tmp_path / "bin").mkdir()

        with pytest.raises(UnpackError, match="no usr directory"):
            find_usr_dir(tmp_path)


class TestUnpackHostSwift:
    """Test installing the host toolchain."""

    def test_unpack_host_swift(self, paths, host_toolchain_archive):
        """Test the usr tree lands in the toolchain and unused tools go."""
        PackageUnpacker(paths).unpack_host_swift(host_toolchain_archive)

        bin_dir = paths.toolchain_bin_dir_path
        assert (bin_dir / "swift").exists()
        assert os.readlink(bin_dir / "swiftc") == "swift"
        assert (bin_dir / "clang").exists()
        assert not (bin_dir / "lldb").exists()
        assert not (bin_dir / "sourcekit-lsp").exists()
        assert (
            paths.toolchain_dir_path / "usr" / "lib" / "swift" / "clang" / "include"
        ).is_dir()

    def test_workdir_cleaned_up(self, paths, host_toolchain_archive):
        """Test no temporary directories are left in the artifacts cache."""
        PackageUnpacker(paths).unpack_host_swift(host_toolchain_archive)

        assert list(paths.artifacts_cache_path.iterdir()) == []

    def test_pkg_requires_pkgutil(self, paths, tmp_path):
        """Test macOS installers need pkgutil."""
        archive = tmp_path / "swift-5.9-RELEASE-osx.pkg"
        archive.write_bytes(b"xar!")

        with patch("swiftsdkgen.generator.unpacker.shutil.which", return_value=None):
            with pytest.raises(UnpackError, match="pkgutil"):
                PackageUnpacker(paths).unpack_host_swift(archive)


class TestUnpackTargetSwift:
    """Test copying the target's Swift runtime."""

    def test_unpack_target_swift_package(self, paths, target_swift_archive):
        """Test runtime libraries and headers land in their places."""
        PackageUnpacker(paths).unpack_target_swift_package(target_swift_archive)

        toolchain_lib = paths.toolchain_dir_path / "usr" / "lib"
        sdk_include = paths.sdk_dir_path / "usr" / "include"
        assert (toolchain_lib / "swift" / "linux" / "libswiftCore.so").exists()
        assert (
            toolchain_lib / "swift" / "linux" / "x86_64" / "glibc.modulemap"
        ).exists()
        assert (toolchain_lib / "swift_static" / "linux" / "libswiftCore.a").exists()
        assert (sdk_include / "dispatch" / "module.modulemap").exists()
        assert (sdk_include / "CoreFoundation" / "module.map").exists()
        assert not (sdk_include / "os").exists()

    def test_missing_swift_linux(self, paths, tmp_path):
        """Test a package without swift/linux is rejected."""
        archive = make_tar(
            tmp_path / "broken.tar.gz", {"swift/usr/lib/swift/dispatch/x.h": b""}
        )

        with pytest.raises(UnpackError, match="swift/linux"):
            PackageUnpacker(paths).unpack_target_swift_package(archive)


class TestUnpackDebPackages:
    """Test extracting .deb packages, with ar mocked."""

    @patch("swiftsdkgen.generator.unpacker.shutil.which", return_value="/usr/bin/ar")
    @patch("swiftsdkgen.generator.unpacker.subprocess.run")
    def test_data_archive_extracted_into_sysroot(
        self, mock_run, mock_which, paths, tmp_path
    ):
        """Test each package's data member is unpacked into the SDK dir."""

        def ar_x(cmd, cwd, **kwargs):
            name = Path(cmd[2]).stem
            make_tar(
                Path(cwd) / "data.tar.xz",
                {f"./usr/include/{name}.h": b"/* header */"},
                mode="w:xz",
            )
            (Path(cwd) / "control.tar.xz").write_bytes(b"")

        mock_run.side_effect = ar_x
        debs = [tmp_path / "libc6-dev.deb", tmp_path / "zlib1g-dev.deb"]

        PackageUnpacker(paths).unpack_deb_packages(debs)

        assert (paths.sdk_dir_path / "usr" / "include" / "libc6-dev.h").exists()
        assert (paths.sdk_dir_path / "usr" / "include" / "zlib1g-dev.h").exists()
        assert mock_run.call_args_list[0].args[0] == [
            "/usr/bin/ar",
            "x",
            str(tmp_path / "libc6-dev.deb"),
        ]

    @patch("swiftsdkgen.generator.unpacker.shutil.which", return_value="/usr/bin/ar")
    @patch("swiftsdkgen.generator.unpacker.subprocess.run")
    def test_ar_failure(self, mock_run, mock_which, paths, tmp_path):
        """Test a failing ar run is an UnpackError."""
        mock_run.side_effect = subprocess.CalledProcessError(
            1, ["ar"], stderr="not an archive"
        )

        with pytest.raises(UnpackError, match="not an archive"):
            PackageUnpacker(paths).unpack_deb_packages([tmp_path / "bad.deb"])

    @patch("swiftsdkgen.generator.unpacker.shutil.which", return_value=None)
    def test_ar_missing(self, mock_which, paths, tmp_path):
        """Test a missing ar executable is reported."""
        with pytest.raises(UnpackError, match="'ar'"):
            PackageUnpacker(paths).unpack_deb_packages([tmp_path / "libc6.deb"])


class TestUnpackImageContents:
    """Test unpacking tar streams copied from a container."""

    def test_unpack_image_contents(self, paths, tmp_path):
        """Test each path lands at its sysroot location."""
        image_dir = tmp_path / "image"
        usr_lib = {
            f"lib/{name[len('swift-5.9-RELEASE-ubuntu22.04/usr/lib/'):]}": content
            for name, content in target_swift_entries().items()
            if "/usr/lib/" in name
        }
        usr_lib["lib/x86_64-linux-gnu/libm.so"] = (
            "symlink",
            "/lib/x86_64-linux-gnu/libm.so.6",
        )
        make_tar(image_dir / "usr_lib.tar", usr_lib, mode="w")
        make_tar(image_dir / "usr_include.tar", {"include/stdio.h": b""}, mode="w")
        make_tar(image_dir / "lib.tar", {"lib": ("symlink", "usr/lib")}, mode="w")

        PackageUnpacker(paths).unpack_image_contents(
            image_dir, ["/usr/include", "/usr/lib", "/lib"]
        )

        sdk = paths.sdk_dir_path
        assert (sdk / "usr" / "include" / "stdio.h").exists()
        assert os.readlink(sdk / "lib") == "usr/lib"
        assert os.readlink(sdk / "usr" / "lib" / "x86_64-linux-gnu" / "libm.so") == (
            "/lib/x86_64-linux-gnu/libm.so.6"
        )
        toolchain_lib = paths.toolchain_dir_path / "usr" / "lib"
        assert (toolchain_lib / "swift" / "linux" / "libswiftCore.so").exists()

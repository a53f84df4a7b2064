"""
Unit tests for LLD provisioning.
"""

import os

import pytest

from swiftsdkgen.core.cache_engine import cache_key
from swiftsdkgen.core.exceptions import UnpackError
from swiftsdkgen.generator.linker import LinkerProvisioner, extract_lld
from tests.fixtures.archives import make_tar

LLVM_URL = "https://github.com/llvm/llvm-project/releases/download/llvmorg-16.0.5/x.tar.xz"


class TestExtractLLD:
    """Test pulling lld out of an LLVM archive."""

    def test_extract(self, llvm_archive, tmp_path):
        """Test only the lld binary is written, executable."""
        out = tmp_path / "out"
        out.mkdir()

        lld = extract_lld(llvm_archive, out)

        assert lld == out / "lld"
        assert lld.read_bytes() == b"lld binary"
        assert os.access(lld, os.X_OK)
        assert [p.name for p in out.iterdir()] == ["lld"]

    def test_archive_without_lld(self, tmp_path):
        """Test archives lacking bin/lld are rejected."""
        archive = make_tar(
            tmp_path / "llvm.tar.xz", {"llvm/bin/clang": b"clang"}, mode="w:xz"
        )

        with pytest.raises(UnpackError, match="No bin/lld"):
            extract_lld(archive, tmp_path)

    def test_symlink_named_lld_ignored(self, tmp_path):
        """Test a symlink called lld does not count as the binary."""
        archive = make_tar(
            tmp_path / "llvm.tar.xz",
            {"llvm/bin/lld": ("symlink", "lld-16")},
            mode="w:xz",
        )

        with pytest.raises(UnpackError):
            extract_lld(archive, tmp_path)


class TestLinkerProvisioner:
    """Test installing ld.lld into the toolchain."""

    def test_prepare_lld(self, paths, engine, llvm_archive):
        """Test the linker is installed as ld.lld."""
        linker = LinkerProvisioner(engine, paths).prepare_lld(
            llvm_archive, "16.0.5", LLVM_URL
        )

        assert linker == paths.toolchain_bin_dir_path / "ld.lld"
        assert linker.read_bytes() == b"lld binary"
        assert os.access(linker, os.X_OK)

    def test_extraction_cached(self, paths, engine, llvm_archive):
        """Test a second run reuses the extracted binary."""
        provisioner = LinkerProvisioner(engine, paths)
        provisioner.prepare_lld(llvm_archive, "16.0.5", LLVM_URL)
        llvm_archive.unlink()

        linker = provisioner.prepare_lld(llvm_archive, "16.0.5", LLVM_URL)

        assert linker.read_bytes() == b"lld binary"
        key = cache_key("extract-lld", version="16.0.5", url=LLVM_URL)
        assert engine.get(key) is not None

    def test_replaces_existing_linker(self, paths, engine, llvm_archive):
        """Test a stale ld.lld from an earlier run is overwritten."""
        paths.toolchain_bin_dir_path.mkdir(parents=True)
        os.symlink("lld", paths.toolchain_bin_dir_path / "ld.lld")

        linker = LinkerProvisioner(engine, paths).prepare_lld(
            llvm_archive, "16.0.5", LLVM_URL
        )

        assert not linker.is_symlink()
        assert linker.read_bytes() == b"lld binary"

"""
Pytest configuration and shared fixtures for the Swift SDK generator tests.
"""

import pytest

# Import test fixtures to make them available to all tests
# ruff: noqa: F401
from tests.fixtures.archives import (
    host_toolchain_archive,
    target_swift_archive,
    llvm_archive,
    jammy_packages_index,
)

from swiftsdkgen.core.cache_engine import CacheEngine
from swiftsdkgen.core.paths import PathsConfiguration
from swiftsdkgen.cross.targets import TargetTriple, Ubuntu
from swiftsdkgen.generator.versions import VersionsConfiguration


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: marks tests as unit tests")
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )


# ============================================================================
# Shared Test Fixtures
# ============================================================================


@pytest.fixture
def linux_host() -> TargetTriple:
    return TargetTriple.parse("aarch64-unknown-linux-gnu")


@pytest.fixture
def x86_64_target() -> TargetTriple:
    return TargetTriple.parse("x86_64-unknown-linux-gnu")


@pytest.fixture
def versions(linux_host, x86_64_target) -> VersionsConfiguration:
    """Swift 5.9 for x86_64 Ubuntu 22.04, generated on an aarch64 Linux host."""
    return VersionsConfiguration(
        swift_version="5.9-RELEASE",
        lld_version="16.0.5",
        linux_distribution=Ubuntu("22.04"),
        host_triple=linux_host,
        target_triple=x86_64_target,
    )


@pytest.fixture
def paths(tmp_path, x86_64_target) -> PathsConfiguration:
    """Layout rooted at a temporary source root."""
    return PathsConfiguration.compute(
        tmp_path / "work", "test-sdk", x86_64_target, Ubuntu("22.04")
    )


@pytest.fixture
def engine(tmp_path):
    """Open cache engine, closed after the test."""
    with CacheEngine(tmp_path / "engine", lock_timeout=1) as opened:
        yield opened

"""
Upstream versions and the artifact locations derived from them.
"""

from dataclasses import dataclass
from typing import Optional

from swiftsdkgen.cross.targets import CPU, LinuxDistribution, TargetTriple, Ubuntu

SWIFT_DOWNLOAD_ROOT = "https://download.swift.org"
LLVM_RELEASES_ROOT = "https://github.com/llvm/llvm-project/releases/download"

# LLVM release asset suffixes per host (os, cpu)
LLVM_HOST_PLATFORMS = {
    ("darwin", CPU.ARM64): "arm64-apple-darwin22.0",
    ("darwin", CPU.X86_64): "x86_64-apple-darwin",
    ("linux", CPU.ARM64): "aarch64-linux-gnu",
    ("linux", CPU.X86_64): "x86_64-linux-gnu-ubuntu-22.04",
}


@dataclass(frozen=True)
class VersionsConfiguration:
    """
    Versions of every upstream component that goes into the SDK.

    Example:
        >>> versions = VersionsConfiguration(
        ...     swift_version="5.9-RELEASE",
        ...     lld_version="16.0.5",
        ...     linux_distribution=Ubuntu("22.04"),
        ...     host_triple=TargetTriple.parse("arm64-apple-macosx"),
        ...     target_triple=TargetTriple.parse("aarch64-unknown-linux-gnu"),
        ... )
        >>> versions.target_swift_package_url
        'https://download.swift.org/swift-5.9-release/ubuntu2204-aarch64/swift-5.9-RELEASE/swift-5.9-RELEASE-ubuntu22.04-aarch64.tar.gz'
    """

    swift_version: str
    lld_version: str
    linux_distribution: LinuxDistribution
    host_triple: TargetTriple
    target_triple: TargetTriple
    swift_branch: Optional[str] = None
    base_docker_image: Optional[str] = None

    @property
    def swift_bare_semver(self) -> str:
        """Swift version without its release suffix, e.g. ``5.9``."""
        return self.swift_version.split("-")[0]

    @property
    def swift_branch_name(self) -> str:
        return self.swift_branch or f"swift-{self.swift_bare_semver}-release"

    def swift_platform(self, cpu: CPU) -> str:
        """Platform component of download.swift.org file names."""
        distribution = self.linux_distribution
        if isinstance(distribution, Ubuntu):
            platform = f"ubuntu{distribution.version}"
        else:
            platform = distribution.version

        if cpu == CPU.ARM64:
            platform += "-aarch64"
        return platform

    def _linux_package_url(self, cpu: CPU) -> str:
        platform = self.swift_platform(cpu)
        return (
            f"{SWIFT_DOWNLOAD_ROOT}/{self.swift_branch_name}/"
            f"{platform.replace('.', '')}/swift-{self.swift_version}/"
            f"swift-{self.swift_version}-{platform}.tar.gz"
        )

    @property
    def target_swift_package_url(self) -> str:
        return self._linux_package_url(self.target_triple.cpu)

    @property
    def host_swift_package_url(self) -> str:
        if self.host_triple.is_darwin:
            return (
                f"{SWIFT_DOWNLOAD_ROOT}/{self.swift_branch_name}/xcode/"
                f"swift-{self.swift_version}/swift-{self.swift_version}-osx.pkg"
            )
        return self._linux_package_url(self.host_triple.cpu)

    @property
    def lld_url(self) -> str:
        host_os = "darwin" if self.host_triple.is_darwin else "linux"
        platform = LLVM_HOST_PLATFORMS[(host_os, self.host_triple.cpu)]
        return (
            f"{LLVM_RELEASES_ROOT}/llvmorg-{self.lld_version}/"
            f"clang+llvm-{self.lld_version}-{platform}.tar.xz"
        )

    @property
    def docker_image(self) -> str:
        """Image to copy the target sysroot from."""
        if self.base_docker_image:
            return self.base_docker_image

        distribution = self.linux_distribution
        if isinstance(distribution, Ubuntu):
            return f"swift:{self.swift_bare_semver}-{distribution.codename}"
        return f"swift:{self.swift_bare_semver}-rhel-{distribution.version}"

    @property
    def default_artifact_id(self) -> str:
        distribution = self.linux_distribution
        return (
            f"{self.swift_version}_{distribution.name}_{distribution.codename}_"
            f"{self.target_triple.cpu.linux_convention_name}"
        )

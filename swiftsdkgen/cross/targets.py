"""
Cross-compilation target description.

This module models what the generator is producing an SDK for: the target
triple (CPU, vendor, OS, ABI) and the Linux distribution whose system
libraries make up the sysroot.
"""

import platform
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Tuple, Union

from swiftsdkgen.core.exceptions import (
    ConfigurationError,
    UnsupportedCPUError,
    UnsupportedDistributionError,
)


class CPU(Enum):
    """CPU architectures the generator can target."""

    ARM64 = "arm64"
    X86_64 = "x86_64"

    @property
    def debian_convention_name(self) -> str:
        """Name used in Debian/Ubuntu package architectures."""
        return _DEBIAN_NAMES[self]

    @property
    def linux_convention_name(self) -> str:
        """Name used in Linux triples and library directories."""
        return _LINUX_NAMES[self]

    @classmethod
    def parse(cls, value: str) -> "CPU":
        """
        Parse a CPU name in any of its common spellings.

        Raises:
            UnsupportedCPUError: If the name is not a supported CPU
        """
        try:
            return _CPU_ALIASES[value.lower()]
        except KeyError:
            raise UnsupportedCPUError(value) from None


_DEBIAN_NAMES = {CPU.ARM64: "arm64", CPU.X86_64: "amd64"}
_LINUX_NAMES = {CPU.ARM64: "aarch64", CPU.X86_64: "x86_64"}
_CPU_ALIASES = {
    "arm64": CPU.ARM64,
    "aarch64": CPU.ARM64,
    "x86_64": CPU.X86_64,
    "amd64": CPU.X86_64,
}


@dataclass(frozen=True)
class TargetTriple:
    """
    CPU + vendor + OS + ABI identifying a compilation target.

    Example:
        >>> triple = TargetTriple.parse("aarch64-unknown-linux-gnu")
        >>> triple.cpu
        <CPU.ARM64: 'arm64'>
        >>> str(triple)
        'aarch64-unknown-linux-gnu'
    """

    cpu: CPU
    vendor: str = "unknown"
    os: str = "linux"
    abi: Optional[str] = "gnu"

    @property
    def is_darwin(self) -> bool:
        return self.os.startswith("macos") or self.os == "darwin"

    @property
    def is_linux(self) -> bool:
        return self.os == "linux"

    def __str__(self) -> str:
        if self.vendor == "apple":
            cpu = self.cpu.value
        else:
            cpu = self.cpu.linux_convention_name
        parts = [cpu, self.vendor, self.os]
        if self.abi:
            parts.append(self.abi)
        return "-".join(parts)

    @classmethod
    def parse(cls, text: str) -> "TargetTriple":
        """
        Parse a triple such as ``x86_64-unknown-linux-gnu``.

        Raises:
            ConfigurationError: If the triple is malformed
            UnsupportedCPUError: If its CPU is not supported
        """
        parts = text.strip().split("-")
        if len(parts) not in (3, 4):
            raise ConfigurationError(
                f"Invalid target triple '{text}', expected cpu-vendor-os[-abi]"
            )

        abi = parts[3] if len(parts) == 4 else None
        return cls(cpu=CPU.parse(parts[0]), vendor=parts[1], os=parts[2], abi=abi)


def detect_host_triple() -> TargetTriple:
    """
    Detect the triple of the machine running the generator.

    Returns:
        TargetTriple for the current host

    Raises:
        ConfigurationError: If the host OS is not macOS or Linux
        UnsupportedCPUError: If the host CPU is not supported
    """
    system = platform.system().lower()
    cpu = CPU.parse(platform.machine())

    if system == "darwin":
        return TargetTriple(cpu=cpu, vendor="apple", os="macosx", abi=None)
    if system == "linux":
        return TargetTriple(cpu=cpu, vendor="unknown", os="linux", abi="gnu")

    raise ConfigurationError(f"Unsupported host operating system: {system}")


# ============================================================================
# Linux Distributions
# ============================================================================


UBUNTU_RELEASES: Dict[str, Tuple[str, Tuple[str, ...]]] = {
    "20.04": (
        "focal",
        (
            "libc6",
            "libc6-dev",
            "libgcc-s1",
            "libgcc-10-dev",
            "libicu66",
            "libicu-dev",
            "libstdc++-10-dev",
            "libstdc++6",
            "linux-libc-dev",
            "zlib1g",
            "zlib1g-dev",
        ),
    ),
    "22.04": (
        "jammy",
        (
            "libc6",
            "libc6-dev",
            "libgcc-s1",
            "libgcc-12-dev",
            "libicu70",
            "libicu-dev",
            "libstdc++-12-dev",
            "libstdc++6",
            "linux-libc-dev",
            "zlib1g",
            "zlib1g-dev",
        ),
    ),
}

RHEL_RELEASES = ("ubi9",)


@dataclass(frozen=True)
class Ubuntu:
    """Ubuntu release, the only distribution with package-based generation."""

    version: str

    name = "ubuntu"

    def __post_init__(self):
        if self.version not in UBUNTU_RELEASES:
            raise UnsupportedDistributionError(
                f"Unsupported Ubuntu release: {self.version} "
                f"(supported: {', '.join(UBUNTU_RELEASES)})"
            )

    @property
    def codename(self) -> str:
        return UBUNTU_RELEASES[self.version][0]

    @property
    def required_packages(self) -> Tuple[str, ...]:
        return UBUNTU_RELEASES[self.version][1]

    def __str__(self) -> str:
        return f"Ubuntu {self.version}"


@dataclass(frozen=True)
class RHEL:
    """Red Hat Enterprise Linux release; only available from Docker images."""

    version: str

    name = "rhel"

    def __post_init__(self):
        if self.version not in RHEL_RELEASES:
            raise UnsupportedDistributionError(
                f"Unsupported RHEL release: {self.version} "
                f"(supported: {', '.join(RHEL_RELEASES)})"
            )

    @property
    def codename(self) -> str:
        return self.version

    @property
    def required_packages(self) -> None:
        return None

    def __str__(self) -> str:
        return f"RHEL {self.version}"


LinuxDistribution = Union[Ubuntu, RHEL]


def parse_distribution(name: str, version: str) -> LinuxDistribution:
    """
    Build a distribution variant from its name and release.

    Example:
        >>> parse_distribution("ubuntu", "22.04").codename
        'jammy'

    Raises:
        UnsupportedDistributionError: For unknown names or releases
    """
    name = name.lower()
    if name == "ubuntu":
        return Ubuntu(str(version))
    if name == "rhel":
        return RHEL(str(version))

    raise UnsupportedDistributionError(
        f"Unsupported Linux distribution: {name} (supported: ubuntu, rhel)"
    )

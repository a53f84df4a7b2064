"""
On-disk layout of a generated Swift SDK.

Directory Structure:
    <source root>/
        Artifacts/                          : downloads and the build cache
        <artifact id>.artifactbundle/
            info.json                       : bundle manifest
            <artifact id>/<target triple>/
                swift-sdk.json              : destination descriptor
                toolset.json                : toolset descriptor
                <distribution>-<version>.sdk/   : target sysroot
                swift.xctoolchain/          : host compiler and tools
                    usr/bin/
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Union

from swiftsdkgen.cross.targets import LinuxDistribution, TargetTriple


@dataclass(frozen=True)
class PathsConfiguration:
    """
    Absolute locations used by every generator component.

    Built once with :meth:`compute` before generation starts.
    """

    source_root: Path
    artifact_id: str
    artifacts_cache_path: Path
    artifact_bundle_path: Path
    swift_sdk_root_path: Path
    sdk_dir_path: Path
    toolchain_dir_path: Path
    toolchain_bin_dir_path: Path

    @classmethod
    def compute(
        cls,
        source_root: Union[str, Path],
        artifact_id: str,
        target_triple: TargetTriple,
        distribution: LinuxDistribution,
    ) -> "PathsConfiguration":
        """
        Derive the layout from a root directory and an artifact ID.

        Example:
            >>> paths = PathsConfiguration.compute(
            ...     "/work", "my-sdk",
            ...     TargetTriple.parse("x86_64-unknown-linux-gnu"), Ubuntu("22.04"),
            ... )
            >>> paths.artifact_bundle_path
            PosixPath('/work/my-sdk.artifactbundle')
        """
        if not artifact_id or "/" in artifact_id:
            raise ValueError(f"Invalid artifact ID: {artifact_id!r}")

        source_root = Path(source_root).absolute()
        bundle = source_root / f"{artifact_id}.artifactbundle"
        sdk_root = bundle / artifact_id / str(target_triple)
        toolchain = sdk_root / "swift.xctoolchain"

        return cls(
            source_root=source_root,
            artifact_id=artifact_id,
            artifacts_cache_path=source_root / "Artifacts",
            artifact_bundle_path=bundle,
            swift_sdk_root_path=sdk_root,
            sdk_dir_path=sdk_root / f"{distribution.name}-{distribution.version}.sdk",
            toolchain_dir_path=toolchain,
            toolchain_bin_dir_path=toolchain / "usr" / "bin",
        )

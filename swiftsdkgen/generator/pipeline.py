"""
Swift SDK generation pipeline.

The generator is an ordered list of named stages that run strictly in
sequence against one GenerationContext. Every stage is a plain function, so
each one can be exercised on its own. The first error raised by a stage
propagates unchanged; nothing is retried or rolled back.

Stages:
    clear state          : wipe SDK and toolchain dirs unless incremental
    create directories   : artifacts cache, SDK dir, toolchain dir
    download artifacts   : host toolchain, LLVM and target Swift package
    ubuntu packages      : .deb system packages (package strategy only)
    unpack host swift    : host toolchain into swift.xctoolchain
    acquire target swift : Docker image copy or target package unpack
    prepare linker       : ld.lld from the LLVM archive
    fix symlinks         : absolute symlinks in the sysroot made relative
    fix glibc modulemap  : absolute header paths replaced by wrappers
    symlink clang headers: swift_static/clang -> ../swift/clang
    autolink extract     : swift-autolink-extract -> swift
    generate manifests   : toolset.json, swift-sdk.json, info.json
    report success       : install and usage commands
"""

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple, Union

from swiftsdkgen.core.cache_engine import CacheEngine
from swiftsdkgen.core.download import HTTPClient, HTTPSettings
from swiftsdkgen.core.exceptions import (
    DistributionSupportsOnlyDockerGeneratorError,
    FilesystemError,
    ModuleMapNotFoundError,
)
from swiftsdkgen.core.filesystem import (
    atomic_write,
    create_directory_if_needed,
    create_symlink,
    does_file_exist,
    fix_absolute_symlinks,
    remove_recursively,
)
from swiftsdkgen.core.paths import PathsConfiguration
from swiftsdkgen.cross.targets import Ubuntu
from swiftsdkgen.generator.docker import DockerClient
from swiftsdkgen.generator.fetcher import ArtifactFetcher, ImageArtifact, RemoteArtifact
from swiftsdkgen.generator.linker import LinkerProvisioner
from swiftsdkgen.generator.manifests import ManifestGenerator
from swiftsdkgen.generator.ubuntu_packages import download_ubuntu_packages
from swiftsdkgen.generator.unpacker import PackageUnpacker
from swiftsdkgen.generator.versions import VersionsConfiguration

logger = logging.getLogger(__name__)

# Container paths that make up the sysroot, per distribution
DOCKER_SYSROOT_PATHS: Dict[str, Tuple[str, ...]] = {
    "ubuntu": ("/usr/include", "/usr/lib", "/lib"),
    "rhel": ("/usr/include", "/usr/lib", "/usr/lib64"),
}


@dataclass(frozen=True)
class GenerationConfig:
    """Options that select the pipeline's branches."""

    artifact_id: str
    engine_cache_path: Optional[Path] = None
    is_incremental: bool = False
    should_use_docker: bool = False


@dataclass(frozen=True)
class DockerImage:
    """Copy the target sysroot and Swift runtime out of an image."""

    image: str


@dataclass(frozen=True)
class PackageDownload:
    """Download the target Swift package and Ubuntu .deb packages."""

    url: str


TargetAcquisitionStrategy = Union[DockerImage, PackageDownload]


def select_acquisition_strategy(
    config: GenerationConfig, versions: VersionsConfiguration
) -> TargetAcquisitionStrategy:
    """
    Decide how the target side of the SDK is obtained.

    Raises:
        DistributionSupportsOnlyDockerGeneratorError: If Docker is disabled
            and the distribution has no package list
    """
    if config.should_use_docker:
        return DockerImage(versions.docker_image)

    if not isinstance(versions.linux_distribution, Ubuntu):
        raise DistributionSupportsOnlyDockerGeneratorError(
            versions.linux_distribution
        )

    return PackageDownload(versions.target_swift_package_url)


@dataclass(frozen=True)
class GenerationResult:
    """Locations produced by a successful run."""

    artifact_id: str
    bundle_path: Path
    toolset_path: Path
    destination_path: Path
    bundle_manifest_path: Path

    @property
    def install_command(self) -> str:
        return f"swift experimental-sdk install {self.bundle_path}"

    @property
    def use_command(self) -> str:
        return f"swift build --experimental-swift-sdk {self.artifact_id}"

    @property
    def success_message(self) -> str:
        return (
            "All done! Install the newly generated SDK with this command:\n"
            f"{self.install_command}\n\n"
            "After that, use the newly installed SDK when building with this "
            f"command:\n{self.use_command}"
        )


@dataclass
class GenerationContext:
    """Everything a stage may read, plus what earlier stages produced."""

    config: GenerationConfig
    versions: VersionsConfiguration
    paths: PathsConfiguration
    strategy: TargetAcquisitionStrategy
    fetcher: ArtifactFetcher
    engine: CacheEngine
    unpacker: PackageUnpacker
    linker: LinkerProvisioner
    manifests: ManifestGenerator
    artifacts: Dict[str, Path] = field(default_factory=dict)
    result: Optional[GenerationResult] = None


@dataclass(frozen=True)
class Stage:
    name: str
    action: Callable[[GenerationContext], None]


# ============================================================================
# Stages
# ============================================================================


def clear_previous_state(context: GenerationContext) -> None:
    if context.config.is_incremental:
        logger.debug("Incremental run, keeping existing SDK and toolchain")
        return

    remove_recursively(context.paths.sdk_dir_path)
    remove_recursively(context.paths.toolchain_dir_path)


def create_directories(context: GenerationContext) -> None:
    paths = context.paths
    create_directory_if_needed(paths.artifacts_cache_path)
    create_directory_if_needed(paths.sdk_dir_path)
    create_directory_if_needed(paths.toolchain_dir_path)


def download_artifacts(context: GenerationContext) -> None:
    """Fetch the host toolchain, the LLVM archive and the target package."""
    logger.info("Downloading required toolchain packages...")
    versions = context.versions
    fetcher = context.fetcher

    context.artifacts["host_swift"] = fetcher.fetch(
        RemoteArtifact(versions.host_swift_package_url)
    )
    context.artifacts["lld"] = fetcher.fetch(RemoteArtifact(versions.lld_url))

    if isinstance(context.strategy, PackageDownload):
        context.artifacts["target_swift"] = fetcher.fetch(
            RemoteArtifact(context.strategy.url)
        )


def install_ubuntu_packages(context: GenerationContext) -> None:
    if not isinstance(context.strategy, PackageDownload):
        return

    distribution = context.versions.linux_distribution
    packages = download_ubuntu_packages(
        context.fetcher,
        distribution,
        context.versions.target_triple.cpu,
        distribution.required_packages,
    )
    logger.info("Unpacking Ubuntu packages into the target sysroot...")
    context.unpacker.unpack_deb_packages(packages)


def unpack_host_swift(context: GenerationContext) -> None:
    context.unpacker.unpack_host_swift(context.artifacts["host_swift"])


def acquire_target_swift(context: GenerationContext) -> None:
    strategy = context.strategy

    if isinstance(strategy, DockerImage):
        container_paths = DOCKER_SYSROOT_PATHS[context.versions.linux_distribution.name]
        image_dir = context.fetcher.fetch(ImageArtifact(strategy.image, container_paths))
        context.unpacker.unpack_image_contents(image_dir, container_paths)
    else:
        context.unpacker.unpack_target_swift_package(context.artifacts["target_swift"])


def prepare_linker(context: GenerationContext) -> None:
    context.linker.prepare_lld(
        context.artifacts["lld"],
        context.versions.lld_version,
        context.versions.lld_url,
    )


def fix_sysroot_symlinks(context: GenerationContext) -> None:
    logger.info("Fixing up absolute symlinks...")
    fixed = fix_absolute_symlinks(context.paths.sdk_dir_path)
    logger.debug(f"Rewrote {fixed} absolute symlinks")


_MODULE_MAP_HEADER = re.compile(
    r'^(\s*(?:private\s+|textual\s+)*header\s+)'
    r'"/+usr/include/(?:(?:x86_64|aarch64)-linux-gnu/)?([^"]+)"',
    re.MULTILINE,
)


def fix_glibc_module_map(module_map: Path) -> int:
    """
    Make a glibc module map independent of the host's ``/usr/include``.

    Each absolute ``header "/usr/include/..."`` declaration is redirected to
    a wrapper in ``private_includes/`` that includes the header by its
    system name, so the compiler resolves it against the SDK sysroot.

    Args:
        module_map: Path to ``glibc.modulemap``

    Returns:
        Number of header declarations rewritten

    Raises:
        ModuleMapNotFoundError: If the module map does not exist
    """
    if not module_map.is_file():
        raise ModuleMapNotFoundError(module_map)

    try:
        contents = module_map.read_text(encoding="utf-8")
    except OSError as e:
        raise FilesystemError(f"Failed to read {module_map}: {e}") from e

    wrappers: List[Tuple[str, str]] = []

    def redirect(match) -> str:
        declaration, header = match.groups()
        wrapper = header.replace("/", "_")
        wrappers.append((wrapper, header))
        return f'{declaration}"private_includes/{wrapper}"'

    rewritten = _MODULE_MAP_HEADER.sub(redirect, contents)
    if not wrappers:
        return 0

    private_includes = create_directory_if_needed(module_map.parent / "private_includes")
    try:
        for wrapper, header in wrappers:
            atomic_write(private_includes / wrapper, f"#include <{header}>\n")
        atomic_write(module_map, rewritten)
    except OSError as e:
        raise FilesystemError(f"Failed to rewrite {module_map}: {e}") from e

    return len(wrappers)


def fix_module_map(context: GenerationContext) -> None:
    logger.info("Fixing glibc module map...")
    cpu = context.versions.target_triple.cpu
    module_map = (
        context.paths.toolchain_dir_path
        / "usr"
        / "lib"
        / "swift"
        / "linux"
        / cpu.linux_convention_name
        / "glibc.modulemap"
    )
    fix_glibc_module_map(module_map)


def symlink_clang_headers(context: GenerationContext) -> None:
    """Let static builds find the same clang headers as dynamic ones."""
    link = context.paths.toolchain_dir_path / "usr" / "lib" / "swift_static" / "clang"
    target = "../swift/clang"

    # The toolchain may already ship its own directory or link here
    if os.path.lexists(link) and not (
        link.is_symlink() and os.readlink(link) == target
    ):
        logger.debug(f"{link} already provides clang headers, leaving it in place")
        return

    create_symlink(link, target)


def fix_autolink_extract(context: GenerationContext) -> None:
    autolink_extract = context.paths.toolchain_bin_dir_path / "swift-autolink-extract"

    if not does_file_exist(autolink_extract):
        logger.info("Fixing `swift-autolink-extract` symlink...")
        create_symlink(autolink_extract, "swift")


def generate_manifests(context: GenerationContext) -> None:
    manifests = context.manifests
    toolset_path = manifests.generate_toolset_json()
    destination_path = manifests.generate_destination_json(toolset_path)
    bundle_manifest_path = manifests.generate_artifact_bundle_manifest()

    context.result = GenerationResult(
        artifact_id=context.paths.artifact_id,
        bundle_path=context.paths.artifact_bundle_path,
        toolset_path=toolset_path,
        destination_path=destination_path,
        bundle_manifest_path=bundle_manifest_path,
    )


def report_success(context: GenerationContext) -> None:
    print(f"\n{context.result.success_message}")


STAGES: Tuple[Stage, ...] = (
    Stage("clear state", clear_previous_state),
    Stage("create directories", create_directories),
    Stage("download artifacts", download_artifacts),
    Stage("ubuntu packages", install_ubuntu_packages),
    Stage("unpack host swift", unpack_host_swift),
    Stage("acquire target swift", acquire_target_swift),
    Stage("prepare linker", prepare_linker),
    Stage("fix symlinks", fix_sysroot_symlinks),
    Stage("fix glibc modulemap", fix_module_map),
    Stage("symlink clang headers", symlink_clang_headers),
    Stage("autolink extract", fix_autolink_extract),
    Stage("generate manifests", generate_manifests),
    Stage("report success", report_success),
)


# ============================================================================
# Generator
# ============================================================================


class SDKGenerator:
    """
    Run the generation stages against one HTTP client and cache engine.

    The client and the engine are opened before the first stage and closed
    on every exit path, including KeyboardInterrupt.

    Example:
        >>> generator = SDKGenerator(config, versions, paths)
        >>> result = generator.run()
        >>> print(result.install_command)
    """

    def __init__(
        self,
        config: GenerationConfig,
        versions: VersionsConfiguration,
        paths: PathsConfiguration,
        http_settings: Optional[HTTPSettings] = None,
        docker: Optional[DockerClient] = None,
        http_client_factory: Callable[[HTTPSettings], HTTPClient] = HTTPClient,
        engine_factory: Callable[[Path], CacheEngine] = CacheEngine,
        stages: Tuple[Stage, ...] = STAGES,
    ):
        self.config = config
        self.versions = versions
        self.paths = paths
        self.http_settings = http_settings or HTTPSettings()
        self.docker = docker
        self.http_client_factory = http_client_factory
        self.engine_factory = engine_factory
        self.stages = stages
        self.fetcher: Optional[ArtifactFetcher] = None

    @property
    def engine_cache_path(self) -> Path:
        if self.config.engine_cache_path is not None:
            return Path(self.config.engine_cache_path)
        return self.paths.artifacts_cache_path / "cache"

    def run(self) -> GenerationResult:
        """
        Generate the SDK.

        Returns:
            GenerationResult describing the bundle

        Raises:
            SDKGeneratorError: The first error raised by any stage
        """
        # Validated before any directory or network I/O
        strategy = select_acquisition_strategy(self.config, self.versions)
        logger.debug(f"Target acquisition strategy: {strategy}")

        engine = self.engine_factory(self.engine_cache_path)
        with engine, self.http_client_factory(self.http_settings) as client:
            self.fetcher = ArtifactFetcher(client, engine, self.docker)
            context = GenerationContext(
                config=self.config,
                versions=self.versions,
                paths=self.paths,
                strategy=strategy,
                fetcher=self.fetcher,
                engine=engine,
                unpacker=PackageUnpacker(self.paths),
                linker=LinkerProvisioner(engine, self.paths),
                manifests=ManifestGenerator(self.paths, self.versions.target_triple),
            )

            for stage in self.stages:
                logger.debug(f"Running stage: {stage.name}")
                stage.action(context)

        return context.result


def generate_sdk(
    config: GenerationConfig,
    versions: VersionsConfiguration,
    paths: PathsConfiguration,
    http_settings: Optional[HTTPSettings] = None,
) -> GenerationResult:
    """
    Generate a Swift SDK bundle.

    Example:
        >>> result = generate_sdk(config, versions, paths)
        >>> result.bundle_path
        PosixPath('/work/5.9-RELEASE_ubuntu_jammy_x86_64.artifactbundle')
    """
    return SDKGenerator(config, versions, paths, http_settings=http_settings).run()

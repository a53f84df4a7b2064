"""
Manifest documents describing a generated Swift SDK.

Three JSON files are written on every run, derived only from the path layout,
the target triple and the artifact ID:

    <sdk root>/toolset.json     : tools used when cross-compiling
    <sdk root>/swift-sdk.json   : sysroot and resource locations per triple
    <bundle>/info.json          : artifact bundle manifest
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict

from swiftsdkgen.core.filesystem import atomic_write
from swiftsdkgen.core.paths import PathsConfiguration
from swiftsdkgen.cross.targets import TargetTriple

logger = logging.getLogger(__name__)

TOOLSET_SCHEMA_VERSION = "1.0"
DESTINATION_SCHEMA_VERSION = "3.0"
BUNDLE_SCHEMA_VERSION = "1.0"

BUNDLE_ARTIFACT_VERSION = "0.0.1"


def _relative(path: Path, start: Path) -> str:
    return os.path.relpath(path, start)


def _write_json(path: Path, document: Dict[str, Any]) -> Path:
    atomic_write(path, json.dumps(document, indent=2, sort_keys=True) + "\n")
    logger.debug(f"Wrote {path}")
    return path


class ManifestGenerator:
    """
    Write the toolset, destination and bundle manifests.

    Each method overwrites its file unconditionally.

    Example:
        >>> manifests = ManifestGenerator(paths, target_triple)
        >>> toolset = manifests.generate_toolset_json()
        >>> manifests.generate_destination_json(toolset)
        >>> manifests.generate_artifact_bundle_manifest()
    """

    def __init__(self, paths: PathsConfiguration, target_triple: TargetTriple):
        self.paths = paths
        self.target_triple = target_triple

    @property
    def toolset_path(self) -> Path:
        return self.paths.swift_sdk_root_path / "toolset.json"

    @property
    def destination_path(self) -> Path:
        return self.paths.swift_sdk_root_path / "swift-sdk.json"

    @property
    def bundle_manifest_path(self) -> Path:
        return self.paths.artifact_bundle_path / "info.json"

    def generate_toolset_json(self) -> Path:
        """
        Write ``toolset.json``.

        ``rootPath`` is relative to the SDK root, so the bundle stays
        relocatable.

        Returns:
            Path of the written file
        """
        logger.info("Generating toolset JSON file...")

        extra_flags = {"extraCLIOptions": ["-use-ld=lld"]}
        document = {
            "schemaVersion": TOOLSET_SCHEMA_VERSION,
            "rootPath": _relative(
                self.paths.toolchain_bin_dir_path, self.paths.swift_sdk_root_path
            ),
            "swiftCompiler": extra_flags,
            "cCompiler": extra_flags,
            "cxxCompiler": extra_flags,
            "linker": {"path": "ld.lld"},
            "librarian": {"path": "llvm-ar"},
        }
        return _write_json(self.toolset_path, document)

    def generate_destination_json(self, toolset_path: Path) -> Path:
        """
        Write ``swift-sdk.json`` referencing the given toolset.

        Args:
            toolset_path: Path returned by :meth:`generate_toolset_json`

        Returns:
            Path of the written file
        """
        logger.info("Generating destination JSON file...")

        sdk_root = self.paths.swift_sdk_root_path
        toolchain_lib = self.paths.toolchain_dir_path / "usr" / "lib"
        document = {
            "schemaVersion": DESTINATION_SCHEMA_VERSION,
            "runTimeTriples": {
                str(self.target_triple): {
                    "sdkRootPath": _relative(self.paths.sdk_dir_path, sdk_root),
                    "swiftResourcesPath": _relative(toolchain_lib / "swift", sdk_root),
                    "swiftStaticResourcesPath": _relative(
                        toolchain_lib / "swift_static", sdk_root
                    ),
                    "toolsetPaths": [_relative(toolset_path, sdk_root)],
                }
            },
        }
        return _write_json(self.destination_path, document)

    def generate_artifact_bundle_manifest(self) -> Path:
        """
        Write the bundle's ``info.json`` with a single SDK variant.

        Returns:
            Path of the written file
        """
        logger.info("Generating .artifactbundle manifest file...")

        document = {
            "schemaVersion": BUNDLE_SCHEMA_VERSION,
            "artifacts": {
                self.paths.artifact_id: {
                    "type": "swiftSDK",
                    "version": BUNDLE_ARTIFACT_VERSION,
                    "variants": [
                        {
                            "path": _relative(
                                self.paths.swift_sdk_root_path,
                                self.paths.artifact_bundle_path,
                            )
                        }
                    ],
                }
            },
        }
        return _write_json(self.bundle_manifest_path, document)

"""YAML configuration parser for the Swift SDK generator.

This module provides parsing and validation for swift-sdk-gen.yaml files and
turns the resulting settings into the configuration objects the generation
pipeline runs on.
"""

from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from swiftsdkgen.core.download import HTTPSettings, RedirectPolicy
from swiftsdkgen.core.exceptions import ConfigFileError
from swiftsdkgen.core.paths import PathsConfiguration
from swiftsdkgen.cross.targets import (
    TargetTriple,
    detect_host_triple,
    parse_distribution,
)
from swiftsdkgen.generator.pipeline import GenerationConfig
from swiftsdkgen.generator.versions import VersionsConfiguration

DEFAULT_CONFIG_FILE = "swift-sdk-gen.yaml"

DEFAULT_SWIFT_VERSION = "5.9-RELEASE"
DEFAULT_LLD_VERSION = "16.0.5"
DEFAULT_DISTRIBUTION = ("ubuntu", "22.04")


@dataclass
class HTTPConfig:
    """HTTP client configuration."""

    timeout: int = 60
    max_redirects: int = 5
    head_not_found_hosts: List[str] = field(default_factory=lambda: ["github.com"])


@dataclass
class GeneratorSettings:
    """Complete generator configuration, before resolution."""

    version: int = 1
    source_root: str = "."
    artifact_id: Optional[str] = None
    target: Optional[str] = None  # default: host CPU, unknown-linux-gnu
    host: Optional[str] = None  # default: detected
    distribution_name: str = DEFAULT_DISTRIBUTION[0]
    distribution_version: str = DEFAULT_DISTRIBUTION[1]
    swift_version: str = DEFAULT_SWIFT_VERSION
    swift_branch: Optional[str] = None
    lld_version: str = DEFAULT_LLD_VERSION
    incremental: bool = False
    docker: bool = False
    base_docker_image: Optional[str] = None
    engine_cache_path: Optional[str] = None
    http: HTTPConfig = field(default_factory=HTTPConfig)

    def apply_overrides(self, **overrides: Any) -> "GeneratorSettings":
        """
        Replace settings with command line values.

        ``None`` values are ignored, so unset flags keep file values.
        """
        known = {f.name for f in fields(self)}
        for name, value in overrides.items():
            if name not in known:
                raise ConfigFileError(f"Unknown setting: {name}")
            if value is not None:
                setattr(self, name, value)
        return self

    def resolve(self) -> "ResolvedSettings":
        """
        Build the immutable objects the pipeline runs on.

        Raises:
            ConfigurationError: If a triple or distribution is invalid
        """
        host = TargetTriple.parse(self.host) if self.host else detect_host_triple()
        if self.target:
            target = TargetTriple.parse(self.target)
        else:
            target = TargetTriple(cpu=host.cpu)

        versions = VersionsConfiguration(
            swift_version=self.swift_version,
            lld_version=self.lld_version,
            linux_distribution=parse_distribution(
                self.distribution_name, self.distribution_version
            ),
            host_triple=host,
            target_triple=target,
            swift_branch=self.swift_branch,
            base_docker_image=self.base_docker_image,
        )

        artifact_id = self.artifact_id or versions.default_artifact_id
        try:
            paths = PathsConfiguration.compute(
                self.source_root, artifact_id, target, versions.linux_distribution
            )
        except ValueError as e:
            raise ConfigFileError(str(e)) from e

        engine_cache_path = None
        if self.engine_cache_path:
            engine_cache_path = paths.source_root / self.engine_cache_path

        config = GenerationConfig(
            artifact_id=artifact_id,
            engine_cache_path=engine_cache_path,
            is_incremental=self.incremental,
            should_use_docker=self.docker,
        )
        http_settings = HTTPSettings(
            timeout=self.http.timeout,
            redirects=RedirectPolicy(max_redirects=self.http.max_redirects),
            head_not_found_hosts=tuple(self.http.head_not_found_hosts),
        )

        return ResolvedSettings(config, versions, paths, http_settings)


@dataclass(frozen=True)
class ResolvedSettings:
    """Configuration objects handed to the generator."""

    config: GenerationConfig
    versions: VersionsConfiguration
    paths: PathsConfiguration
    http: HTTPSettings


def parse_config(config_path: Path) -> GeneratorSettings:
    """
    Parse a swift-sdk-gen.yaml configuration file.

    Args:
        config_path: Path to the configuration file

    Returns:
        Parsed and validated settings

    Raises:
        ConfigFileError: If configuration is invalid
    """
    config_path = Path(config_path)
    if not config_path.exists():
        raise ConfigFileError(f"Configuration file not found: {config_path}")

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigFileError(f"Invalid YAML syntax: {e}") from e

    if data is None:
        raise ConfigFileError("Configuration file is empty")
    if not isinstance(data, dict):
        raise ConfigFileError("Configuration must be a mapping")

    return _parse_and_validate(data)


def load_settings(config_path: Optional[Path] = None) -> GeneratorSettings:
    """
    Load settings from a file, or defaults when there is none.

    Without an explicit path, ``swift-sdk-gen.yaml`` in the working directory
    is used if it exists.
    """
    if config_path is not None:
        return parse_config(config_path)

    default = Path.cwd() / DEFAULT_CONFIG_FILE
    if default.exists():
        return parse_config(default)

    return GeneratorSettings()


_STRING_FIELDS = (
    "source_root",
    "artifact_id",
    "target",
    "host",
    "swift_version",
    "swift_branch",
    "lld_version",
    "base_docker_image",
    "engine_cache_path",
)
_BOOL_FIELDS = ("incremental", "docker")


def _parse_and_validate(data: Dict[str, Any]) -> GeneratorSettings:
    """Parse and validate configuration data."""
    if "version" not in data:
        raise ConfigFileError("Missing required field: version")

    if data["version"] != 1:
        raise ConfigFileError(f"Unsupported version: {data['version']} (expected 1)")

    known = set(_STRING_FIELDS) | set(_BOOL_FIELDS) | {"version", "distribution", "http"}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigFileError(f"Unknown configuration keys: {', '.join(unknown)}")

    settings = GeneratorSettings()

    for name in _STRING_FIELDS:
        value = data.get(name)
        if value is None:
            continue
        # YAML reads unquoted versions such as 16.0 as numbers
        if not isinstance(value, (str, int, float)):
            raise ConfigFileError(f"'{name}' must be a string")
        setattr(settings, name, str(value))

    for name in _BOOL_FIELDS:
        if name in data:
            if not isinstance(data[name], bool):
                raise ConfigFileError(f"'{name}' must be true or false")
            setattr(settings, name, data[name])

    if "distribution" in data:
        settings.distribution_name, settings.distribution_version = (
            _parse_distribution(data["distribution"])
        )

    if "http" in data:
        settings.http = _parse_http_config(data["http"])

    return settings


def _parse_distribution(data: Any) -> tuple:
    if not isinstance(data, dict):
        raise ConfigFileError("'distribution' must be a mapping with name and version")

    if "name" not in data or "version" not in data:
        raise ConfigFileError("Distribution must have 'name' and 'version'")

    return str(data["name"]), str(data["version"])


def _parse_http_config(data: Any) -> HTTPConfig:
    if not isinstance(data, dict):
        raise ConfigFileError("'http' must be a mapping")

    http = HTTPConfig()

    for name in ("timeout", "max_redirects"):
        if name in data:
            value = data[name]
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise ConfigFileError(f"http.{name} must be a non-negative integer")
            setattr(http, name, value)

    if "head_not_found_hosts" in data:
        hosts = data["head_not_found_hosts"]
        if not isinstance(hosts, list) or not all(isinstance(h, str) for h in hosts):
            raise ConfigFileError("http.head_not_found_hosts must be a list of hosts")
        http.head_not_found_hosts = hosts

    return http

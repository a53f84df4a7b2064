"""
Core functionality for the Swift SDK generator.

This package contains the foundational modules that other components depend on.
"""

from .cache_engine import (
    Artifact,
    CacheEngine,
    CacheKey,
    cache_key,
)

from .download import (
    HTTPClient,
    HTTPSettings,
    RedirectPolicy,
    http_client,
)

from .exceptions import (
    SDKGeneratorError,
    ConfigurationError,
    DistributionSupportsOnlyDockerGeneratorError,
    UnsupportedCPUError,
    UnsupportedDistributionError,
    ConfigFileError,
    FetchError,
    ArtifactNotFoundError,
    RedirectCycleError,
    TooManyRedirectsError,
    ImageCopyError,
    MissingPackagesError,
    FilesystemError,
    PathIsNotDirectoryError,
    SymlinkConflictError,
    ModuleMapNotFoundError,
    UnpackError,
    UnsupportedArchiveFormat,
    InsecureArchiveError,
    CacheEngineError,
    CacheLockTimeout,
)

__all__ = [
    # Cache engine
    "Artifact",
    "CacheEngine",
    "CacheKey",
    "cache_key",
    # HTTP
    "HTTPClient",
    "HTTPSettings",
    "RedirectPolicy",
    "http_client",
    # Exceptions
    "SDKGeneratorError",
    "ConfigurationError",
    "DistributionSupportsOnlyDockerGeneratorError",
    "UnsupportedCPUError",
    "UnsupportedDistributionError",
    "ConfigFileError",
    "FetchError",
    "ArtifactNotFoundError",
    "RedirectCycleError",
    "TooManyRedirectsError",
    "ImageCopyError",
    "MissingPackagesError",
    "FilesystemError",
    "PathIsNotDirectoryError",
    "SymlinkConflictError",
    "ModuleMapNotFoundError",
    "UnpackError",
    "UnsupportedArchiveFormat",
    "InsecureArchiveError",
    "CacheEngineError",
    "CacheLockTimeout",
]

"""
Centralized exception hierarchy for the Swift SDK generator.

Every component raises a subclass of SDKGeneratorError so the pipeline can
surface the first failure unchanged to its caller.
"""


# ============================================================================
# Base Exceptions
# ============================================================================


class SDKGeneratorError(Exception):
    """Base exception for all Swift SDK generator errors."""

    pass


# ============================================================================
# Configuration Exceptions
# ============================================================================


class ConfigurationError(SDKGeneratorError):
    """Base exception for invalid generator configuration."""

    pass


class DistributionSupportsOnlyDockerGeneratorError(ConfigurationError):
    """Raised when a distribution without a package list is requested without Docker."""

    def __init__(self, distribution):
        self.distribution = distribution
        super().__init__(
            f"Target distribution {distribution} can only be generated from a "
            "Docker image, pass --with-docker to use it"
        )


class UnsupportedCPUError(ConfigurationError):
    """Raised when a CPU name has no supported counterpart."""

    def __init__(self, cpu: str):
        self.cpu = cpu
        super().__init__(f"Unsupported CPU: {cpu} (supported: arm64, x86_64)")


class UnsupportedDistributionError(ConfigurationError):
    """Raised when a Linux distribution or release is not known."""

    pass


class ConfigFileError(ConfigurationError):
    """Configuration file parsing or validation error."""

    pass


# ============================================================================
# Fetch Exceptions
# ============================================================================


class FetchError(SDKGeneratorError):
    """Base exception for artifact retrieval errors."""

    pass


class ArtifactNotFoundError(FetchError):
    """Raised when a remote artifact does not exist."""

    def __init__(self, url: str, status_code: int):
        self.url = url
        self.status_code = status_code
        super().__init__(f"Artifact not found (HTTP {status_code}): {url}")


class RedirectCycleError(FetchError):
    """Raised when a redirect chain visits the same URL twice."""

    pass


class TooManyRedirectsError(FetchError):
    """Raised when a redirect chain exceeds the configured hop limit."""

    pass


class ImageCopyError(FetchError):
    """Raised when copying files out of a container image fails."""

    pass


class MissingPackagesError(FetchError):
    """Raised when required OS packages are absent from the package index."""

    def __init__(self, packages):
        self.packages = sorted(packages)
        super().__init__(
            f"Packages not found in distribution index: {', '.join(self.packages)}"
        )


# ============================================================================
# Filesystem Exceptions
# ============================================================================


class FilesystemError(SDKGeneratorError):
    """Base exception for filesystem operations."""

    pass


class PathIsNotDirectoryError(FilesystemError):
    """Raised when a managed directory path is occupied by something else."""

    def __init__(self, path):
        self.path = path
        super().__init__(f"Path exists and is not a directory: {path}")


class SymlinkConflictError(FilesystemError):
    """Raised when a symlink cannot be created because the path is taken."""

    pass


class ModuleMapNotFoundError(FilesystemError):
    """Raised when the target's glibc module map is missing."""

    def __init__(self, path):
        self.path = path
        super().__init__(f"Module map does not exist: {path}")


# ============================================================================
# Unpack Exceptions
# ============================================================================


class UnpackError(SDKGeneratorError):
    """Failed to extract an archive or found an unexpected layout."""

    pass


class UnsupportedArchiveFormat(UnpackError):
    """Archive format is not supported."""

    pass


class InsecureArchiveError(UnpackError):
    """Archive contains insecure paths (directory traversal attempt)."""

    pass


# ============================================================================
# Cache Engine Exceptions
# ============================================================================


class CacheEngineError(SDKGeneratorError):
    """Base exception for build cache engine errors."""

    pass


class CacheLockTimeout(CacheEngineError):
    """Raised when the cache lock cannot be acquired within timeout."""

    pass

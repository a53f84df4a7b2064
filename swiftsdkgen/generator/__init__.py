"""
Swift SDK generation: artifact retrieval, unpacking, fixups and manifests.
"""

from .pipeline import (
    GenerationConfig,
    GenerationResult,
    SDKGenerator,
    generate_sdk,
)
from .versions import VersionsConfiguration

__all__ = [
    "GenerationConfig",
    "GenerationResult",
    "SDKGenerator",
    "VersionsConfiguration",
    "generate_sdk",
]

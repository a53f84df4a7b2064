"""
Configuration file support.
"""

from .parser import (
    DEFAULT_CONFIG_FILE,
    GeneratorSettings,
    HTTPConfig,
    ResolvedSettings,
    load_settings,
    parse_config,
)

__all__ = [
    "DEFAULT_CONFIG_FILE",
    "GeneratorSettings",
    "HTTPConfig",
    "ResolvedSettings",
    "load_settings",
    "parse_config",
]

"""
Swift SDK generator.

Builds cross-compilation Swift SDK bundles from a host Swift toolchain, a
target Linux sysroot and the LLD linker.
"""

__version__ = "0.1.0"

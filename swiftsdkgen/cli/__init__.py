"""
Swift SDK generator CLI module.
"""

from .parser import CLI, main
from . import utils

__all__ = ["CLI", "main", "utils"]

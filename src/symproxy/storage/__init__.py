"""Storage layer: key layout and local symbol store."""

from .cache import SymbolStore
from .layout import InvalidKeyError, ResolvedPaths, parse_key, resolve

__all__ = ["InvalidKeyError", "ResolvedPaths", "SymbolStore", "parse_key", "resolve"]

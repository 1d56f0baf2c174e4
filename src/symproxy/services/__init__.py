"""Upstream fetching and cache orchestration."""

from .symbol_cache import SymbolCache, SymbolNotFoundError
from .upstream import UpstreamFetcher

__all__ = ["SymbolCache", "SymbolNotFoundError", "UpstreamFetcher"]

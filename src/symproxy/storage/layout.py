"""Mapping of symbol keys to storage and upstream paths.

Both layouts follow the symbol server convention ``{name}/{hash}/{name}``.
The on-disk layout is relied upon by external tools that pre-populate or
inspect the cache, so it must not change.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import quote

from ..models import SymbolKey

FORBIDDEN_CHARS = frozenset("/\\\x00")


class InvalidKeyError(ValueError):
    """Raised when a name or hash is not a safe path segment."""

    pass


@dataclass(frozen=True)
class ResolvedPaths:
    """Relative locations for a symbol key.

    Attributes:
        local_rel: Path relative to the storage root
        upstream_rel: URL path relative to the upstream base address
    """

    local_rel: Path
    upstream_rel: str


def validate_segment(value: str, field: str = "segment") -> str:
    """Check that a value can be used as a single path segment.

    Args:
        value: Name or hash supplied by the caller
        field: Field name used in the error message

    Returns:
        The unchanged value

    Raises:
        InvalidKeyError: If the value is empty, a dot segment, or contains
            a separator or control character
    """
    if not value:
        raise InvalidKeyError(f"Empty {field}")
    if value in (".", ".."):
        raise InvalidKeyError(f"Invalid {field}: {value!r}")
    for ch in value:
        if ch in FORBIDDEN_CHARS or ord(ch) < 0x20 or ord(ch) == 0x7F:
            raise InvalidKeyError(f"Invalid character in {field}: {value!r}")
    return value


def parse_key(name: str, hash: str) -> SymbolKey:
    """Build a validated SymbolKey.

    Raises:
        InvalidKeyError: If either part is unsafe
    """
    return SymbolKey(
        name=validate_segment(name, "name"),
        hash=validate_segment(hash, "hash"),
    )


def resolve(key: SymbolKey) -> ResolvedPaths:
    """Resolve a key into its local and upstream relative paths."""
    local_rel = Path(key.name) / key.hash / key.name
    upstream_rel = "/".join(quote(part, safe="") for part in (key.name, key.hash, key.name))
    return ResolvedPaths(local_rel=local_rel, upstream_rel=upstream_rel)


def local_path(root: Path, key: SymbolKey) -> Path:
    """Absolute location of a key under the storage root.

    The containment check is lexical, so entries that are symlinks to
    files elsewhere (e.g. a deduplicated blob store) are still served.

    Raises:
        InvalidKeyError: If the normalized path escapes the root
    """
    base = storage_root(root)
    candidate = Path(os.path.normpath(base / resolve(key).local_rel))
    if not candidate.is_relative_to(base) or candidate == base:
        raise InvalidKeyError(f"Key resolves outside storage root: {key}")
    return candidate


def upstream_url(base_url: str, key: SymbolKey) -> str:
    """Full upstream URL for a key."""
    return f"{base_url.rstrip('/')}/{resolve(key).upstream_rel}"


def storage_root(root: Path) -> Path:
    """Absolute, normalized storage root without following symlinks."""
    return Path(os.path.abspath(root))

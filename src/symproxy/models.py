"""Data types shared by the storage, fetch and routing layers."""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional


class FetchErrorKind(str, Enum):
    """Internal failure kinds for an upstream fetch."""

    UPSTREAM_UNREACHABLE = "upstream_unreachable"
    UPSTREAM_NOT_FOUND = "upstream_not_found"
    UPSTREAM_ERROR = "upstream_error"
    LOCAL_WRITE_ERROR = "local_write_error"


@dataclass(frozen=True)
class SymbolKey:
    """Identity of a symbol file.

    Attributes:
        name: File name, e.g. "ntdll.pdb"
        hash: Signature/age string identifying the build
    """

    name: str
    hash: str

    def __str__(self) -> str:
        return f"{self.name}/{self.hash}"


@dataclass
class FetchResult:
    """Outcome of a single upstream fetch.

    Attributes:
        success: True when the full body was written to the destination
        bytes_written: Number of bytes persisted
        error_kind: Failure classification (None on success)
        status_code: Upstream HTTP status, when a response was received
        detail: Human readable diagnostic, for logs only
    """

    success: bool
    bytes_written: int = 0
    error_kind: Optional[FetchErrorKind] = None
    status_code: Optional[int] = None
    detail: str = ""

    @classmethod
    def ok(cls, bytes_written: int, status_code: int = 200) -> "FetchResult":
        return cls(success=True, bytes_written=bytes_written, status_code=status_code)

    @classmethod
    def failed(
        cls,
        error_kind: FetchErrorKind,
        detail: str = "",
        status_code: Optional[int] = None,
    ) -> "FetchResult":
        return cls(
            success=False,
            error_kind=error_kind,
            status_code=status_code,
            detail=detail,
        )


@dataclass
class SymbolFile:
    """A symbol file available in the local store.

    Attributes:
        key: Symbol identity
        path: Absolute path of the cached file
        size_bytes: File size in bytes
        from_cache: True if served without contacting upstream
    """

    key: SymbolKey
    path: Path
    size_bytes: int
    from_cache: bool

    def read_bytes(self) -> bytes:
        """Read the whole file."""
        return self.path.read_bytes()


@dataclass
class CacheStats:
    """Summary of the storage root contents."""

    entries: int = 0
    size_bytes: int = 0

    @property
    def size_mb(self) -> float:
        return self.size_bytes / (1024 * 1024)

"""Local symbol store rooted at the cache directory."""

import logging
from pathlib import Path

from ..models import CacheStats, SymbolKey
from .layout import local_path, storage_root

logger = logging.getLogger(__name__)

TEMP_SUFFIX = ".part"


class SymbolStore:
    """Files under ``root/{name}/{hash}/{name}``.

    The store never writes symbol content itself; downloads land through
    the upstream fetcher. It answers existence checks, removes files left
    behind by failed fetches, and reports what is cached.
    """

    def __init__(self, root: Path):
        """Initialize the store.

        Args:
            root: Storage root directory
        """
        self.root = Path(root)

    def ensure_root(self) -> None:
        """Create the storage root if needed."""
        self.root.mkdir(parents=True, exist_ok=True)

    def path_for(self, key: SymbolKey) -> Path:
        """Absolute path for a key.

        Raises:
            InvalidKeyError: If the key escapes the storage root
        """
        return local_path(self.root, key)

    def exists(self, key: SymbolKey) -> bool:
        """Check whether a symbol is cached.

        Any condition preventing confirmation (missing file, permission
        error) counts as not cached.
        """
        try:
            return self.path_for(key).is_file()
        except OSError as e:
            logger.debug(f"Existence check failed for {key}: {e}")
            return False

    def discard(self, key: SymbolKey) -> None:
        """Remove the file for a key and its empty parent directories.

        Best effort: failures are logged, never raised.
        """
        path = self.path_for(key)
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning(f"Failed to remove {path}: {e}")
            return

        root = storage_root(self.root)
        parent = path.parent
        while parent != root and parent.is_relative_to(root):
            try:
                parent.rmdir()
            except OSError:
                break
            parent = parent.parent

    def stats(self) -> CacheStats:
        """Count cached symbol files and their total size."""
        stats = CacheStats()
        if not self.root.exists():
            return stats

        for path in self.root.glob("*/*/*"):
            if path.name.endswith(TEMP_SUFFIX) or path.name.startswith("."):
                continue
            # Only files matching the {name}/{hash}/{name} layout are entries
            if not path.is_file() or path.name != path.parent.parent.name:
                continue
            stats.entries += 1
            stats.size_bytes += path.stat().st_size

        return stats

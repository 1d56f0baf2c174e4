"""Cache-and-fetch orchestration for symbol requests."""

import asyncio
import logging
from typing import TYPE_CHECKING, Dict, Optional

import httpx

from ..models import FetchErrorKind, FetchResult, SymbolFile, SymbolKey
from ..storage.cache import SymbolStore
from ..storage.layout import parse_key
from .upstream import UpstreamFetcher

if TYPE_CHECKING:
    from ..config import Settings

logger = logging.getLogger(__name__)


class SymbolNotFoundError(Exception):
    """Raised when a symbol is neither cached nor obtainable upstream.

    Attributes:
        key: The requested symbol
        kind: Internal failure kind, for diagnostics only
    """

    def __init__(self, key: SymbolKey, kind: Optional[FetchErrorKind] = None):
        super().__init__(f"Symbol not found: {key}")
        self.key = key
        self.kind = kind


class SymbolCache:
    """Serves symbol files from the local store, fetching misses upstream.

    At most one upstream fetch runs per key. Concurrent requests for a key
    that is being fetched wait on the same task and observe the same
    outcome. A requester that goes away does not cancel the fetch; it runs
    to completion so the next request is a cache hit.
    """

    def __init__(self, store: SymbolStore, fetcher: UpstreamFetcher):
        """Initialize the cache.

        Args:
            store: Local symbol store
            fetcher: Upstream fetcher
        """
        self.store = store
        self.fetcher = fetcher
        self._inflight: Dict[SymbolKey, asyncio.Task] = {}

    @classmethod
    def from_settings(
        cls, settings: "Settings", transport: Optional[httpx.AsyncBaseTransport] = None
    ) -> "SymbolCache":
        """Build a cache from service settings.

        Args:
            settings: Service settings
            transport: Optional httpx transport for the upstream client

        Returns:
            Configured SymbolCache
        """
        store = SymbolStore(settings.CACHE_DIR)
        store.ensure_root()
        fetcher = UpstreamFetcher(
            settings.UPSTREAM_URL,
            timeout=settings.UPSTREAM_TIMEOUT,
            deadline=settings.UPSTREAM_DEADLINE,
            chunk_size=settings.CHUNK_SIZE,
            user_agent=settings.USER_AGENT,
            transport=transport,
        )
        return cls(store, fetcher)

    @property
    def inflight_count(self) -> int:
        """Number of upstream fetches currently running."""
        return len(self._inflight)

    async def serve(self, name: str, hash: str) -> SymbolFile:
        """Return the cached file for a symbol, fetching it on a miss.

        Args:
            name: Symbol file name
            hash: Symbol hash

        Returns:
            SymbolFile pointing at the cached copy

        Raises:
            InvalidKeyError: If name or hash is not a safe path segment
            SymbolNotFoundError: If the symbol cannot be obtained
        """
        key = parse_key(name, hash)
        path = self.store.path_for(key)

        if self.store.exists(key):
            try:
                size = path.stat().st_size
            except OSError as e:
                # Removed between the existence check and the stat: treat as a miss
                logger.debug(f"Cached file vanished for {key}: {e}")
            else:
                logger.debug(f"Cache hit: {key}")
                return SymbolFile(key=key, path=path, size_bytes=size, from_cache=True)

        # No await between the existence check and the lookup: a fetch that completed
        # in the meantime has already put its file in place.
        task = self._inflight.get(key)
        if task is None:
            logger.info(f"Cache miss: {key}")
            task = asyncio.create_task(self._fill(key), name=f"fetch:{key}")
            self._inflight[key] = task
        else:
            logger.debug(f"Joining in-flight fetch: {key}")

        result: FetchResult = await asyncio.shield(task)
        if not result.success:
            raise SymbolNotFoundError(key, result.error_kind)

        return SymbolFile(key=key, path=path, size_bytes=result.bytes_written, from_cache=False)

    async def _fill(self, key: SymbolKey) -> FetchResult:
        """Fetch one key into the store, cleaning up on failure."""
        try:
            path = self.store.path_for(key)
            url = self.fetcher.url_for(key)
            result = await self.fetcher.fetch(url, path)

            if result.success:
                logger.info(f"Cached {key} ({result.bytes_written} bytes)")
            else:
                logger.warning(
                    f"Fetch failed for {key}: {result.error_kind.value} "
                    f"(status={result.status_code}) {result.detail}"
                )
                self.store.discard(key)
            return result
        finally:
            if self._inflight.get(key) is asyncio.current_task():
                del self._inflight[key]

    async def aclose(self) -> None:
        """Cancel outstanding fetches and release the HTTP client."""
        tasks = list(self._inflight.values())
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        await self.fetcher.aclose()

"""Shared fixtures for symproxy tests."""

from pathlib import Path

import httpx
import pytest

from symproxy.services.symbol_cache import SymbolCache
from symproxy.services.upstream import UpstreamFetcher
from symproxy.storage.cache import SymbolStore

UPSTREAM_BASE = "https://example.test/syms"


class FakeUpstream:
    """In-memory symbol server for httpx.MockTransport.

    Attributes:
        files: Mapping of URL path to body
        requests: Every request received, in order
    """

    def __init__(self):
        self.files: dict[str, bytes] = {}
        self.statuses: dict[str, int] = {}
        self.requests: list[httpx.Request] = []

    def add(self, name: str, hash: str, body: bytes) -> None:
        """Serve ``body`` for a symbol key."""
        self.files[f"/syms/{name}/{hash}/{name}"] = body

    def fail(self, name: str, hash: str, status: int) -> None:
        """Answer requests for a symbol key with an error status."""
        self.statuses[f"/syms/{name}/{hash}/{name}"] = status

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path in self.statuses:
            return httpx.Response(self.statuses[path])
        if path in self.files:
            return httpx.Response(200, content=self.files[path])
        return httpx.Response(404)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def cache_root(tmp_path) -> Path:
    """Temporary storage root."""
    root = tmp_path / "cache"
    root.mkdir()
    return root


@pytest.fixture
def upstream() -> FakeUpstream:
    """Fake upstream symbol server."""
    return FakeUpstream()


@pytest.fixture
def store(cache_root) -> SymbolStore:
    """SymbolStore over the temporary root."""
    return SymbolStore(cache_root)


@pytest.fixture
def symbol_cache(store, upstream) -> SymbolCache:
    """SymbolCache wired to the fake upstream."""
    fetcher = UpstreamFetcher(UPSTREAM_BASE, transport=upstream.transport)
    return SymbolCache(store, fetcher)

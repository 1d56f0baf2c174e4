"""Tests for FastAPI endpoints."""

from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from symproxy.main import app, symbol_path_hint
from symproxy.routes.symbols import set_symbol_cache


@pytest.fixture
def client(symbol_cache):
    """Create a test client backed by the fake upstream."""
    set_symbol_cache(symbol_cache)
    yield TestClient(app)
    set_symbol_cache(None)


@pytest.fixture(autouse=True)
def mock_settings():
    """Mock settings referenced by the info and health endpoints."""
    with patch("symproxy.main.settings", UPSTREAM_URL="https://example.test/syms"):
        with patch(
            "symproxy.routes.health.settings",
            UPSTREAM_URL="https://example.test/syms",
            UPSTREAM_TIMEOUT=30.0,
        ):
            yield


class TestSymbolEndpoint:
    """Test the symbol download endpoint."""

    def test_miss_then_hit(self, client, upstream, cache_root):
        """Test a miss is fetched and the repeat is served locally."""
        upstream.add("foo.pdb", "ABCDEF123", b"symbol bytes")

        response = client.get("/download/symbols/foo.pdb/ABCDEF123/foo.pdb")

        assert response.status_code == 200
        assert response.content == b"symbol bytes"
        assert response.headers["content-type"] == "application/octet-stream"
        assert response.headers["x-symbol-cache"] == "miss"

        response = client.get("/download/symbols/foo.pdb/ABCDEF123/foo.pdb")

        assert response.status_code == 200
        assert response.content == b"symbol bytes"
        assert response.headers["x-symbol-cache"] == "hit"
        assert len(upstream.requests) == 1
        assert (cache_root / "foo.pdb" / "ABCDEF123" / "foo.pdb").exists()

    def test_prepopulated_file(self, client, upstream, cache_root):
        """Test files placed by external tools are served as-is."""
        path = cache_root / "ntdll.pdb" / "1234" / "ntdll.pdb"
        path.parent.mkdir(parents=True)
        path.write_bytes(b"from disk")

        response = client.get("/download/symbols/ntdll.pdb/1234/ntdll.pdb")

        assert response.status_code == 200
        assert response.content == b"from disk"
        assert upstream.requests == []

    def test_upstream_not_found(self, client, cache_root):
        """Test upstream 404 becomes a 404 with no file left behind."""
        response = client.get("/download/symbols/bar.pdb/000/bar.pdb")

        assert response.status_code == 404
        assert not (cache_root / "bar.pdb" / "000" / "bar.pdb").exists()

    def test_upstream_error_hides_detail(self, client, upstream):
        """Test upstream errors are reported as a plain 404."""
        upstream.fail("bar.pdb", "000", 500)

        response = client.get("/download/symbols/bar.pdb/000/bar.pdb")

        assert response.status_code == 404
        assert "500" not in response.text

    def test_mismatched_file_name(self, client, upstream):
        """Test the trailing segment must repeat the name."""
        upstream.add("foo.pdb", "ABC", b"x")

        response = client.get("/download/symbols/foo.pdb/ABC/other.pdb")

        assert response.status_code == 404
        assert upstream.requests == []

    def test_invalid_key(self, client, upstream):
        """Test unsafe segments are rejected without upstream access."""
        response = client.get("/download/symbols/..%5C..%5Cx/ABC/..%5C..%5Cx")

        assert response.status_code == 404
        assert upstream.requests == []

    def test_unknown_route(self, client):
        """Test other paths return 404."""
        response = client.get("/download/other")

        assert response.status_code == 404

    def test_cache_not_initialized(self):
        """Test a 500 when the cache was never set."""
        set_symbol_cache(None)

        response = TestClient(app).get("/download/symbols/foo.pdb/ABC/foo.pdb")

        assert response.status_code == 500


class TestInfoEndpoints:
    """Test root and health endpoints."""

    def test_root_endpoint(self, client):
        """Test root returns service info and symbol path hint."""
        response = client.get("/")

        assert response.status_code == 200
        data = response.json()
        assert data["message"] == "Symbol Proxy"
        assert "version" in data
        assert data["upstream"] == "https://example.test/syms"
        assert data["symbol_path"] == "srv*C:\\Symbols*http://testserver/download/symbols"

    def test_health_check(self, client, upstream, cache_root):
        """Test health reports cache and upstream state."""
        upstream.add("foo.pdb", "ABC", b"12345")
        client.get("/download/symbols/foo.pdb/ABC/foo.pdb")

        response = client.get("/api/v1/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["services"]["cache"]["entries"] == 1
        assert data["services"]["cache"]["size_bytes"] == 5
        assert data["services"]["upstream"]["status"] == "configured"
        assert data["services"]["upstream"]["inflight"] == 0
        assert not (cache_root / ".health_check").exists()

    def test_health_without_cache(self):
        """Test health is degraded before startup completes."""
        set_symbol_cache(None)

        data = TestClient(app).get("/api/v1/health").json()

        assert data["status"] == "degraded"
        assert data["services"]["cache"]["status"] == "not_initialized"


class TestSymbolPathHint:
    """Test the debugger configuration hint."""

    def test_trailing_slash(self):
        """Test trailing slash on the base URL is dropped."""
        assert symbol_path_hint("http://proxy:8080/") == (
            "srv*C:\\Symbols*http://proxy:8080/download/symbols"
        )

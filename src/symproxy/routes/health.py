"""Health check endpoint."""

import asyncio
import logging

from fastapi import APIRouter

from .. import __version__
from ..config import settings
from .symbols import get_symbol_cache

logger = logging.getLogger(__name__)
router = APIRouter()


def check_cache_access() -> dict:
    """Check if the storage root is writable.

    Returns:
        Status dictionary
    """
    cache = get_symbol_cache()
    if cache is None:
        return {"status": "not_initialized"}

    try:
        cache.store.ensure_root()
        test_file = cache.store.root / ".health_check"
        test_file.write_text("ok")
        test_file.unlink()
        stats = cache.store.stats()
        return {
            "status": "healthy",
            "path": str(cache.store.root),
            "entries": stats.entries,
            "size_bytes": stats.size_bytes,
        }
    except OSError as e:
        logger.warning(f"Cache health check failed: {e}")
        return {"status": "unhealthy", "path": str(cache.store.root), "error": str(e)}


def check_upstream() -> dict:
    """Report upstream configuration and in-flight fetches.

    Returns:
        Status dictionary
    """
    cache = get_symbol_cache()
    if not settings.UPSTREAM_URL:
        return {"status": "not_configured"}
    return {
        "status": "configured",
        "url": settings.UPSTREAM_URL,
        "timeout_seconds": settings.UPSTREAM_TIMEOUT,
        "inflight": cache.inflight_count if cache else 0,
    }


@router.get("/health")
async def health_check() -> dict:
    """Health check endpoint.

    Returns:
        Service health status
    """
    loop = asyncio.get_running_loop()
    cache_status = await loop.run_in_executor(None, check_cache_access)
    return {
        "status": "healthy" if cache_status["status"] == "healthy" else "degraded",
        "version": __version__,
        "services": {
            "cache": cache_status,
            "upstream": check_upstream(),
        },
    }

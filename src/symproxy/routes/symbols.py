"""Symbol download endpoint."""

import logging
from typing import TYPE_CHECKING, Optional

from fastapi import APIRouter, HTTPException
from fastapi.responses import FileResponse

from ..services.symbol_cache import SymbolNotFoundError
from ..storage.layout import InvalidKeyError

if TYPE_CHECKING:
    from ..services.symbol_cache import SymbolCache

logger = logging.getLogger(__name__)
router = APIRouter()

SYMBOL_PREFIX = "/download/symbols"

# Global symbol cache reference - set in main.py
symbol_cache: Optional["SymbolCache"] = None


def set_symbol_cache(cache: Optional["SymbolCache"]) -> None:
    """Set the global symbol cache reference.

    Args:
        cache: SymbolCache instance, or None to clear
    """
    global symbol_cache
    symbol_cache = cache


def get_symbol_cache() -> Optional["SymbolCache"]:
    """Return the current symbol cache."""
    return symbol_cache


@router.get(SYMBOL_PREFIX + "/{name}/{hash}/{file_name}")
async def download_symbol(name: str, hash: str, file_name: str) -> FileResponse:
    """Serve a symbol file, fetching it upstream on a cache miss.

    Args:
        name: Symbol file name
        hash: Symbol hash
        file_name: Trailing file name, must equal ``name``

    Returns:
        The symbol file as an octet stream

    Raises:
        HTTPException: 404 if the symbol is unavailable or the path is malformed
    """
    if symbol_cache is None:
        raise HTTPException(500, "Symbol cache not initialized")

    if file_name != name:
        raise HTTPException(404, "Symbol not found")

    try:
        symbol = await symbol_cache.serve(name, hash)
    except InvalidKeyError as e:
        logger.warning(f"Rejected symbol request: {e}")
        raise HTTPException(404, "Symbol not found")
    except SymbolNotFoundError:
        raise HTTPException(404, "Symbol not found")

    return FileResponse(
        symbol.path,
        media_type="application/octet-stream",
        filename=symbol.key.name,
        headers={"X-Symbol-Cache": "hit" if symbol.from_cache else "miss"},
    )

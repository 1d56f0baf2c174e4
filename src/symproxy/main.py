"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request

from . import __version__
from .config import settings
from .routes import health, symbols
from .routes.symbols import SYMBOL_PREFIX, set_symbol_cache
from .services.symbol_cache import SymbolCache

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    """Configure root logging for the service.

    Args:
        level: Log level name (e.g. "INFO")
    """
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def symbol_path_hint(base_url: str) -> str:
    """Value of _NT_SYMBOL_PATH that points a debugger at this proxy.

    Args:
        base_url: Externally visible base URL of the service

    Returns:
        Symbol path string using a local downstream store at C:\\Symbols
    """
    return f"srv*C:\\Symbols*{base_url.rstrip('/')}{SYMBOL_PREFIX}"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifespan.

    Args:
        app: FastAPI application

    Yields:
        None
    """
    # Startup
    cache = SymbolCache.from_settings(settings)
    set_symbol_cache(cache)
    logger.info(
        f"Symbol proxy ready: cache={settings.CACHE_DIR} upstream={settings.UPSTREAM_URL}"
    )

    yield

    # Shutdown
    logger.info("Symbol proxy shutting down")
    set_symbol_cache(None)
    await cache.aclose()


app = FastAPI(
    title="Symbol Proxy",
    version=__version__,
    lifespan=lifespan,
)

app.include_router(symbols.router)
app.include_router(health.router, prefix="/api/v1")


@app.get("/")
async def root(request: Request) -> dict:
    """Root endpoint.

    Returns:
        Service info and debugger configuration hint
    """
    return {
        "message": "Symbol Proxy",
        "version": __version__,
        "upstream": settings.UPSTREAM_URL,
        "symbol_path": symbol_path_hint(str(request.base_url)),
        "endpoint": f"{SYMBOL_PREFIX}/{{name}}/{{hash}}/{{name}}",
    }


def main() -> None:
    """Entry point for running the service directly."""
    import uvicorn

    configure_logging(settings.LOG_LEVEL)
    uvicorn.run(
        app,
        host=settings.HOST,
        port=settings.PORT,
        reload=False,
    )


if __name__ == "__main__":
    main()

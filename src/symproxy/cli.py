"""Command line interface for symproxy.

Provides a Typer-based CLI to run the proxy server and to inspect or
pre-populate the local symbol store.
"""

import asyncio
from datetime import datetime
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel

from symproxy import __version__
from symproxy.config import settings
from symproxy.models import SymbolFile
from symproxy.services.symbol_cache import SymbolCache, SymbolNotFoundError
from symproxy.storage.cache import SymbolStore
from symproxy.storage.layout import InvalidKeyError

console = Console()

app = typer.Typer(
    name="symproxy",
    help="Pass-through cache for debug symbol files",
    rich_markup_mode="rich",
)


def version_callback(value: bool) -> None:
    """Callback for --version flag."""
    if value:
        console.print(f"symproxy version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit",
        callback=version_callback,
        is_eager=True,
    ),
) -> None:
    """symproxy: cache symbol files from an upstream symbol server.

    ## Commands

    * [bold cyan]serve[/bold cyan] - Run the proxy server
    * [bold cyan]fetch[/bold cyan] - Pre-populate the cache with one symbol
    * [bold cyan]stats[/bold cyan] - Show cache size
    * [bold cyan]config[/bold cyan] - Show effective configuration
    """
    pass


def apply_overrides(
    cache_dir: Optional[Path] = None,
    upstream: Optional[str] = None,
    timeout: Optional[float] = None,
) -> None:
    """Apply command line overrides to the global settings."""
    if cache_dir is not None:
        settings.CACHE_DIR = cache_dir
    if upstream is not None:
        settings.UPSTREAM_URL = upstream
    if timeout is not None:
        settings.UPSTREAM_TIMEOUT = timeout


def startup_panel() -> Panel:
    """Build the startup banner."""
    from symproxy.main import symbol_path_hint

    display_host = "localhost" if settings.HOST in ("0.0.0.0", "") else settings.HOST
    base_url = f"http://{display_host}:{settings.PORT}"
    return Panel.fit(
        f"[cyan]Started:[/cyan] {datetime.now():%Y-%m-%d %H:%M:%S}\n"
        f"[cyan]Listening:[/cyan] {settings.HOST}:{settings.PORT}\n"
        f"[cyan]Cache Directory:[/cyan] {settings.CACHE_DIR}\n"
        f"[cyan]Upstream:[/cyan] {settings.UPSTREAM_URL}\n"
        f"[cyan]Timeout:[/cyan] {settings.UPSTREAM_TIMEOUT:g}s\n\n"
        f"[bold]Endpoints[/bold]\n"
        f"  GET /                                          service info\n"
        f"  GET /api/v1/health                             health check\n"
        f"  GET /download/symbols/{{name}}/{{hash}}/{{name}}   symbol download\n\n"
        f"[bold]_NT_SYMBOL_PATH[/bold]\n"
        f"  [green]{symbol_path_hint(base_url)}[/green]",
        title=f"Symbol Proxy {__version__}",
        border_style="green",
    )


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, "--host", help="Listen address"),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Listen port"),
    cache_dir: Optional[Path] = typer.Option(None, "--cache-dir", "-c", help="Storage root"),
    upstream: Optional[str] = typer.Option(None, "--upstream", "-u", help="Upstream symbol server URL"),
    timeout: Optional[float] = typer.Option(None, "--timeout", help="Upstream timeout in seconds"),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Log level"),
) -> None:
    """Run the symbol proxy server."""
    import uvicorn

    from symproxy.main import app as asgi_app
    from symproxy.main import configure_logging

    apply_overrides(cache_dir, upstream, timeout)
    if host is not None:
        settings.HOST = host
    if port is not None:
        settings.PORT = port
    if log_level is not None:
        settings.LOG_LEVEL = log_level

    configure_logging(settings.LOG_LEVEL)
    console.print(startup_panel())
    console.print("[dim]Press Ctrl+C to stop[/dim]")

    uvicorn.run(asgi_app, host=settings.HOST, port=settings.PORT, log_level=settings.LOG_LEVEL.lower())


async def _prefetch(name: str, hash: str) -> SymbolFile:
    cache = SymbolCache.from_settings(settings)
    try:
        return await cache.serve(name, hash)
    finally:
        await cache.aclose()


@app.command()
def fetch(
    name: str = typer.Argument(..., help="Symbol file name (e.g. ntdll.pdb)"),
    hash: str = typer.Argument(..., help="Symbol hash"),
    cache_dir: Optional[Path] = typer.Option(None, "--cache-dir", "-c", help="Storage root"),
    upstream: Optional[str] = typer.Option(None, "--upstream", "-u", help="Upstream symbol server URL"),
    timeout: Optional[float] = typer.Option(None, "--timeout", help="Upstream timeout in seconds"),
) -> None:
    """Fetch one symbol into the cache.

    Examples:
        symproxy fetch ntdll.pdb 1EB1D0A4B1A4E42F8B4B1B0F47C6F7F51
    """
    apply_overrides(cache_dir, upstream, timeout)

    try:
        symbol = asyncio.run(_prefetch(name, hash))
    except InvalidKeyError as e:
        console.print(f"[red]Invalid symbol key: {e}[/red]")
        raise typer.Exit(1)
    except SymbolNotFoundError:
        console.print(f"[red]Symbol not found: {name}/{hash}[/red]")
        raise typer.Exit(1)

    source = "cache" if symbol.from_cache else "upstream"
    console.print(f"[green]{symbol.path}[/green] ({symbol.size_bytes} bytes, from {source})")


@app.command()
def stats(
    cache_dir: Optional[Path] = typer.Option(None, "--cache-dir", "-c", help="Storage root"),
) -> None:
    """Show the number and size of cached symbols."""
    apply_overrides(cache_dir=cache_dir)

    cache_stats = SymbolStore(settings.CACHE_DIR).stats()
    console.print(
        Panel.fit(
            f"[cyan]Directory:[/cyan] {settings.CACHE_DIR}\n"
            f"[cyan]Symbols:[/cyan] {cache_stats.entries}\n"
            f"[cyan]Size:[/cyan] {cache_stats.size_mb:.2f} MB",
            title="Cache",
            border_style="green",
        )
    )


@app.command()
def config() -> None:
    """Show the effective configuration."""
    console.print(
        Panel.fit(
            f"[cyan]Cache Directory:[/cyan] {settings.CACHE_DIR}\n"
            f"[cyan]Upstream:[/cyan] {settings.UPSTREAM_URL}\n"
            f"[cyan]Timeout:[/cyan] {settings.UPSTREAM_TIMEOUT:g}s\n"
            f"[cyan]Deadline:[/cyan] {settings.UPSTREAM_DEADLINE or 'not set'}\n"
            f"[cyan]Listen:[/cyan] {settings.HOST}:{settings.PORT}\n"
            f"[cyan]Log Level:[/cyan] {settings.LOG_LEVEL}",
            title="Configuration",
            border_style="green",
        )
    )


if __name__ == "__main__":
    app()

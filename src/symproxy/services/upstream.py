"""HTTP client for the upstream symbol server."""

import asyncio
import contextlib
import logging
import os
import tempfile
from pathlib import Path
from typing import BinaryIO, Optional, Tuple

import httpx

from ..models import FetchErrorKind, FetchResult, SymbolKey
from ..storage.cache import TEMP_SUFFIX
from ..storage.layout import upstream_url

logger = logging.getLogger(__name__)


class TruncatedBodyError(Exception):
    """Raised when fewer bytes arrive than the upstream announced."""

    pass


class UpstreamFetcher:
    """Streams symbol files from the upstream server to local disk.

    Every failure is returned as a FetchResult; nothing is raised to the
    caller. The destination only ever appears complete: the body is written
    to a temporary file in the same directory and renamed into place.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        deadline: Optional[float] = None,
        chunk_size: int = 64 * 1024,
        user_agent: str = "Microsoft-Symbol-Server/10.0.0.0",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the fetcher.

        Args:
            base_url: Upstream base URL (e.g. "https://msdl.microsoft.com/download/symbols")
            timeout: Seconds without progress before the fetch is aborted
            deadline: Optional overall limit for one fetch in seconds
            chunk_size: Size of streamed chunks
            user_agent: User-Agent header sent upstream
            transport: Optional httpx transport (used by tests)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.deadline = deadline
        self.chunk_size = chunk_size
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(timeout),
            follow_redirects=True,
            headers={"User-Agent": user_agent},
            transport=transport,
        )

    def url_for(self, key: SymbolKey) -> str:
        """Upstream URL for a key."""
        return upstream_url(self.base_url, key)

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    async def fetch(self, url: str, destination: Path) -> FetchResult:
        """Download ``url`` into ``destination``.

        Args:
            url: Absolute upstream URL
            destination: Final path of the file

        Returns:
            FetchResult describing success or the failure kind
        """
        logger.info(f"Fetching {url}")
        try:
            if self.deadline:
                return await asyncio.wait_for(
                    self._download(url, destination), timeout=self.deadline
                )
            return await self._download(url, destination)
        except (asyncio.TimeoutError, httpx.TimeoutException) as e:
            return FetchResult.failed(
                FetchErrorKind.UPSTREAM_UNREACHABLE, f"Timed out fetching {url}: {e!r}"
            )
        except httpx.TransportError as e:
            if isinstance(e, (httpx.ConnectError, httpx.ProxyError, httpx.UnsupportedProtocol)):
                kind = FetchErrorKind.UPSTREAM_UNREACHABLE
            else:
                # Connection dropped mid-body and similar protocol failures
                kind = FetchErrorKind.UPSTREAM_ERROR
            return FetchResult.failed(kind, f"Transport error fetching {url}: {e!r}")
        except TruncatedBodyError as e:
            return FetchResult.failed(FetchErrorKind.UPSTREAM_ERROR, str(e))
        except httpx.HTTPError as e:
            return FetchResult.failed(FetchErrorKind.UPSTREAM_ERROR, f"HTTP error fetching {url}: {e!r}")
        except OSError as e:
            return FetchResult.failed(
                FetchErrorKind.LOCAL_WRITE_ERROR, f"Cannot write {destination}: {e}"
            )

    async def _download(self, url: str, destination: Path) -> FetchResult:
        loop = asyncio.get_running_loop()

        async with self._client.stream("GET", url) as response:
            if response.status_code == 404:
                return FetchResult.failed(
                    FetchErrorKind.UPSTREAM_NOT_FOUND,
                    f"Upstream has no {url}",
                    status_code=404,
                )
            if not response.is_success:
                return FetchResult.failed(
                    FetchErrorKind.UPSTREAM_ERROR,
                    f"Upstream returned {response.status_code} for {url}",
                    status_code=response.status_code,
                )

            # Disk work stays off the event loop
            tmp_path, f = await loop.run_in_executor(None, _open_temp, destination)
            try:
                written = 0
                async for chunk in response.aiter_bytes(self.chunk_size):
                    await loop.run_in_executor(None, f.write, chunk)
                    written += len(chunk)

                expected = _expected_length(response)
                if expected is not None and written != expected:
                    raise TruncatedBodyError(
                        f"Truncated body from {url}: {written} of {expected} bytes"
                    )

                await loop.run_in_executor(None, _commit, f, tmp_path, destination)
            except BaseException:
                with contextlib.suppress(OSError):
                    f.close()
                with contextlib.suppress(OSError):
                    tmp_path.unlink(missing_ok=True)
                raise

        logger.info(f"Fetched {url} ({written} bytes)")
        return FetchResult.ok(written, status_code=response.status_code)


def _open_temp(destination: Path) -> Tuple[Path, BinaryIO]:
    """Create the destination directory and a temporary file beside the destination."""
    destination.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(
        dir=destination.parent, prefix=f".{destination.name}.", suffix=TEMP_SUFFIX
    )
    return Path(tmp_name), os.fdopen(fd, "wb")


def _commit(f: BinaryIO, tmp_path: Path, destination: Path) -> None:
    """Flush the temporary file to disk and move it into place."""
    f.flush()
    os.fsync(f.fileno())
    f.close()
    os.replace(tmp_path, destination)


def _expected_length(response: httpx.Response) -> Optional[int]:
    """Decoded body length announced by the upstream, if it can be known.

    Content-Length counts encoded bytes, so it only describes the decoded
    body when no content coding was applied.
    """
    encoding = response.headers.get("Content-Encoding", "identity").strip().lower()
    if encoding not in ("", "identity"):
        return None
    length = response.headers.get("Content-Length")
    if length is None or not length.strip().isdigit():
        return None
    return int(length)

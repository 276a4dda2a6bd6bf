from __future__ import annotations

import logging
from pathlib import Path

import httpx
from tenacity import AsyncRetrying, RetryError, retry_if_exception_type, stop_after_attempt, wait_exponential

from ..platforms.auth import TokenManager
from .errors import DownloadFailed
from .utils import remove_quietly, stream_headers

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024


class _HttpStatusError(Exception):
    def __init__(self, response: httpx.Response) -> None:
        super().__init__(f"{response.reason_phrase} ({response.status_code})")
        self.status_code = response.status_code


class Downloader:
    """Stream Reddit media assets to local files."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        tokens: TokenManager,
        *,
        retries: int = 3,
        backoff: float = 0.5,
    ) -> None:
        self._client = client
        self._tokens = tokens
        self._retries = max(1, retries)
        self._backoff = backoff

    async def fetch(self, url: str, destination: Path, referer_url: str) -> Path:
        """Download ``url`` into ``destination``; raises DownloadFailed and leaves no partial file."""
        destination = Path(destination)
        headers = {**await self._tokens.get_auth_headers(), **stream_headers(referer_url)}
        retrying = AsyncRetrying(
            retry=retry_if_exception_type(httpx.TransportError),
            stop=stop_after_attempt(self._retries),
            wait=wait_exponential(multiplier=self._backoff, max=8),
            reraise=True,
        )
        try:
            async for attempt in retrying:
                with attempt:
                    size = await self._stream_to_disk(url, destination, headers)
        except _HttpStatusError as exc:
            raise DownloadFailed(f"Failed to download file: {exc}", url=url) from exc
        except (httpx.HTTPError, OSError, RetryError) as exc:
            raise DownloadFailed(f"Download failed: {exc}", url=url) from exc

        logger.debug("Downloaded %s -> %s (%d bytes)", url, destination, size)
        return destination

    async def _stream_to_disk(self, url: str, destination: Path, headers: dict[str, str]) -> int:
        async with self._client.stream("GET", url, headers=headers, follow_redirects=True) as response:
            if not response.is_success:
                raise _HttpStatusError(response)
            written = 0
            try:
                with destination.open("wb") as handle:
                    async for chunk in response.aiter_bytes(CHUNK_SIZE):
                        handle.write(chunk)
                        written += len(chunk)
            except BaseException:
                remove_quietly(destination)
                raise
            return written

"""Top-level application facade for the savevideo Reddit downloader."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Optional

import httpx

from .config import AppConfig, load_config
from .integrations import is_supported_url
from .integrations.reddit_video.core.models import ResultRecord
from .integrations.reddit_video.pipeline import SessionOrchestrator, build_pipeline
from .integrations.reddit_video.platforms.auth import RedditOAuthConfig, TokenManager
from .logging_utils import configure_logging

logger = logging.getLogger(__name__)


def _log_event(level: int, event: str, **fields: Any) -> None:
    """Emit structured log events with consistent metadata."""
    payload = {"event": event, **fields}
    logger.log(level, json.dumps(payload, default=str, separators=(",", ":")))


def http_timeout(config: AppConfig) -> httpx.Timeout:
    return httpx.Timeout(
        connect=config.http_connect_timeout,
        read=config.http_read_timeout,
        write=config.http_read_timeout,
        pool=config.http_connect_timeout,
    )


class VideoSaver:
    """Owns the shared HTTP client, token cache and pipeline for one configuration.

    Use as an async context manager so the HTTP client is closed::

        async with VideoSaver(config) as saver:
            record = await saver.download(url)
    """

    def __init__(
        self,
        config: Optional[AppConfig] = None,
        *,
        client: Optional[httpx.AsyncClient] = None,
        setup_logging: bool = False,
    ) -> None:
        self.config = config or load_config()
        if setup_logging:
            configure_logging(self.config)
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(
            timeout=http_timeout(self.config),
            follow_redirects=True,
            headers={"User-Agent": self.config.user_agent},
        )
        self.tokens = TokenManager(
            self.client,
            RedditOAuthConfig.from_app_config(self.config),
            user_agent=self.config.user_agent,
        )
        self.pipeline: SessionOrchestrator = build_pipeline(self.config, self.client, self.tokens)
        _log_event(logging.INFO, "savevideo.initialized", environment=self.config.environment, oauth=self.tokens.configured)

    async def __aenter__(self) -> "VideoSaver":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    @staticmethod
    def supports(url: str) -> bool:
        return is_supported_url(url)

    async def verify_credentials(self) -> str | None:
        return await self.tokens.verify()

    async def download(self, url: str) -> ResultRecord:
        return await self.pipeline.download(url.strip())


async def _download_once(url: str, config: AppConfig) -> ResultRecord:
    async with VideoSaver(config) as saver:
        return await saver.download(url)


def run_download(url: str, config: Optional[AppConfig] = None) -> ResultRecord:
    """Synchronous entry point for callers without an event loop.

    Coroutines must ``await VideoSaver.download`` instead; blocking here would
    stall every other task on their loop.
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(_download_once(url, config or load_config()))
    raise RuntimeError("run_download() cannot be called from a running event loop; await VideoSaver.download() instead")

from __future__ import annotations

import logging
from typing import Iterable

import httpx

from ..core.utils import stream_headers

logger = logging.getLogger(__name__)

# Audio asset names seen on v.redd.it, most common first.
AUDIO_SUFFIXES: tuple[str, ...] = (
    "DASH_audio.mp4",
    "audio",
    "DASH_audio",
    "DASH_AUDIO_128.mp4",
    "DASH_AUDIO_64.mp4",
)


def audio_url_variants(base_url: str) -> list[str]:
    if not base_url:
        return []
    return [f"{base_url}{suffix}" for suffix in AUDIO_SUFFIXES]


def audio_candidates(manifest_audio_url: str, base_url: str) -> list[str]:
    """Manifest audio first, then the heuristic variants; duplicates keep their first slot."""
    ordered: list[str] = []
    for url in [manifest_audio_url, *audio_url_variants(base_url)]:
        if url and url not in ordered:
            ordered.append(url)
    return ordered


class AudioProbe:
    """Find the first audio URL that answers a HEAD request.

    Checks run one at a time so a hit stops further requests against the
    rate-limited media host. Finding nothing is a normal outcome for silent
    videos and is reported as ``None``.
    """

    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    async def find_working_audio(self, candidates: Iterable[str], referer_url: str) -> str | None:
        headers = stream_headers(referer_url)
        for url in candidates:
            logger.debug("Trying audio URL: %s", url)
            try:
                response = await self._client.head(url, headers=headers, follow_redirects=True)
            except httpx.HTTPError as exc:
                logger.debug("Audio URL failed: %s (%s)", url, exc)
                continue
            if response.is_success:
                logger.info("Found working audio URL: %s", url)
                return url
            logger.debug("Audio URL failed: %s (%d)", url, response.status_code)
        logger.info("No audio track available")
        return None

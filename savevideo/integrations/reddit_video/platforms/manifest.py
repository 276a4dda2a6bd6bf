"""DASH manifest parsing and best-stream selection.

Reddit serves one ``DASHPlaylist.mpd`` per video listing every encoded
rendition. Entries are classified by a bandwidth/codec heuristic rather than
by ``mimeType`` because older manifests omit or misreport it; low-bitrate
video or unusually tagged audio can therefore land in the wrong bucket.
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from typing import Iterable, Iterator, Optional
from urllib.parse import urljoin

import httpx

from ..core.models import ManifestSelection, Representation, StreamChoice, VideoDescriptor
from ..core.utils import stream_headers
from .auth import TokenManager

logger = logging.getLogger(__name__)

VIDEO_BANDWIDTH_THRESHOLD = 100_000
MANIFEST_NAME = "DASHPlaylist.mpd"


def _local(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _children(element: ET.Element, name: str) -> Iterator[ET.Element]:
    for child in element:
        if _local(child.tag) == name:
            yield child


def _own_base(element: ET.Element) -> str:
    for child in _children(element, "BaseURL"):
        text = (child.text or "").strip()
        if text:
            return text
    return ""


def _base(element: ET.Element, parent_url: str) -> str:
    own = _own_base(element)
    return urljoin(parent_url, own) if own else parent_url


def _resolution(element: ET.Element) -> Optional[str]:
    width, height = element.get("width"), element.get("height")
    if width and height:
        return f"{width}x{height}"
    return None


def parse_manifest(text: str, manifest_url: str) -> list[Representation]:
    """Flatten an MPD into representations with absolute URLs, in document order.

    Raises ``ET.ParseError`` for malformed XML. Representations without a
    usable bandwidth or ``BaseURL`` are skipped.
    """
    root = ET.fromstring(text)
    if _local(root.tag) != "MPD":
        raise ValueError(f"not a DASH manifest (root element {_local(root.tag)!r})")

    mpd_url = _base(root, manifest_url)
    entries: list[Representation] = []
    for period in _children(root, "Period"):
        period_url = _base(period, mpd_url)
        for adaptation in _children(period, "AdaptationSet"):
            set_url = _base(adaptation, period_url)
            for rep in _children(adaptation, "Representation"):
                own = _own_base(rep)
                # segment-template renditions have no single file to fetch
                if not own:
                    continue
                rep_url = urljoin(set_url, own)
                try:
                    bandwidth = int(rep.get("bandwidth", ""))
                except ValueError:
                    continue
                entries.append(
                    Representation(
                        bandwidth=bandwidth,
                        url=rep_url,
                        codecs=rep.get("codecs") or adaptation.get("codecs") or "",
                        mime_type=rep.get("mimeType") or adaptation.get("mimeType") or "",
                        resolution=_resolution(rep),
                    )
                )
    return entries


def is_video(rep: Representation) -> bool:
    return rep.bandwidth > VIDEO_BANDWIDTH_THRESHOLD and ("avc" in rep.codecs or "mp4a" not in rep.codecs)


def select_best(representations: Iterable[Representation]) -> ManifestSelection:
    """Keep the strictly highest bandwidth per class; the first seen wins a tie."""
    best_video: Representation | None = None
    best_audio: Representation | None = None
    variants: list[Representation] = []

    for rep in representations:
        if is_video(rep):
            variants.append(rep)
            if best_video is None or rep.bandwidth > best_video.bandwidth:
                best_video = rep
        elif best_audio is None or rep.bandwidth > best_audio.bandwidth:
            best_audio = rep

    variants.sort(key=lambda rep: rep.bandwidth, reverse=True)
    video = StreamChoice()
    audio = StreamChoice()
    if best_video is not None:
        video = StreamChoice(bandwidth=best_video.bandwidth, url=best_video.url, resolution=best_video.resolution)
    if best_audio is not None:
        audio = StreamChoice(bandwidth=best_audio.bandwidth, url=best_audio.url)
    return ManifestSelection(best_video=video, best_audio=audio, video_variants=variants)


def manifest_url_for(descriptor: VideoDescriptor) -> str:
    """The descriptor's DASH URL, or one derived from the fallback URL's ``DASH_`` prefix."""
    if descriptor.dash_url:
        return descriptor.dash_url
    if descriptor.base_url:
        return descriptor.base_url + MANIFEST_NAME
    return ""


class ManifestSelector:
    """Pick the best video and audio renditions from a post's DASH manifest."""

    def __init__(self, client: httpx.AsyncClient, tokens: TokenManager) -> None:
        self._client = client
        self._tokens = tokens

    async def select_streams(self, descriptor: VideoDescriptor, referer_url: str) -> ManifestSelection:
        """Never raises: an empty selection tells the caller to use the fallback URL."""
        manifest_url = manifest_url_for(descriptor)
        if not manifest_url:
            logger.debug("No DASH manifest available for %s", descriptor.fallback_url or referer_url)
            return ManifestSelection()

        logger.info("Analyzing DASH manifest %s", manifest_url)
        try:
            headers = {**await self._tokens.get_auth_headers(), **stream_headers(referer_url)}
            response = await self._client.get(manifest_url, headers=headers, follow_redirects=True)
            response.raise_for_status()
            representations = parse_manifest(response.text, str(response.url))
        except Exception as exc:  # malformed XML, HTTP status, transport and validation errors alike
            logger.error("Error parsing DASH manifest %s: %s", manifest_url, exc)
            return ManifestSelection()

        selection = select_best(representations)
        logger.info(
            "Manifest selection video=%s@%d audio=%s@%d",
            selection.best_video.resolution or "?",
            selection.best_video.bandwidth,
            "yes" if selection.best_audio.url else "no",
            selection.best_audio.bandwidth,
        )
        return selection

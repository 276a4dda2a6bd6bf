"""Per-request orchestration of the Reddit video download pipeline."""

from __future__ import annotations

import asyncio
import json
import logging
from enum import Enum
from pathlib import Path
from typing import Any, Awaitable, Final, Sequence

import httpx

from ...config import AppConfig
from ...utils.media import Merger
from .core.downloader import Downloader
from .core.errors import DownloadFailed, MergeFailed, NoVideoFound, PipelineError, StorageError
from .core.models import ResultRecord
from .core.utils import display_title, is_mp4_url
from .platforms.audio import AudioProbe, audio_candidates
from .platforms.auth import RedditOAuthConfig, TokenManager
from .platforms.locator import DEFAULT_STRATEGIES, LocatorStrategy, locate_video
from .platforms.manifest import ManifestSelector
from .platforms.reddit import PostResolver
from .storage.manager import DownloadSession, StorageLayout

logger = logging.getLogger(__name__)


class Stage(str, Enum):
    START = "start"
    RESOLVING_POST = "resolving_post"
    LOCATING_MEDIA = "locating_media"
    SELECTING_STREAMS = "selecting_streams"
    DOWNLOADING_VIDEO = "downloading_video"
    DOWNLOADING_AUDIO = "downloading_audio"
    MERGING = "merging"
    DONE = "done"
    FAILED = "failed"


# The only failures the pipeline continues past, and the stage each is tolerated in.
DEGRADABLE_FAILURES: Final[dict[Stage, type[PipelineError]]] = {
    Stage.DOWNLOADING_AUDIO: DownloadFailed,
    Stage.MERGING: MergeFailed,
}


def _log_event(level: int, event: str, **fields: Any) -> None:
    """Emit structured log events with consistent metadata."""
    payload = {"event": event, **fields}
    logger.log(level, json.dumps(payload, default=str, separators=(",", ":")))


class SessionOrchestrator:
    """Sequence resolution, selection, download and merge for one post at a time.

    Instances hold no per-request state, so one orchestrator can serve many
    concurrent ``download`` calls; each call gets its own DownloadSession.
    """

    def __init__(
        self,
        resolver: PostResolver,
        selector: ManifestSelector,
        audio_probe: AudioProbe,
        downloader: Downloader,
        merger: Merger,
        storage: StorageLayout,
        *,
        strategies: Sequence[LocatorStrategy] = DEFAULT_STRATEGIES,
    ) -> None:
        self.resolver = resolver
        self.selector = selector
        self.audio_probe = audio_probe
        self.downloader = downloader
        self.merger = merger
        self.storage = storage
        self.strategies = tuple(strategies)

    async def download(self, url: str) -> ResultRecord:
        with self.storage.open_session() as session:
            try:
                record = await self._run(url, session)
            except PipelineError as exc:
                exc.stage = exc.stage or session.stage
                if exc.url is None:
                    exc.url = url
                self._advance(session, Stage.FAILED, error=type(exc).__name__, message=exc.message)
                raise
            except Exception as exc:
                self._advance(session, Stage.FAILED, error=type(exc).__name__, message=str(exc))
                raise
            self._advance(session, Stage.DONE, has_audio=record.has_audio, output=record.relative_output_path)
            return record

    async def _run(self, url: str, session: DownloadSession) -> ResultRecord:
        self._advance(session, Stage.RESOLVING_POST, url=url)
        post = await self.resolver.resolve_post(url)

        self._advance(session, Stage.LOCATING_MEDIA, is_video=post.is_video)
        descriptor = locate_video(post, self.strategies)

        self._advance(session, Stage.SELECTING_STREAMS)
        selection = await self.selector.select_streams(descriptor, url)
        video_url = selection.best_video.url or descriptor.fallback_url
        if not video_url:
            raise NoVideoFound("Could not find a valid video URL", url=url)
        audio_url = await self.audio_probe.find_working_audio(
            audio_candidates(selection.best_audio.url, descriptor.base_url), url
        )

        title = display_title(post.title)
        output_path = self.storage.output_path(title)
        session.final_output_path = output_path

        self._advance(session, Stage.DOWNLOADING_VIDEO, video_url=video_url)
        await self.downloader.fetch(video_url, session.temp_video_path, url)

        has_audio = False
        if audio_url:
            downloaded = await self._attempt(
                session,
                Stage.DOWNLOADING_AUDIO,
                self.downloader.fetch(audio_url, session.temp_audio_path, url),
            )
            has_audio = downloaded and await self._attempt(
                session,
                Stage.MERGING,
                self.merger.merge(session.temp_video_path, session.temp_audio_path, output_path),
            )
        if not has_audio:
            await self._save_video_only(session.temp_video_path, output_path)

        return ResultRecord(
            source_video_url=video_url,
            has_audio=has_audio,
            title=title,
            is_mp4=is_mp4_url(video_url),
            thumbnail_url=post.thumbnail or "",
            original_post_url=url,
            relative_output_path=self.storage.relative_path(output_path) if output_path.exists() else None,
            duration=descriptor.duration,
            resolution=selection.best_video.resolution or descriptor.resolution,
            available_resolutions=selection.available_resolutions,
        )

    async def _attempt(self, session: DownloadSession, stage: Stage, step: Awaitable[object]) -> bool:
        """Run a step; False means it failed in a way DEGRADABLE_FAILURES lets the pipeline continue past."""
        self._advance(session, stage)
        try:
            await step
        except PipelineError as exc:
            tolerated = DEGRADABLE_FAILURES.get(stage)
            if tolerated is None or not isinstance(exc, tolerated):
                raise
            _log_event(
                logging.WARNING,
                "pipeline.degraded",
                session_id=session.session_id,
                stage=stage.value,
                error=type(exc).__name__,
                message=exc.message,
            )
            return False
        return True

    async def _save_video_only(self, source: Path, destination: Path) -> None:
        try:
            await asyncio.to_thread(self.storage.copy_video_only, source, destination)
        except OSError as exc:
            raise StorageError(f"Could not write {destination.name}: {exc}") from exc

    @staticmethod
    def _advance(session: DownloadSession, stage: Stage, **fields: Any) -> None:
        session.stage = stage.value
        level = logging.WARNING if stage is Stage.FAILED else logging.INFO
        _log_event(level, f"pipeline.{stage.value}", session_id=session.session_id, **fields)


def build_pipeline(
    config: AppConfig,
    client: httpx.AsyncClient,
    tokens: TokenManager | None = None,
) -> SessionOrchestrator:
    """Wire the default components for ``config`` around a shared HTTP client."""
    if tokens is None:
        tokens = TokenManager(client, RedditOAuthConfig.from_app_config(config), user_agent=config.user_agent)
    return SessionOrchestrator(
        resolver=PostResolver(client, tokens),
        selector=ManifestSelector(client, tokens),
        audio_probe=AudioProbe(client),
        downloader=Downloader(client, tokens, retries=config.download_retries),
        merger=Merger(config.ffmpeg_binary, timeout=config.merge_timeout_seconds),
        storage=StorageLayout(config.base_dir),
    )

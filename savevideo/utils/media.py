"""Media processing utilities built around the ffmpeg command line."""

from __future__ import annotations

import asyncio
import logging
import shutil
from contextlib import suppress
from pathlib import Path

from ..integrations.reddit_video.core.errors import MergeFailed
from ..integrations.reddit_video.core.utils import remove_quietly

logger = logging.getLogger(__name__)

STDERR_TAIL = 800


def merge_command(binary: str, video_path: Path, audio_path: Path, output_path: Path) -> list[str]:
    """Copy the first video stream untouched, re-encode the first audio stream to AAC, stop at the shorter input."""
    return [
        binary,
        "-y",
        "-i",
        str(video_path),
        "-i",
        str(audio_path),
        "-c:v",
        "copy",
        "-c:a",
        "aac",
        "-map",
        "0:v:0",
        "-map",
        "1:a:0",
        "-shortest",
        str(output_path),
    ]


class Merger:
    """Multiplex a video-only and an audio-only file into one mp4 with ffmpeg."""

    def __init__(self, binary: str = "ffmpeg", timeout: float | None = 300.0) -> None:
        self.binary = binary
        self.timeout = timeout

    async def merge(self, video_path: Path, audio_path: Path, output_path: Path) -> Path:
        executable = shutil.which(self.binary)
        if executable is None:
            raise MergeFailed(f"Required executable '{self.binary}' not found in PATH")

        cmd = merge_command(executable, Path(video_path), Path(audio_path), Path(output_path))
        logger.info("Starting ffmpeg merge into %s", output_path)
        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            raise MergeFailed(f"ffmpeg could not be started: {exc}") from exc

        try:
            _, stderr = await asyncio.wait_for(proc.communicate(), timeout=self.timeout)
        except asyncio.TimeoutError as exc:
            await self._terminate(proc)
            remove_quietly(Path(output_path))
            raise MergeFailed(f"ffmpeg merge timed out after {self.timeout}s") from exc
        except asyncio.CancelledError:
            await self._terminate(proc)
            remove_quietly(Path(output_path))
            raise

        if proc.returncode != 0:
            remove_quietly(Path(output_path))
            detail = stderr.decode(errors="replace")[-STDERR_TAIL:].strip() if stderr else ""
            message = f"ffmpeg merge failed with code {proc.returncode}"
            raise MergeFailed(f"{message}: {detail}" if detail else message)

        logger.info("Merging completed successfully")
        return Path(output_path)

    @staticmethod
    async def _terminate(proc: asyncio.subprocess.Process) -> None:
        if proc.returncode is None:
            with suppress(ProcessLookupError):
                proc.kill()
            await proc.wait()

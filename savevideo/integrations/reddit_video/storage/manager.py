from __future__ import annotations

import logging
import shutil
import uuid
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, Optional

from ..core.utils import safe_filename

logger = logging.getLogger(__name__)

OUTPUT_DIRNAME = "files"
TEMP_DIRNAME = "temp"


@dataclass(slots=True)
class DownloadSession:
    """Per-request working files, namespaced by a fresh session id."""

    session_id: str
    temp_video_path: Path
    temp_audio_path: Path
    final_output_path: Optional[Path] = None
    stage: str = "start"
    removed: list[Path] = field(default_factory=list)

    @property
    def temp_paths(self) -> tuple[Path, Path]:
        return (self.temp_video_path, self.temp_audio_path)


class StorageLayout:
    """Directory layout under ``base_dir``: ``temp/`` for session files, ``files/`` for results."""

    def __init__(self, base_dir: Path) -> None:
        self.base_dir = Path(base_dir)
        self.temp_dir = self.base_dir / TEMP_DIRNAME
        self.output_dir = self.base_dir / OUTPUT_DIRNAME
        self.temp_dir.mkdir(parents=True, exist_ok=True)
        self.output_dir.mkdir(parents=True, exist_ok=True)

    def new_session(self) -> DownloadSession:
        session_id = uuid.uuid4().hex
        return DownloadSession(
            session_id=session_id,
            temp_video_path=self.temp_dir / f"video_{session_id}.mp4",
            temp_audio_path=self.temp_dir / f"audio_{session_id}.mp4",
        )

    @contextmanager
    def open_session(self) -> Iterator[DownloadSession]:
        """Yield a session whose temp files are removed however the block exits."""
        session = self.new_session()
        try:
            yield session
        finally:
            self.cleanup(session)

    def cleanup(self, session: DownloadSession) -> None:
        """Remove the session's temp files; errors are logged and never raised."""
        for path in session.temp_paths:
            try:
                path.unlink()
            except FileNotFoundError:
                continue
            except OSError as exc:
                logger.warning("Could not remove temp file %s: %s", path, exc)
                continue
            session.removed.append(path)

    def output_path(self, title: str) -> Path:
        return self.output_dir / f"{safe_filename(title)}.mp4"

    def relative_path(self, path: Path) -> str:
        return Path(path).relative_to(self.base_dir).as_posix()

    def copy_video_only(self, source: Path, destination: Path) -> Path:
        logger.info("Saving video without audio to %s", destination)
        shutil.copyfile(source, destination)
        return destination

"""Utility helpers shared across the Reddit video integration."""

from __future__ import annotations

import logging
import re
from pathlib import Path
from urllib.parse import urlsplit

REDDIT_ORIGIN = "https://www.reddit.com"
DEFAULT_REFERER = f"{REDDIT_ORIGIN}/"
MAX_FILENAME_LENGTH = 50

_NON_WORD_RE = re.compile(r"[^\w\s]")
_NON_ALNUM_RE = re.compile(r"[^A-Za-z0-9]")

logger = logging.getLogger(__name__)


def setup_logging(level: str = "INFO") -> logging.Logger:
    """Initialise a minimal console logger for command line use."""
    lvl = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=lvl,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )
    return logging.getLogger("savevideo")


def display_title(title: str) -> str:
    """Replace punctuation in a post title with underscores, keeping words and spaces."""
    return _NON_WORD_RE.sub("_", title)


def safe_filename(title: str) -> str:
    """ASCII-alphanumeric file stem derived from a title, at most 50 characters."""
    stem = _NON_ALNUM_RE.sub("_", title)[:MAX_FILENAME_LENGTH]
    return stem or "video"


def is_mp4_url(url: str) -> bool:
    return urlsplit(url).path.lower().endswith(".mp4")


def stream_headers(referer: str | None) -> dict[str, str]:
    """Headers Reddit's media hosts expect on manifest, probe and download requests."""
    return {"Referer": referer or DEFAULT_REFERER, "Origin": REDDIT_ORIGIN}


def remove_quietly(path: Path) -> bool:
    """Delete ``path`` if present; failures are logged, never raised."""
    try:
        path.unlink(missing_ok=True)
    except OSError as exc:
        logger.warning("Could not remove %s: %s", path, exc)
        return False
    return True

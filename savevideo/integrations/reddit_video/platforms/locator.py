"""Locate the ``reddit_video`` record inside the different post payload shapes."""

from __future__ import annotations

from typing import Any, Callable, Optional, Sequence

from pydantic import ValidationError

from ..core.errors import NoVideoFound
from ..core.models import RawPost, VideoDescriptor

VideoRecord = dict[str, Any]
LocatorStrategy = Callable[[RawPost], Optional[VideoRecord]]


def _reddit_video(media: Any) -> VideoRecord | None:
    if not isinstance(media, dict):
        return None
    record = media.get("reddit_video")
    return record if isinstance(record, dict) and record else None


def from_media(post: RawPost) -> VideoRecord | None:
    return _reddit_video(post.media)


def from_secure_media(post: RawPost) -> VideoRecord | None:
    return _reddit_video(post.secure_media)


def from_crosspost_parent(post: RawPost) -> VideoRecord | None:
    parents = post.crosspost_parent_list or []
    if not parents or not isinstance(parents[0], dict):
        return None
    return _reddit_video(parents[0].get("media"))


# Media on the post itself always beats the crosspost parent's.
DEFAULT_STRATEGIES: tuple[LocatorStrategy, ...] = (
    from_media,
    from_secure_media,
    from_crosspost_parent,
)


def locate_video(post: RawPost, strategies: Sequence[LocatorStrategy] = DEFAULT_STRATEGIES) -> VideoDescriptor:
    """Return the descriptor from the first strategy that matches; NoVideoFound otherwise."""
    for strategy in strategies:
        record = strategy(post)
        if record is None:
            continue
        try:
            return VideoDescriptor.model_validate(record)
        except ValidationError as exc:
            raise NoVideoFound("Video record in this Reddit post is malformed", url=post.url) from exc
    raise NoVideoFound("No video found in this Reddit post", url=post.url)

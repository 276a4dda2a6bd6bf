"""Integration helpers for source-platform video resolution."""

from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import urlsplit

REDDIT_HOSTS: tuple[str, ...] = ("reddit.com",)
# Only the bare short-link host; v.redd.it and i.redd.it are media CDNs.
SHORT_LINK_HOSTS: frozenset[str] = frozenset({"redd.it", "www.redd.it"})


@dataclass(frozen=True, slots=True)
class PostReference:
    """Normalized reference to a single Reddit post."""

    url: str
    post_id: str
    short_link: bool = False

    @property
    def fullname(self) -> str:
        return f"t3_{self.post_id}"


def is_supported_url(url: str) -> bool:
    """True when the URL points at Reddit and should take the authenticated path."""
    host = (urlsplit(url.strip()).hostname or "").lower()
    if host in SHORT_LINK_HOSTS:
        return True
    return any(host == known or host.endswith(f".{known}") for known in REDDIT_HOSTS)


__all__ = ["PostReference", "REDDIT_HOSTS", "SHORT_LINK_HOSTS", "is_supported_url"]

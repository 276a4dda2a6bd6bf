from __future__ import annotations

import logging
import re
from typing import Any

import httpx
from pydantic import ValidationError

from ... import SHORT_LINK_HOSTS, PostReference
from ..core.errors import InvalidReference, UpstreamUnavailable
from ..core.models import RawPost
from .auth import TokenManager

logger = logging.getLogger(__name__)

INFO_URL = "https://oauth.reddit.com/api/info"
SHORT_LINK_JSON = "https://www.reddit.com/comments/{post_id}/.json"
POST_ID_RE = re.compile(r"[A-Za-z0-9]+")


def parse_reference(url: str) -> PostReference:
    """Extract the post id from a canonical ``/comments/<id>/`` URL or a ``redd.it`` short link."""
    try:
        parts = httpx.URL(url.strip())
    except (httpx.InvalidURL, TypeError) as exc:
        raise InvalidReference(f"Could not parse URL: {url!r}", url=url) from exc

    host = parts.host.lower()
    segments = [segment for segment in parts.path.split("/") if segment]
    post_id: str | None = None
    short_link = host in SHORT_LINK_HOSTS

    if short_link:
        post_id = segments[0] if segments else None
    else:
        for index, segment in enumerate(segments[:-1]):
            if segment == "comments":
                post_id = segments[index + 1]
                break

    if not post_id or not POST_ID_RE.fullmatch(post_id):
        raise InvalidReference("Could not extract post ID from URL", url=url)
    return PostReference(url=url.strip(), post_id=post_id, short_link=short_link)


def public_json_url(reference: PostReference) -> str:
    """The unauthenticated ``.json`` endpoint for a post."""
    if reference.short_link:
        return SHORT_LINK_JSON.format(post_id=reference.post_id)
    base = reference.url.split("#", 1)[0].split("?", 1)[0]
    if base.endswith(".json"):
        return base
    return f"{base}.json" if base.endswith("/") else f"{base}/.json"


def _first_child(payload: Any) -> RawPost:
    """Normalize both listing shapes (object and ``[post, comments]`` array) to the post data."""
    if isinstance(payload, list):
        payload = payload[0] if payload else {}
    if not isinstance(payload, dict):
        raise UpstreamUnavailable("Unexpected Reddit payload shape")
    data = payload.get("data")
    children = data.get("children") if isinstance(data, dict) else None
    if not isinstance(children, list) or not children or not isinstance(children[0], dict):
        raise UpstreamUnavailable("Reddit listing contained no post")
    try:
        return RawPost.model_validate(children[0].get("data") or {})
    except ValidationError as exc:
        raise UpstreamUnavailable("Reddit post data was malformed") from exc


class PostResolver:
    """Fetch post payloads, preferring the OAuth API over the public JSON endpoint."""

    def __init__(self, client: httpx.AsyncClient, tokens: TokenManager) -> None:
        self._client = client
        self._tokens = tokens

    async def resolve_post(self, url: str) -> RawPost:
        reference = parse_reference(url)
        if self._tokens.configured:
            try:
                return await self._fetch_authenticated(reference)
            except UpstreamUnavailable as exc:
                logger.warning("OAuth request failed (%s), falling back to public API", exc)
        return await self._fetch_public(reference)

    async def _fetch_authenticated(self, reference: PostReference) -> RawPost:
        headers = await self._tokens.get_auth_headers()
        if "Authorization" not in headers:
            raise UpstreamUnavailable("no OAuth token available")
        headers["Accept"] = "application/json"
        try:
            response = await self._client.get(
                INFO_URL, params={"id": reference.fullname}, headers=headers, follow_redirects=True
            )
        except httpx.HTTPError as exc:
            raise UpstreamUnavailable(str(exc), url=reference.url) from exc
        if response.status_code == 401:
            self._tokens.invalidate()
        if not response.is_success:
            raise UpstreamUnavailable(f"status {response.status_code}", url=reference.url)
        return self._parse(response, reference)

    async def _fetch_public(self, reference: PostReference) -> RawPost:
        json_url = public_json_url(reference)
        headers = {**self._tokens.base_headers(), "Accept": "application/json"}
        try:
            response = await self._client.get(json_url, headers=headers, follow_redirects=True)
        except httpx.HTTPError as exc:
            raise UpstreamUnavailable(f"Failed to fetch Reddit post data: {exc}", url=reference.url) from exc
        if not response.is_success:
            raise UpstreamUnavailable(
                f"Failed to fetch Reddit data: {response.reason_phrase} ({response.status_code})",
                url=reference.url,
            )
        return self._parse(response, reference)

    @staticmethod
    def _parse(response: httpx.Response, reference: PostReference) -> RawPost:
        try:
            payload = response.json()
        except ValueError as exc:
            raise UpstreamUnavailable("Reddit returned invalid JSON", url=reference.url) from exc
        return _first_child(payload)

"""OAuth2 bearer token handling for Reddit API calls."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional

import httpx

from ....config import DEFAULT_USER_AGENT, AppConfig, secret_value
from ..core.errors import AuthFailure
from ..core.models import Credential, TokenResponse

logger = logging.getLogger(__name__)

TOKEN_URL = "https://www.reddit.com/api/v1/access_token"
IDENTITY_URL = "https://oauth.reddit.com/api/v1/me"
EXPIRY_MARGIN_SECONDS = 60


@dataclass(slots=True)
class RedditOAuthConfig:
    """Static credentials of a Reddit "script" or "web" app."""

    client_id: str
    client_secret: str
    username: Optional[str] = None
    password: Optional[str] = None

    @property
    def grant_type(self) -> str:
        return "password" if self.username and self.password else "client_credentials"

    @classmethod
    def from_app_config(cls, config: AppConfig) -> RedditOAuthConfig | None:
        client_id = secret_value(config.reddit_client_id)
        client_secret = secret_value(config.reddit_client_secret)
        if not (client_id and client_secret):
            return None
        return cls(
            client_id=client_id,
            client_secret=client_secret,
            username=secret_value(config.reddit_username),
            password=secret_value(config.reddit_password),
        )


class TokenManager:
    """Owns the cached Reddit credential shared by every request of a pipeline.

    The cache is guarded by a lock but the exchange runs outside it, so two
    requests racing past expiry may both refresh; the last one stored wins.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        oauth: RedditOAuthConfig | None = None,
        *,
        user_agent: str = DEFAULT_USER_AGENT,
        clock: Callable[[], float] = time.time,
        token_url: str = TOKEN_URL,
    ) -> None:
        self._client = client
        self._oauth = oauth
        self._user_agent = user_agent
        self._clock = clock
        self._token_url = token_url
        self._lock = threading.Lock()
        self._credential: Credential | None = None

    @property
    def configured(self) -> bool:
        return self._oauth is not None

    def base_headers(self) -> dict[str, str]:
        return {"User-Agent": self._user_agent}

    def cached_credential(self) -> Credential | None:
        """Return the stored credential while it is still valid."""
        with self._lock:
            credential = self._credential
        if credential is not None and credential.is_valid(self._clock()):
            return credential
        return None

    def invalidate(self) -> None:
        with self._lock:
            self._credential = None

    async def get_credential(self) -> Credential:
        cached = self.cached_credential()
        if cached is not None:
            return cached
        credential = await self.exchange()
        with self._lock:
            self._credential = credential
        return credential

    async def exchange(self) -> Credential:
        """Perform the token exchange; raises AuthFailure on any failure."""
        if self._oauth is None:
            raise AuthFailure("OAuth configuration not provided")

        form = {"grant_type": self._oauth.grant_type}
        if form["grant_type"] == "password":
            form["username"] = self._oauth.username or ""
            form["password"] = self._oauth.password or ""

        try:
            response = await self._client.post(
                self._token_url,
                data=form,
                auth=(self._oauth.client_id, self._oauth.client_secret),
                headers=self.base_headers(),
            )
        except httpx.HTTPError as exc:
            raise AuthFailure(f"OAuth token request failed: {exc}") from exc

        if not response.is_success:
            raise AuthFailure(
                f"OAuth token request failed: {response.reason_phrase} ({response.status_code})"
            )
        try:
            token = TokenResponse.model_validate(response.json())
        except ValueError as exc:
            raise AuthFailure("OAuth token response was not understood") from exc

        logger.info("Obtained Reddit OAuth token via %s grant", form["grant_type"])
        return Credential(
            access_token=token.access_token,
            token_type=token.token_type,
            expires_at=self._clock() + token.expires_in - EXPIRY_MARGIN_SECONDS,
        )

    async def get_auth_headers(self) -> dict[str, str]:
        """Headers for an API call; falls back to anonymous headers when auth fails."""
        headers = self.base_headers()
        if self._oauth is None:
            return headers
        try:
            credential = await self.get_credential()
        except AuthFailure as exc:
            logger.warning("Failed to get OAuth token, proceeding without authentication: %s", exc)
            return headers
        headers["Authorization"] = credential.authorization
        return headers

    async def verify(self) -> str | None:
        """Return the authenticated account name, or None when auth is not working."""
        if self._oauth is None:
            logger.info("OAuth not configured, skipping verification")
            return None
        headers = await self.get_auth_headers()
        if "Authorization" not in headers:
            return None
        try:
            response = await self._client.get(IDENTITY_URL, headers=headers)
        except httpx.HTTPError as exc:
            logger.error("OAuth verification failed: %s", exc)
            return None
        if not response.is_success:
            logger.error("OAuth verification failed: %s %s", response.status_code, response.reason_phrase)
            return None
        try:
            payload = response.json()
        except ValueError:
            return None
        name = payload.get("name") if isinstance(payload, dict) else None
        logger.info("OAuth verification successful, connected as %s", name)
        return name

"""Configuration loader for the savevideo Reddit downloader (Pydantic edition)."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Literal

from dotenv import load_dotenv
from pydantic import AliasChoices, Field, SecretStr, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

LOGGER = logging.getLogger(__name__)
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"
)


class ConfigError(RuntimeError):
    """Raised when configuration cannot be loaded safely."""


def secret_value(value: SecretStr | str | None) -> str | None:
    """Plaintext of a secret setting, or None when it is unset or blank."""
    if value is None:
        return None
    raw = value.get_secret_value() if isinstance(value, SecretStr) else value
    return raw.strip() or None


class AppConfig(BaseSettings):
    """Strongly typed runtime configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
        populate_by_name=True,
        validate_default=True,
    )

    environment: Literal["development", "staging", "production"] = Field(
        default="development",
        validation_alias=AliasChoices("SAVEVIDEO_ENVIRONMENT", "NODE_ENV", "APP_ENV"),
    )
    base_dir: Path = Field(
        default=Path("data"),
        validation_alias=AliasChoices("SAVEVIDEO_BASE_DIR", "BASE_DIR"),
    )
    log_path: Path = Field(
        default=Path("logs/savevideo.log"),
        validation_alias=AliasChoices("SAVEVIDEO_LOG_PATH", "LOG_PATH"),
    )
    log_level: str = Field(default="INFO", validation_alias="SAVEVIDEO_LOG_LEVEL")

    # Credentials
    reddit_client_id: str | None = Field(default=None, validation_alias="REDDIT_CLIENT_ID")
    reddit_client_secret: SecretStr | None = Field(default=None, validation_alias="REDDIT_CLIENT_SECRET")
    reddit_username: str | None = Field(default=None, validation_alias="REDDIT_USERNAME")
    reddit_password: SecretStr | None = Field(default=None, validation_alias="REDDIT_PASSWORD")
    user_agent: str = Field(
        default=DEFAULT_USER_AGENT,
        validation_alias=AliasChoices("SAVEVIDEO_USER_AGENT", "REDDIT_USER_AGENT"),
    )

    # Networking and encoding limits
    http_connect_timeout: float = Field(10.0, gt=0, validation_alias="SAVEVIDEO_HTTP_CONNECT_TIMEOUT")
    http_read_timeout: float = Field(30.0, gt=0, validation_alias="SAVEVIDEO_HTTP_READ_TIMEOUT")
    download_retries: int = Field(3, ge=1, le=10, validation_alias="SAVEVIDEO_DOWNLOAD_RETRIES")
    merge_timeout_seconds: float = Field(300.0, gt=0, validation_alias="SAVEVIDEO_MERGE_TIMEOUT")
    ffmpeg_binary: str = Field(default="ffmpeg", validation_alias=AliasChoices("SAVEVIDEO_FFMPEG", "FFMPEG_BINARY"))

    @field_validator("base_dir", "log_path", mode="after")
    @classmethod
    def _expand_path(cls, value: Path) -> Path:
        expanded = value.expanduser()
        return expanded if expanded.is_absolute() else (Path.cwd() / expanded).resolve()

    @field_validator("reddit_client_id", "reddit_username", mode="before")
    @classmethod
    def _blank_to_none(cls, value: str | None) -> str | None:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("log_level", mode="after")
    @classmethod
    def _normalise_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in logging.getLevelNamesMapping():
            raise ValueError(f"unknown log level {value!r}")
        return level

    @property
    def temp_dir(self) -> Path:
        return self.base_dir / "temp"

    @property
    def output_dir(self) -> Path:
        return self.base_dir / "files"

    @property
    def has_reddit_credentials(self) -> bool:
        return bool(self.reddit_client_id and self.reddit_client_secret)

    def ensure_runtime_directories(self) -> None:
        """Create directories required for runtime operation."""
        for directory in (self.temp_dir, self.output_dir, self.log_path.parent):
            directory.mkdir(parents=True, exist_ok=True)


def load_config(env_path: Path | None = None) -> AppConfig:
    """Load configuration from .env/environment with validation."""
    load_kwargs: dict[str, str] = {}
    if env_path is not None:
        load_dotenv(env_path, override=False)
        load_kwargs["_env_file"] = str(env_path)
    else:
        load_dotenv(override=False)
    try:
        config = AppConfig(**load_kwargs)
    except ValidationError as exc:
        raise ConfigError("Invalid configuration") from exc

    config.ensure_runtime_directories()

    LOGGER.info(
        "AppConfig loaded",
        extra={
            "event": "config.loaded",
            "environment": config.environment,
            "paths": {
                "base": str(config.base_dir),
                "log": str(config.log_path),
            },
            "oauth": config.has_reddit_credentials,
        },
    )
    return config

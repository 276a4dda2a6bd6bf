from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class TokenResponse(BaseModel):
    """Body returned by Reddit's access_token endpoint."""

    model_config = ConfigDict(extra="ignore")

    access_token: str = Field(min_length=1)
    token_type: str = "bearer"
    expires_in: int = Field(default=3600, ge=0)
    scope: Optional[str] = None


@dataclass(frozen=True, slots=True)
class Credential:
    access_token: str
    token_type: str
    expires_at: float

    def is_valid(self, now: float | None = None) -> bool:
        current = time.time() if now is None else now
        return current < self.expires_at

    @property
    def authorization(self) -> str:
        return f"{self.token_type} {self.access_token}"


class RawPost(BaseModel):
    """Subset of a Reddit listing child's ``data`` used downstream."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    title: str = ""
    thumbnail: Optional[str] = None
    url: Optional[str] = None
    is_video: bool = False
    media: Optional[dict[str, Any]] = None
    secure_media: Optional[dict[str, Any]] = None
    crosspost_parent_list: Optional[list[dict[str, Any]]] = None

    @field_validator("title", mode="before")
    @classmethod
    def _null_title(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("is_video", mode="before")
    @classmethod
    def _null_flag(cls, value: Any) -> Any:
        return bool(value)


class VideoDescriptor(BaseModel):
    """The ``reddit_video`` record of a post."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    fallback_url: str = ""
    dash_url: str = ""
    hls_url: str = ""
    duration: Optional[float] = None
    width: Optional[int] = None
    height: Optional[int] = None

    @field_validator("fallback_url", "dash_url", "hls_url", mode="before")
    @classmethod
    def _null_url(cls, value: Any) -> Any:
        return value or ""

    @property
    def base_url(self) -> str:
        """Prefix shared by every ``DASH_*`` asset of this video, or ``""``."""
        if "DASH_" not in self.fallback_url:
            return ""
        return self.fallback_url.split("DASH_", 1)[0]

    @property
    def resolution(self) -> Optional[str]:
        if self.width and self.height:
            return f"{self.width}x{self.height}"
        return None


class Representation(BaseModel):
    """One encoded variant listed in a DASH manifest."""

    bandwidth: int
    url: str
    codecs: str = ""
    mime_type: str = ""
    resolution: Optional[str] = None


class StreamChoice(BaseModel):
    bandwidth: int = 0
    url: str = ""
    resolution: Optional[str] = None


class ManifestSelection(BaseModel):
    """Best video/audio picked from a manifest; empty URLs mean no usable manifest."""

    best_video: StreamChoice = Field(default_factory=StreamChoice)
    best_audio: StreamChoice = Field(default_factory=StreamChoice)
    video_variants: list[Representation] = Field(default_factory=list)

    @property
    def available_resolutions(self) -> list[str]:
        return [rep.resolution for rep in self.video_variants if rep.resolution]


class ResultRecord(BaseModel):
    """Outcome returned to the request layer for one resolved post."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    source_video_url: str = Field(serialization_alias="sourceVideoUrl")
    has_audio: bool = Field(serialization_alias="hasAudio")
    title: str
    is_mp4: bool = Field(serialization_alias="isMp4")
    thumbnail_url: str = Field(default="", serialization_alias="thumbnailUrl")
    original_post_url: str = Field(serialization_alias="originalPostUrl")
    relative_output_path: Optional[str] = Field(default=None, serialization_alias="relativeOutputPath")
    is_video: bool = Field(default=True, serialization_alias="isVideo")
    video_type: str = Field(default="video", serialization_alias="videoType")
    duration: Optional[float] = None
    resolution: Optional[str] = None
    available_resolutions: list[str] = Field(default_factory=list, serialization_alias="availableResolutions")

    def to_response(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)

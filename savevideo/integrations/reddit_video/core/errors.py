"""Typed failures raised by the Reddit video pipeline.

Each error carries an HTTP-style ``status_code`` so the request layer can map
it to a response without inspecting messages.
"""

from __future__ import annotations

from typing import Any


class PipelineError(Exception):
    """Base class for every failure the pipeline reports to its caller."""

    status_code: int = 500

    def __init__(self, message: str, *, url: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.url = url
        self.stage: str | None = None

    def to_response(self) -> dict[str, Any]:
        return {"message": self.message}


class InvalidReference(PipelineError):
    """No post identifier could be derived from the supplied reference."""

    status_code = 400


class UpstreamUnavailable(PipelineError):
    """Both the authenticated and the public post endpoints failed."""

    status_code = 502


class NoVideoFound(PipelineError):
    """The post payload was fetched but holds no video record."""

    status_code = 404


class DownloadFailed(PipelineError):
    """A stream could not be fetched or written to disk."""

    status_code = 502


class MergeFailed(PipelineError):
    """ffmpeg could not combine the video and audio inputs."""

    status_code = 500


class AuthFailure(PipelineError):
    """The OAuth token exchange failed."""

    status_code = 401


class StorageError(PipelineError):
    """The final artifact could not be written to the output directory."""

    status_code = 500


__all__ = [
    "AuthFailure",
    "DownloadFailed",
    "InvalidReference",
    "MergeFailed",
    "NoVideoFound",
    "PipelineError",
    "StorageError",
    "UpstreamUnavailable",
]

"""Pydantic request/response schemas for the tunescout API.

Defines the public contract for the REST endpoints: recommendations,
smart playlists, signal writes (plays and likes), user registration and
health.

# ─── HOW SCHEMAS WORK ─────────────────────────────────────────────────
#
# FastAPI validates incoming JSON bodies against the *Request* models
# (invalid bodies get a 422) and serializes responses through the
# *Response* models.  The recommendation and playlist payloads reuse the
# frozen domain models (RankedResult, SmartPlaylist) directly so the
# cached object and the wire shape never drift apart.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from tunescout.models.playlist import SmartPlaylist
from tunescout.models.tracks import TrackResult


class TrackPayload(BaseModel):
    """A track as the client player knows it."""

    track_id: str = Field(..., min_length=1, max_length=256)
    title: str = Field(default="Unknown Title", max_length=500)
    artist: str = Field(default="Unknown Artist", max_length=500)
    thumbnail: str = ""
    duration_label: str = ""

    def to_track(self) -> TrackResult:
        return TrackResult(
            track_id=self.track_id,
            title=self.title,
            artist=self.artist,
            thumbnail=self.thumbnail,
            duration_label=self.duration_label,
        )


class PlayRequest(TrackPayload):
    """A finished (or skipped) listen reported by the player."""

    listen_seconds: float = Field(..., ge=0.0, description="Seconds actually listened")


class LikeRequest(TrackPayload):
    """Explicit like of a track."""


class PlayResponse(BaseModel):
    """Result of recording a play."""

    recorded: bool
    played_at: datetime | None = None


class LikeResponse(BaseModel):
    """Result of liking or unliking a track."""

    track_id: str
    liked: bool


class UserResponse(BaseModel):
    """Result of registering the caller."""

    user_id: str
    registered: bool = True


class SmartPlaylistsResponse(BaseModel):
    """All smart playlists for the caller."""

    user_id: str
    playlists: list[SmartPlaylist] = Field(default_factory=list)


class HealthResponse(BaseModel):
    """Application health check response."""

    status: str
    version: str
    providers: dict[str, Any]


class ErrorResponse(BaseModel):
    """Standard error response body."""

    error: str
    detail: str | None = None

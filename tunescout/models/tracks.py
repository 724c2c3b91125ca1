"""Track-level models: listener signals and normalized external tracks.

Defines Pydantic v2 models for the records the signal store owns
(playback events and liked tracks) and the canonical :class:`TrackResult`
every external search or chart payload is normalized into.  All models are
frozen: the engine reads these, it never edits them.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# PlaybackEvent -- one qualifying listen in a user's history.
# ---------------------------------------------------------------------------
class PlaybackEvent(BaseModel):
    """A single listen that crossed the minimum-duration threshold.

    Append-only per user; the signal store prunes by age and by a per-user
    count cap (oldest first).
    """

    model_config = ConfigDict(frozen=True)

    user_id: str
    track_id: str
    title: str
    artist: str
    thumbnail: str = ""
    duration_label: str = ""
    played_at: datetime
    listen_seconds: float = Field(default=0.0, ge=0.0)


# ---------------------------------------------------------------------------
# LikedTrack -- explicit positive feedback, unique per (user, track).
# ---------------------------------------------------------------------------
class LikedTrack(BaseModel):
    """A track the user explicitly liked."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    track_id: str
    title: str
    artist: str
    thumbnail: str = ""
    duration_label: str = ""
    liked_at: datetime


# ---------------------------------------------------------------------------
# TrackResult -- canonical shape of a search or chart result.
# ---------------------------------------------------------------------------
class TrackResult(BaseModel):
    """A track returned by the search service or the trending chart.

    Built only by :func:`tunescout.utils.track_normalizer.normalize_track`;
    internal code never touches the raw payloads.
    """

    model_config = ConfigDict(frozen=True)

    track_id: str = Field(min_length=1)
    title: str = "Unknown Title"
    artist: str = "Unknown Artist"
    thumbnail: str = ""
    duration_label: str = ""
    # Normalized 0.0-1.0 popularity when the chart provides one.
    popularity: float | None = Field(default=None, ge=0.0, le=1.0)

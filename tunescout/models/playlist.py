"""Smart playlist models.

A smart playlist is a small, named, thematic selection ("Chill Vibes",
"High Energy") built deterministically from the same signals as the main
recommendation pipeline.  Frozen, because playlists are cached per user.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from tunescout.models.tracks import TrackResult


class SmartPlaylist(BaseModel):
    """One named playlist returned by ``get_smart_playlists``."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    description: str
    # Short line shown under the title ("Weighted by your favorite artists.").
    insight: str | None = None
    thumbnail: str | None = None
    songs: list[TrackResult] = Field(default_factory=list)
    song_count: int = 0
    # False for cold-start users whose playlists come from trending data only.
    personalized: bool = True

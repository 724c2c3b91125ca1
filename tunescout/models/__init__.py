"""tunescout domain models -- re-exports all public model classes.

The models are organized across three submodules by domain concern:
    - tracks.py          -- Listener signals and normalized external tracks
    - recommendation.py  -- Pipeline working data, results, oracle contract
    - playlist.py        -- Smart playlists
"""

from __future__ import annotations

from tunescout.models.playlist import SmartPlaylist
from tunescout.models.recommendation import (
    BUCKET_ORDER,
    AffinityProfile,
    AffinitySummary,
    Candidate,
    CandidatePool,
    OracleOpinion,
    OracleRequest,
    OracleResponse,
    RankedResult,
    ReasonKind,
    RecommendedTrack,
    TrackRef,
)
from tunescout.models.tracks import LikedTrack, PlaybackEvent, TrackResult

__all__ = [
    # tracks
    "LikedTrack",
    "PlaybackEvent",
    "TrackResult",
    # recommendation
    "BUCKET_ORDER",
    "AffinityProfile",
    "AffinitySummary",
    "Candidate",
    "CandidatePool",
    "OracleOpinion",
    "OracleRequest",
    "OracleResponse",
    "RankedResult",
    "ReasonKind",
    "RecommendedTrack",
    "TrackRef",
    # playlist
    "SmartPlaylist",
]

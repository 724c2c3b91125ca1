"""Recommendation models for the tunescout pipeline.

The pipeline works on two kinds of objects:

    1. Ephemeral, per-run working data -- :class:`AffinityProfile`,
       :class:`Candidate` and :class:`CandidatePool`.  These are plain
       dataclasses because the scorer and aggregator mutate them while a
       single request is running.  They are never cached or shared across
       requests.
    2. Externally visible results -- :class:`RecommendedTrack` and
       :class:`RankedResult`.  Frozen Pydantic models, so a cached entry can
       never be modified in place; a refresh builds a brand-new result.

The oracle request/response contract for the optional AI re-ranking step
lives here too, validated with Pydantic so malformed oracle output is
rejected at the boundary.

See tunescout/services/recommendation_service.py for the pipeline itself.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ReasonKind(str, Enum):
    """Which strategy produced a candidate (provenance, for logs and output)."""

    LIKED_SIMILARITY = "liked_similarity"
    ARTIST_AFFINITY = "artist_affinity"
    RECENT_PLAY = "recent_play"
    TRENDING_ALIGNMENT = "trending_alignment"
    FRESH_DISCOVERY = "fresh_discovery"
    FALLBACK_TRENDING = "fallback_trending"


# Bucket names, in the order they appear in a RankedResult.
BUCKET_SUGGESTED = "suggested"
BUCKET_BASED_ON_RECENT = "basedOnRecent"
BUCKET_ARTISTS = "artistsYouMightLike"
BUCKET_TRENDING = "trendingInYourStyle"
BUCKET_FRESH = "freshDiscoveries"

BUCKET_ORDER: tuple[str, ...] = (
    BUCKET_SUGGESTED,
    BUCKET_BASED_ON_RECENT,
    BUCKET_ARTISTS,
    BUCKET_TRENDING,
    BUCKET_FRESH,
)


# ---------------------------------------------------------------------------
# AffinityProfile -- what the analyzer learned about one listener.
# ---------------------------------------------------------------------------
@dataclass
class AffinityProfile:
    """Recency-decayed artist weights and coarse genre hints for one run.

    ``artist_weights`` is keyed by the artist credit as it appears in the
    user's records.  Built fresh for every pipeline run.
    """

    artist_weights: dict[str, float] = field(default_factory=dict)
    top_artists: list[str] = field(default_factory=list)
    top_genres: list[str] = field(default_factory=list)
    genre_hits: dict[str, int] = field(default_factory=dict)
    # Newest-first samples handed to the re-ranking oracle.
    liked_sample: list[TrackRef] = field(default_factory=list)
    recent_sample: list[TrackRef] = field(default_factory=list)

    @property
    def is_cold_start(self) -> bool:
        return not self.artist_weights


# ---------------------------------------------------------------------------
# Candidate -- a track under consideration during one run.
# ---------------------------------------------------------------------------
@dataclass
class Candidate:
    """A track under consideration, with a score and a provenance tag.

    ``reason_tag`` is the human-readable label ("More from Artist X") that
    later decides which bucket the candidate lands in.  It is set by the
    source that found the track and can only be replaced by the oracle.
    """

    track_id: str
    title: str
    artist: str
    thumbnail: str
    duration_label: str
    score: float
    reason_tag: str
    source_weight: float
    source: ReasonKind
    # Tag the candidate was found with; routing reads this so a reason
    # replaced by the oracle keeps its bucket.
    routing_tag: str = ""

    def __post_init__(self) -> None:
        if not self.reason_tag:
            raise ValueError("Candidate.reason_tag must be non-empty")
        if not self.routing_tag:
            self.routing_tag = self.reason_tag

    def to_recommended(self) -> RecommendedTrack:
        return RecommendedTrack(
            track_id=self.track_id,
            title=self.title,
            artist=self.artist,
            thumbnail=self.thumbnail,
            duration_label=self.duration_label,
            score=round(self.score, 6),
            reason=self.reason_tag,
            source=self.source.value,
        )


@dataclass
class CandidatePool:
    """The ordered output of one candidate source.

    Sources fill their own pool and hand it back; only the aggregator
    merges pools, so no two sources ever write to shared state.
    """

    source: ReasonKind
    candidates: list[Candidate] = field(default_factory=list)
    # Per-source skip counters, logged by the aggregator.
    skipped: dict[str, int] = field(default_factory=dict)

    def skip(self, reason: str) -> None:
        self.skipped[reason] = self.skipped.get(reason, 0) + 1

    def __len__(self) -> int:
        return len(self.candidates)


# ---------------------------------------------------------------------------
# Externally visible results
# ---------------------------------------------------------------------------
class RecommendedTrack(BaseModel):
    """A single recommended track as returned to callers."""

    model_config = ConfigDict(frozen=True)

    track_id: str
    title: str
    artist: str
    thumbnail: str = ""
    duration_label: str = ""
    score: float
    # Human-readable explanation ("Because you played Song A").
    reason: str
    # ReasonKind value of the source that found the track.
    source: str


class RankedResult(BaseModel):
    """The full recommendation response for one user.

    Buckets always contain every name in :data:`BUCKET_ORDER`, each sorted
    by descending score.  Cached with a TTL and replaced wholesale on
    refresh.
    """

    model_config = ConfigDict(frozen=True)

    user_id: str
    buckets: dict[str, list[RecommendedTrack]] = Field(default_factory=dict)
    top_artists: list[str] = Field(default_factory=list)
    top_genres: list[str] = Field(default_factory=list)
    # True when the re-ranking oracle's opinions were blended in.
    ai_enhanced: bool = False
    insights: dict[str, Any] | None = None
    # True when trending padding or the full trending fallback was used.
    fallback_used: bool = False
    generated_at: datetime | None = None

    @property
    def total(self) -> int:
        return sum(len(tracks) for tracks in self.buckets.values())

    def trimmed(self, per_bucket: int) -> RankedResult:
        """Return a new result with every bucket cut to ``per_bucket`` tracks."""
        return self.model_copy(
            update={
                "buckets": {
                    name: list(tracks[:per_bucket]) for name, tracks in self.buckets.items()
                },
                "insights": None,
            }
        )


# ---------------------------------------------------------------------------
# Re-ranking oracle contract
# ---------------------------------------------------------------------------
class TrackRef(BaseModel):
    """Title/artist pair used in profile samples and oracle candidates."""

    model_config = ConfigDict(frozen=True)

    track_id: str = ""
    title: str
    artist: str


class AffinitySummary(BaseModel):
    """The slice of a listener's profile the oracle is allowed to see."""

    model_config = ConfigDict(frozen=True)

    top_artists: list[str] = Field(default_factory=list)
    top_genres: list[str] = Field(default_factory=list)
    liked_sample: list[TrackRef] = Field(default_factory=list)
    recent_sample: list[TrackRef] = Field(default_factory=list)


class OracleRequest(BaseModel):
    """Request sent to the oracle: profile plus id/title/artist only, no scores."""

    model_config = ConfigDict(frozen=True)

    profile: AffinitySummary
    candidates: list[TrackRef]
    context: str | None = None


class OracleOpinion(BaseModel):
    """The oracle's opinion on one candidate."""

    model_config = ConfigDict(frozen=True)

    track_id: str = Field(min_length=1)
    reason_text: str = Field(min_length=1)
    relevance_score: float = Field(ge=0.0, le=1.0)


class OracleResponse(BaseModel):
    """Oracle reply: opinions for a subset of the candidate ids."""

    model_config = ConfigDict(frozen=True)

    recommendations: list[OracleOpinion] = Field(default_factory=list)
    insights: dict[str, Any] = Field(default_factory=dict)

"""Tunable constants of the recommendation pipeline.

None of the weights below were fitted against a measured objective; they
are product knobs.  Every stage receives the same frozen ``EngineConfig``
instance, so a deployment can retune the engine from ``config.yaml``
without code changes:

    engine:
      diversity_cap: 5
      source_weights:
        liked_similarity: 0.4

Validation happens once at startup; an invalid file raises
:class:`~tunescout.utils.errors.ConfigurationError`.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, model_validator


class SourceWeights(BaseModel):
    """Base weight per candidate source (before per-candidate boosts)."""

    model_config = ConfigDict(frozen=True)

    liked_similarity: float = Field(default=0.35, ge=0.0)
    artist_affinity: float = Field(default=0.22, ge=0.0)
    recent_play: float = Field(default=0.18, ge=0.0)
    trending_alignment: float = Field(default=0.15, ge=0.0)
    # Fresh discovery draws uniformly from [min, max] per candidate.
    discovery_min: float = Field(default=0.05, ge=0.0)
    discovery_max: float = Field(default=0.10, ge=0.0)


class BucketCaps(BaseModel):
    """Maximum size of each output bucket."""

    model_config = ConfigDict(frozen=True)

    suggested: int = Field(default=20, ge=1)
    basedOnRecent: int = Field(default=15, ge=1)  # noqa: N815
    artistsYouMightLike: int = Field(default=15, ge=1)  # noqa: N815
    trendingInYourStyle: int = Field(default=12, ge=1)  # noqa: N815
    freshDiscoveries: int = Field(default=12, ge=1)  # noqa: N815

    def cap_for(self, bucket: str) -> int:
        return int(getattr(self, bucket))


class EngineConfig(BaseModel):
    """All pipeline tuning constants, grouped by stage."""

    model_config = ConfigDict(frozen=True)

    # === Affinity analyzer ===
    history_limit: int = Field(default=100, ge=0)
    likes_limit: int = Field(default=50, ge=0)
    # Softness constant tau of exp(-i / tau); larger = slower falloff.
    decay_tau: float = Field(default=20.0, gt=0.0)
    like_multiplier: float = Field(default=1.2, gt=0.0)
    top_artist_count: int = Field(default=10, ge=1)
    top_genre_count: int = Field(default=3, ge=0)

    # === Candidate sources ===
    source_weights: SourceWeights = Field(default_factory=SourceWeights)
    # Maximum occurrences of one artist in the aggregated pool.
    diversity_cap: int = Field(default=4, ge=1)
    # How many of the newest plays form the anti-repetition set.
    recent_exclusion_window: int = Field(default=30, ge=0)
    # boost(i) = 1 / (1 + i * recency_falloff) for the i-th seed, newest first.
    recency_falloff: float = Field(default=0.15, ge=0.0)
    liked_seed_count: int = Field(default=10, ge=0)
    liked_results_per_seed: int = Field(default=3, ge=1)
    artist_results_per_artist: int = Field(default=3, ge=1)
    recent_seed_count: int = Field(default=20, ge=0)
    recent_results_per_seed: int = Field(default=2, ge=1)
    chart_snapshot_size: int = Field(default=50, ge=1)
    discovery_offset: int = Field(default=10, ge=0)
    discovery_sample_size: int = Field(default=15, ge=0)

    # === Concurrency ===
    source_timeout_seconds: float = Field(default=6.0, gt=0.0)
    pipeline_deadline_seconds: float = Field(default=10.0, gt=0.0)
    max_parallel_sources: int = Field(default=6, ge=1)

    # === Scorer & ranker ===
    working_set_size: int = Field(default=90, ge=1)
    jitter_floor: float = Field(default=0.95, gt=0.0)
    jitter_span: float = Field(default=0.10, ge=0.0)

    # === AI re-ranking ===
    oracle_min_candidates: int = Field(default=20, ge=0)
    oracle_local_weight: float = Field(default=0.4, ge=0.0)
    oracle_weight: float = Field(default=0.6, ge=0.0)
    oracle_timeout_seconds: float = Field(default=12.0, gt=0.0)
    oracle_liked_sample: int = Field(default=20, ge=0)
    oracle_recent_sample: int = Field(default=15, ge=0)

    # === Grouper & shaper ===
    bucket_caps: BucketCaps = Field(default_factory=BucketCaps)
    min_viable_total: int = Field(default=15, ge=0)

    # === Cache layer ===
    server_cache_ttl_seconds: float = Field(default=1800.0, gt=0.0)
    client_cache_ttl_seconds: float = Field(default=600.0, gt=0.0)
    client_bucket_size: int = Field(default=10, ge=1)
    smart_cache_ttl_seconds: float = Field(default=3600.0, gt=0.0)
    cache_max_entries: int = Field(default=2048, ge=1)

    # === Smart playlists ===
    smart_history_limit: int = Field(default=120, ge=0)
    smart_likes_limit: int = Field(default=80, ge=0)
    smart_max_songs: int = Field(default=25, ge=1)
    smart_min_songs: int = Field(default=12, ge=0)
    smart_max_per_artist: int = Field(default=4, ge=1)
    smart_liked_weight: float = 2.0
    smart_history_weight: float = 1.5
    smart_trending_weight: float = 1.0

    @model_validator(mode="after")
    def _check_ranges(self) -> EngineConfig:
        weights = self.source_weights
        if weights.discovery_min > weights.discovery_max:
            raise ValueError("source_weights.discovery_min must be <= discovery_max")
        if self.smart_min_songs > self.smart_max_songs:
            raise ValueError("smart_min_songs must be <= smart_max_songs")
        return self

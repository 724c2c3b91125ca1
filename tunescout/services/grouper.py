"""Grouper & shaper -- from one ranked list to named, capped buckets.

Routing is by the tag a candidate was found with:

    "You might like" (and anything unrecognized)  -> suggested
    "Because you played ..."                      -> basedOnRecent
    "More from ..."                               -> artistsYouMightLike
    "Trending in your style"                      -> trendingInYourStyle
    "Fresh discoveries"                           -> freshDiscoveries

After routing, two fallbacks keep the result from being empty:

    - suggested empty and either
      total == 0 or no signals  -> the trending chart head fills
                                   suggested; an empty freshDiscoveries
                                   takes the next slice
    - 0 < total < min viable    -> freshDiscoveries padded with trending
                                   tracks not already present

With no trending data either, the result is empty but well formed.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime, timezone
from typing import Any

from tunescout.config.engine import EngineConfig
from tunescout.models.recommendation import (
    BUCKET_ARTISTS,
    BUCKET_BASED_ON_RECENT,
    BUCKET_FRESH,
    BUCKET_ORDER,
    BUCKET_SUGGESTED,
    BUCKET_TRENDING,
    AffinityProfile,
    Candidate,
    RankedResult,
    ReasonKind,
    RecommendedTrack,
)
from tunescout.models.tracks import TrackResult
from tunescout.services.candidate_sources import (
    REASON_ARTIST_PREFIX,
    REASON_FRESH,
    REASON_RECENT_PREFIX,
    REASON_TRENDING,
)
from tunescout.utils.logging import get_logger

REASON_POPULAR = "Popular right now"

# Fallback tracks score below every real fresh discovery.
_FALLBACK_SCORE_CEILING = 0.05


def route(tag: str) -> str:
    """Bucket name for a routing tag."""
    if tag.startswith(REASON_RECENT_PREFIX):
        return BUCKET_BASED_ON_RECENT
    if tag.startswith(REASON_ARTIST_PREFIX):
        return BUCKET_ARTISTS
    if tag == REASON_TRENDING:
        return BUCKET_TRENDING
    if tag == REASON_FRESH:
        return BUCKET_FRESH
    return BUCKET_SUGGESTED


def _fallback_track(track: TrackResult, rank: int, total: int, reason: str) -> RecommendedTrack:
    return RecommendedTrack(
        track_id=track.track_id,
        title=track.title,
        artist=track.artist,
        thumbnail=track.thumbnail,
        duration_label=track.duration_label,
        score=round(_FALLBACK_SCORE_CEILING * (1.0 - rank / (total + 1)), 6),
        reason=reason,
        source=ReasonKind.FALLBACK_TRENDING.value,
    )


class Grouper:
    """Partitions ranked candidates into buckets and applies the fallbacks."""

    def __init__(self, config: EngineConfig) -> None:
        self._config = config
        self._logger = get_logger(__name__)

    def group(
        self,
        user_id: str,
        candidates: Sequence[Candidate],
        profile: AffinityProfile,
        trending: Sequence[TrackResult] = (),
        excluded_ids: frozenset[str] = frozenset(),
        ai_enhanced: bool = False,
        insights: dict[str, Any] | None = None,
        now: datetime | None = None,
    ) -> RankedResult:
        caps = self._config.bucket_caps
        buckets: dict[str, list[RecommendedTrack]] = {name: [] for name in BUCKET_ORDER}
        overflow = 0
        for candidate in sorted(candidates, key=lambda c: c.score, reverse=True):
            name = route(candidate.routing_tag)
            if len(buckets[name]) >= caps.cap_for(name):
                overflow += 1
                continue
            buckets[name].append(candidate.to_recommended())

        total = sum(len(tracks) for tracks in buckets.values())
        usable = [t for t in trending if t.track_id not in excluded_ids]
        fallback_used = False

        present = {t.track_id for tracks in buckets.values() for t in tracks}

        if (
            usable
            and not buckets[BUCKET_SUGGESTED]
            and (total == 0 or profile.is_cold_start)
        ):
            fallback_used = True
            head = [t for t in usable if t.track_id not in present][: caps.cap_for(BUCKET_SUGGESTED)]
            present.update(t.track_id for t in head)
            buckets[BUCKET_SUGGESTED] = [
                _fallback_track(t, i, len(head), REASON_POPULAR) for i, t in enumerate(head)
            ]
            tail: list[TrackResult] = []
            if not buckets[BUCKET_FRESH]:
                tail = [t for t in usable if t.track_id not in present][: caps.cap_for(BUCKET_FRESH)]
                buckets[BUCKET_FRESH] = [
                    _fallback_track(t, i, len(tail), REASON_FRESH) for i, t in enumerate(tail)
                ]
            self._logger.info("cold_start_fallback", user_id=user_id, tracks=len(head) + len(tail))

        elif 0 < total < self._config.min_viable_total and usable:
            room = caps.cap_for(BUCKET_FRESH) - len(buckets[BUCKET_FRESH])
            padding = [t for t in usable if t.track_id not in present][: max(room, 0)]
            if padding:
                fallback_used = True
                buckets[BUCKET_FRESH].extend(
                    _fallback_track(t, i, len(padding), REASON_FRESH)
                    for i, t in enumerate(padding)
                )
                buckets[BUCKET_FRESH].sort(key=lambda t: t.score, reverse=True)
                self._logger.info("sparse_result_padded", user_id=user_id, padded=len(padding))

        result = RankedResult(
            user_id=user_id,
            buckets=buckets,
            top_artists=list(profile.top_artists),
            top_genres=list(profile.top_genres),
            ai_enhanced=ai_enhanced,
            insights=insights,
            fallback_used=fallback_used,
            generated_at=now or datetime.now(timezone.utc),
        )
        self._logger.debug(
            "result_grouped",
            sizes={name: len(tracks) for name, tracks in buckets.items()},
            overflow=overflow,
            fallback_used=fallback_used,
        )
        return result
